import time

from starlette.requests import Request

from adroi.core import session as session_module
from adroi.models import Client


def _login(client, email, password="pass1234"):
    response = client.post("/login", data={"email": email, "password": password}, follow_redirects=False)
    assert response.status_code == 303
    return response


def _seed_client(db, organization_id, name):
    row = Client(organization_id=organization_id, name=name)
    db.add(row)
    db.commit()
    return row.id


def test_anonymous_requests_are_rejected(client):
    assert client.get("/").status_code == 401
    assert client.get("/api/tasks/board").status_code == 401


def test_bad_password_rerenders_login(client):
    response = client.post("/login", data={"email": "admin@test.local", "password": "nope"})
    assert response.status_code == 401
    assert "Invalid credentials" in response.text


def test_register_creates_organization_and_admin(client):
    response = client.post(
        "/register",
        data={"full_name": "New Owner", "organization_name": "Fresh Agency", "email": "new@test.local", "password": "longpass1"},
        follow_redirects=False,
    )
    assert response.status_code == 303
    assert response.headers["location"] == "/?toast=welcome"

    page = client.get("/settings")
    assert "Fresh Agency" in page.text

    duplicate = client.post(
        "/register",
        data={"full_name": "X", "organization_name": "Y", "email": "new@test.local", "password": "longpass1"},
    )
    assert duplicate.status_code == 400


def test_super_admin_without_organization_lands_on_admin(client):
    response = _login(client, "root@test.local")
    assert response.headers["location"] == "/admin"
    assert client.get("/").status_code == 403


def test_client_role_cannot_create_clients(client):
    _login(client, "viewer@test.local")
    response = client.post("/clients", data={"name": "Blocked Co"}, follow_redirects=False)
    assert response.status_code == 403


def test_other_organization_rows_look_missing(client, db):
    foreign_id = _seed_client(db, 2, "Foreign Co")
    _login(client, "admin@test.local")

    page = client.get(f"/clients/{foreign_id}")
    assert page.status_code == 404
    assert "Foreign Co" not in page.text

    response = client.post(f"/clients/{foreign_id}/delete", data={"confirm": "yes"}, follow_redirects=False)
    assert response.status_code == 404

    db.expire_all()
    assert db.get(Client, foreign_id) is not None
    assert "Foreign Co" not in client.get("/").text


def test_dashboard_lists_only_own_clients(client, db):
    _seed_client(db, 1, "Mine Co")
    _seed_client(db, 2, "Theirs Co")
    _login(client, "manager@test.local")

    page = client.get("/?range=30D")
    assert page.status_code == 200
    assert "Mine Co" in page.text
    assert "Theirs Co" not in page.text


def test_invalid_range_renders_error_page(client):
    _login(client, "admin@test.local")
    response = client.get("/?start=2026-02-10&end=2026-02-01")
    assert response.status_code == 422


def test_old_session_cookie_is_resigned(client, monkeypatch):
    _login(client, "admin@test.local")
    monkeypatch.setattr(session_module.settings, "session_refresh_after", 0)

    response = client.get("/")
    assert response.status_code == 200
    assert "adroi_session=" in response.headers.get("set-cookie", "")


def test_fresh_session_is_not_resigned(client):
    _login(client, "admin@test.local")
    response = client.get("/")
    assert "set-cookie" not in response.headers


def test_needs_refresh_reports_user_once_threshold_passes():
    signed = session_module.serializer.dumps({"user_id": 42})
    request = Request({"type": "http", "headers": [(b"cookie", f"adroi_session={signed}".encode())]})
    refresh_after = session_module.settings.session_refresh_after

    assert session_module.read_session(request) == 42
    assert session_module.needs_refresh(request) is None
    assert session_module.needs_refresh(request, now=time.time() + refresh_after + 5) == 42


def test_tampered_cookie_is_ignored():
    request = Request({"type": "http", "headers": [(b"cookie", b"adroi_session=forged.value.sig")]})
    assert session_module.read_session(request) is None
    assert session_module.needs_refresh(request) is None
