import csv
import io
from datetime import date, timedelta

import pytest

from adroi.errors import GatewayError, ValidationError
from adroi.models import Client, Deal
from adroi.services import deals as deal_service
from adroi.services.gateway import commit


def _login(client, email="admin@test.local", password="pass1234"):
    response = client.post("/login", data={"email": email, "password": password}, follow_redirects=False)
    assert response.status_code == 303


def test_missing_values_are_derived():
    assert deal_service.resolve_deal_values(3, 50, None) == (3, 50, 150)
    assert deal_service.resolve_deal_values(4, None, 200) == (4, 50, 200)
    assert deal_service.resolve_deal_values(None, None, 90) == (1, 90, 90)
    with pytest.raises(ValidationError):
        deal_service.resolve_deal_values(-1, 10, None)
    with pytest.raises(ValidationError):
        deal_service.resolve_deal_values(1, None, -5)


def test_update_keeps_total_unless_both_parts_change(client, db):
    row = Client(organization_id=1, name="Cafe")
    db.add(row)
    db.commit()
    deal = deal_service.create_deal(db, 1, row.id, day=date(2026, 3, 1), total_value=300)

    deal_service.update_deal(db, 1, deal.id, quantity=5)
    assert deal.total_value == 300
    deal_service.update_deal(db, 1, deal.id, quantity=5, unit_value=20)
    assert deal.total_value == 100


def test_summary_uses_units_and_ranks_clients():
    shop = Client(name="Shop", company="Shop SA")
    cafe = Client(name="Cafe", company="")
    deals = [
        Deal(date=date(2026, 3, 1), total_value=300, quantity=3, client=shop),
        Deal(date=date(2026, 3, 2), total_value=100, quantity=None, client=cafe),
        Deal(date=date(2026, 3, 3), total_value=200, quantity=1, client=cafe),
    ]

    summary = deal_service.deals_summary(deals)

    assert summary.total_revenue == 600
    assert summary.total_sales == 5
    assert summary.deal_count == 3
    assert summary.average_ticket == 200
    assert summary.top_clients == [("Shop SA", 300), ("Cafe", 300)]


def test_empty_summary_has_zero_ticket():
    summary = deal_service.deals_summary([])
    assert summary.average_ticket == 0
    assert summary.top_clients == []


def test_reports_page_and_csv_cover_only_window(client, db):
    today = date.today()
    shop = Client(organization_id=1, name="Shop")
    other = Client(organization_id=2, name="Other agency client")
    db.add_all([shop, other])
    db.flush()
    db.add_all(
        [
            Deal(organization_id=1, client_id=shop.id, date=today, description="In range", quantity=2, unit_value=40, total_value=80),
            Deal(organization_id=1, client_id=shop.id, date=today - timedelta(days=60), description="Too old", total_value=999),
            Deal(organization_id=2, client_id=other.id, date=today, description="Foreign", total_value=500),
        ]
    )
    db.commit()
    _login(client)

    page = client.get("/reports?range=7D")
    assert page.status_code == 200
    assert "In range" in page.text
    assert "Too old" not in page.text
    assert "Foreign" not in page.text

    export = client.get("/reports/deals.csv?range=7D")
    assert export.headers["content-type"].startswith("text/csv")
    assert "attachment" in export.headers["content-disposition"]
    rows = list(csv.reader(io.StringIO(export.text)))
    assert rows[0] == ["date", "client", "description", "quantity", "unit_value", "total_value"]
    assert rows[1] == [today.isoformat(), "Shop", "In range", "2", "40.00", "80.00"]
    assert len(rows) == 2


def test_reports_need_manager_role(client):
    _login(client, "viewer@test.local")
    assert client.get("/reports").status_code == 403


def test_update_rejects_negative_values(client, db):
    row = Client(organization_id=1, name="Cafe")
    db.add(row)
    db.commit()
    deal = deal_service.create_deal(db, 1, row.id, day=date(2026, 3, 1), quantity=2, unit_value=50)

    with pytest.raises(ValidationError):
        deal_service.update_deal(db, 1, deal.id, quantity=-1)
    with pytest.raises(ValidationError):
        deal_service.update_deal(db, 1, deal.id, unit_value=-10)

    db.expire_all()
    assert (deal.quantity, deal.unit_value, deal.total_value) == (2, 50, 100)


def test_out_of_range_integer_rolls_back_as_gateway_error(client, db):
    row = Client(organization_id=1, name="Cafe")
    db.add(row)
    db.commit()
    db.add(Deal(organization_id=1, client_id=row.id, date=date(2026, 3, 1), quantity=10**20, unit_value=1, total_value=1))

    with pytest.raises(GatewayError):
        commit(db, "save deal")

    assert db.query(Deal).count() == 0
