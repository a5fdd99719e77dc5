import pytest
import requests

from adroi.core.config import get_settings
from adroi.models import Client, Insight
from adroi.services import insights as insight_service
from adroi.services.analytics import BlendedMetrics, CampaignStats


def _login(client, email="admin@test.local", password="pass1234"):
    response = client.post("/login", data={"email": email, "password": password}, follow_redirects=False)
    assert response.status_code == 303


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


def _gemini_payload(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


@pytest.fixture()
def client_id(db):
    row = Client(organization_id=1, name="Studio Zen", target_roas=3.0)
    db.add(row)
    db.commit()
    return row.id


@pytest.fixture()
def with_key(monkeypatch):
    monkeypatch.setattr(get_settings(), "gemini_api_key", "test-key")


def test_missing_key_shows_warning_and_saves_nothing(client, db, client_id, monkeypatch):
    monkeypatch.setattr(get_settings(), "gemini_api_key", "")
    _login(client)

    response = client.post(f"/clients/{client_id}/insights/generate", follow_redirects=False)

    assert response.headers["location"] == f"/clients/{client_id}?toast=ai-key-missing"
    assert db.query(Insight).count() == 0


def test_provider_failure_falls_back_to_info(client, db, client_id, with_key, monkeypatch):
    def boom(*args, **kwargs):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr(insight_service.requests, "post", boom)
    _login(client)

    response = client.post(f"/clients/{client_id}/insights/generate", follow_redirects=False)

    assert response.headers["location"] == f"/clients/{client_id}?toast=ai-unavailable"
    assert db.query(Insight).count() == 0


def test_malformed_answer_falls_back_to_info(with_key, monkeypatch):
    monkeypatch.setattr(insight_service.requests, "post", lambda *a, **k: FakeResponse(_gemini_payload("not json")))
    stats = BlendedMetrics(0, 0, 0, 0, 0, 0, 0)

    drafts = insight_service.generate_insights(Client(id=1, name="x"), stats, [], [])

    assert len(drafts) == 1
    assert drafts[0].type == "info"
    assert drafts[0].fallback


def test_successful_analysis_is_saved_and_dismissable(client, db, client_id, with_key, monkeypatch):
    calls = []
    answer = (
        '[{"type": "critical", "title": "Pause Campaign X", "description": "ROAS 0.8", "recommendation": "Pause it"},'
        ' {"type": "bogus", "title": "Scale search", "description": "ROAS 9", "recommendation": "Add budget"}]'
    )

    def fake_post(url, **kwargs):
        calls.append((url, kwargs))
        return FakeResponse(_gemini_payload(answer))

    monkeypatch.setattr(insight_service.requests, "post", fake_post)
    _login(client)

    response = client.post(f"/clients/{client_id}/insights/generate", follow_redirects=False)

    assert response.headers["location"] == f"/clients/{client_id}?toast=analysis-complete"
    url, kwargs = calls[0]
    assert url.endswith(":generateContent")
    assert kwargs["params"] == {"key": "test-key"}
    assert kwargs["json"]["generationConfig"]["responseMimeType"] == "application/json"

    saved = db.query(Insight).order_by(Insight.id).all()
    assert [(i.type, i.title) for i in saved] == [("critical", "Pause Campaign X"), ("info", "Scale search")]
    assert "Pause Campaign X" in client.get(f"/clients/{client_id}").text

    dismiss = client.post(f"/clients/{client_id}/insights/{saved[0].id}/dismiss", follow_redirects=False)
    assert "toast=insight-dismissed" in dismiss.headers["location"]
    db.expire_all()
    assert db.query(Insight).count() == 1


def test_context_uses_goal_defaults_and_trend():
    client = Client(id=1, name="Zen", company="")
    stats = BlendedMetrics(total_spend=100, ad_revenue=300, offline_revenue=0, total_revenue=300, total_leads=5, roas=3, roi=2)
    campaigns = [
        CampaignStats(id=1, name="A", platform="meta", status="ACTIVE", spend=50, revenue=200),
        CampaignStats(id=2, name="B", platform="meta", status="ACTIVE", spend=50, revenue=100),
    ]

    context = insight_service.build_context(client, stats, campaigns, [])

    assert context["client"] == "Zen"
    assert context["goals"] == {"target_roas": 4.0, "target_cpa": 50.0, "budget_limit": 10000}
    assert [c["name"] for c in context["campaign_highlights"]["top_3_roas"]] == ["A", "B"]
    assert context["recent_trend"]["last_3_days_avg_roas"] == 0


def test_fallback_drafts_are_never_persisted(client, db, client_id):
    assert insight_service.save_insights(db, 1, client_id, [insight_service.MISSING_KEY, insight_service.UNAVAILABLE]) == 0
    assert db.query(Insight).count() == 0
