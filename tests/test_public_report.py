from datetime import date

import pytest

from adroi.errors import NotFoundError, ValidationError
from adroi.models import Client, CommercialActivity, Deal
from adroi.services.public_report import NO_DATA_PROSPECT, WEEKLY_DEAL_DESCRIPTION, WEEKLY_PROSPECT, parse_submission, submit_report


@pytest.fixture()
def client_id(db):
    row = Client(organization_id=1, name="Padaria Central", company="Central Foods")
    db.add(row)
    db.commit()
    return row.id


def test_form_is_public(client, client_id):
    page = client.get(f"/report/{client_id}")
    assert page.status_code == 200
    assert "Central Foods" in page.text


def test_unknown_client_shows_not_found(client):
    page = client.get("/report/9999")
    assert page.status_code == 404
    assert "Link not found" in page.text

    posted = client.post("/report/9999", data={"kind": "weekly", "date": "2026-03-01"})
    assert posted.status_code == 404


def test_empty_weekly_keeps_feedback_without_deal(client, db, client_id):
    response = client.post(
        f"/report/{client_id}",
        data={"kind": "weekly", "date": "2026-03-06", "meetings": "0", "proposals": "0", "sales_count": "0", "notes": "Slow week"},
    )
    assert response.status_code == 200
    assert "Thank you" in response.text

    activities = db.query(CommercialActivity).filter(CommercialActivity.client_id == client_id).all()
    assert len(activities) == 1
    assert activities[0].type == "meeting"
    assert activities[0].quantity == 0
    assert activities[0].prospect_name == NO_DATA_PROSPECT
    assert activities[0].notes == "Slow week"
    assert activities[0].organization_id == 1
    assert db.query(Deal).count() == 0


def test_weekly_summary_writes_one_row_per_nonzero_count(client, db, client_id):
    client.post(
        f"/report/{client_id}",
        data={
            "kind": "weekly",
            "date": "2026-03-06",
            "meetings": "4",
            "proposals": "2",
            "sales_count": "3",
            "sales_total_value": "1500,00",
            "lead_quality": "5",
        },
    )

    meeting = db.query(CommercialActivity).filter(CommercialActivity.type == "meeting").one()
    proposal = db.query(CommercialActivity).filter(CommercialActivity.type == "proposal").one()
    deal = db.query(Deal).one()
    assert (meeting.quantity, meeting.lead_quality_score, meeting.prospect_name) == (4, 5, WEEKLY_PROSPECT)
    assert proposal.quantity == 2
    assert deal.description == WEEKLY_DEAL_DESCRIPTION
    assert (deal.quantity, deal.total_value) == (3, 1500.0)
    assert deal.unit_value == 500.0
    assert deal.date == date(2026, 3, 6)


def test_single_sale_becomes_a_deal(client, db, client_id):
    response = client.post(
        f"/report/{client_id}",
        data={"kind": "sale", "date": "2026-03-02", "description": "Bolo de festa", "value": "320", "quantity": "2"},
    )
    assert response.status_code == 200
    deal = db.query(Deal).one()
    assert (deal.description, deal.quantity, deal.total_value) == ("Bolo de festa", 2, 320.0)


def test_invalid_submission_rerenders_with_error_and_writes_nothing(client, db, client_id):
    response = client.post(
        f"/report/{client_id}",
        data={"kind": "weekly", "date": "2026-03-06", "meetings": "2", "lead_quality": "7", "notes": "keep me"},
    )
    assert response.status_code == 422
    assert "Lead quality must be between 1 and 5" in response.text
    assert "keep me" in response.text
    assert db.query(CommercialActivity).count() == 0


def test_meeting_needs_prospect_name():
    with pytest.raises(ValidationError):
        parse_submission({"kind": "meeting", "date": "2026-03-01"})
    with pytest.raises(ValidationError):
        parse_submission({"kind": "sale", "date": "2026-03-01", "value": "0"})
    with pytest.raises(ValidationError):
        parse_submission({"kind": "weekly", "date": "06/03/2026"})


def test_weekly_quality_defaults_to_three():
    submission = parse_submission({"kind": "weekly", "date": "2026-03-01", "meetings": "1"})
    assert submission.lead_quality == 3


def test_submit_report_rejects_unknown_client(db):
    with pytest.raises(NotFoundError):
        submit_report(db, 424242, {"kind": "weekly", "date": "2026-03-01"})


@pytest.mark.parametrize("value", ["inf", "nan", "1e999"])
def test_sale_with_non_finite_value_is_rejected(client, db, client_id, value):
    response = client.post(
        f"/report/{client_id}",
        data={"kind": "sale", "date": "2026-03-02", "description": "Bolo", "value": value},
    )
    assert response.status_code == 422
    assert "Value must be a number" in response.text
    assert db.query(Deal).count() == 0


def test_oversized_weekly_count_is_rejected_before_reaching_the_store(client, db, client_id):
    response = client.post(
        f"/report/{client_id}",
        data={"kind": "weekly", "date": "2026-03-06", "meetings": "99999999999999999999", "notes": "big week"},
    )
    assert response.status_code == 422
    assert "Meetings must be between 0 and 1000000" in response.text
    assert "big week" in response.text
    assert db.query(CommercialActivity).count() == 0
