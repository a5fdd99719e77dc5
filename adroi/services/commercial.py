from dataclasses import dataclass
from datetime import date, timedelta

from sqlalchemy.orm import Session

from adroi.errors import ValidationError
from adroi.models import Client, CommercialActivity
from adroi.services.analytics import activity_quantity
from adroi.services.gateway import commit, get_scoped, scoped

ACTIVITY_TYPES = ("meeting", "proposal")


def _validate(kind: str, quantity: int | None, lead_quality_score: int | None, value: float | None) -> None:
    if kind not in ACTIVITY_TYPES:
        raise ValidationError(f"Unknown activity type {kind}", toast="invalid-activity")
    if quantity is not None and quantity < 0:
        raise ValidationError("Quantity cannot be negative", toast="invalid-activity")
    if lead_quality_score is not None and not 1 <= lead_quality_score <= 5:
        raise ValidationError("Lead quality must be between 1 and 5", toast="invalid-activity")
    if value is not None and value < 0:
        raise ValidationError("Value cannot be negative", toast="invalid-activity")


def add_activity(
    db: Session,
    organization_id: int,
    client_id: int,
    *,
    kind: str,
    day: date,
    prospect_name: str = "",
    value: float | None = None,
    notes: str = "",
    quantity: int | None = None,
    lead_quality_score: int | None = None,
    commit_now: bool = True,
) -> CommercialActivity:
    get_scoped(db, Client, organization_id, client_id)
    _validate(kind, quantity, lead_quality_score, value)
    activity = CommercialActivity(
        organization_id=organization_id,
        client_id=client_id,
        type=kind,
        date=day,
        prospect_name=(prospect_name or "").strip(),
        value=value or 0,
        notes=(notes or "").strip(),
        quantity=quantity,
        lead_quality_score=lead_quality_score,
    )
    db.add(activity)
    if commit_now:
        commit(db, "save activity")
        db.refresh(activity)
    return activity


def update_activity(
    db: Session,
    organization_id: int,
    activity_id: int,
    *,
    day: date | None = None,
    prospect_name: str | None = None,
    value: float | None = None,
    notes: str | None = None,
    quantity: int | None = None,
    lead_quality_score: int | None = None,
) -> CommercialActivity:
    activity = get_scoped(db, CommercialActivity, organization_id, activity_id)
    _validate(activity.type, quantity, lead_quality_score, value)
    if day is not None:
        activity.date = day
    if prospect_name is not None:
        activity.prospect_name = prospect_name.strip()
    if value is not None:
        activity.value = value
    if notes is not None:
        activity.notes = notes.strip()
    if quantity is not None:
        activity.quantity = quantity
    if lead_quality_score is not None:
        activity.lead_quality_score = lead_quality_score
    commit(db, "update activity")
    return activity


def delete_activity(db: Session, organization_id: int, activity_id: int) -> None:
    activity = get_scoped(db, CommercialActivity, organization_id, activity_id)
    db.delete(activity)
    commit(db, "delete activity")


def list_activities(db: Session, organization_id: int, client_id: int, kind: str | None = None) -> list[CommercialActivity]:
    query = scoped(db, CommercialActivity, organization_id).filter(CommercialActivity.client_id == client_id)
    if kind:
        query = query.filter(CommercialActivity.type == kind)
    return query.order_by(CommercialActivity.date.desc(), CommercialActivity.id.desc()).all()


@dataclass
class FunnelStats:
    meetings: int
    proposals: int
    pipeline_value: float


def funnel_stats(db: Session, organization_id: int, client_id: int, today: date | None = None) -> FunnelStats:
    since = (today or date.today()) - timedelta(days=30)
    recent = [a for a in list_activities(db, organization_id, client_id) if a.date >= since]
    return FunnelStats(
        meetings=activity_quantity(recent, "meeting"),
        proposals=activity_quantity(recent, "proposal"),
        pipeline_value=sum(a.value or 0 for a in recent if a.type == "proposal"),
    )
