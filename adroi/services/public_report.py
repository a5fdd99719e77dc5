"""Unauthenticated intake for collaborators reporting commercial results.

The caller is untrusted: every field arrives as raw form text and is parsed and
range-checked here before anything is written. A submission is written in one
transaction, so a failure leaves no partial batch behind.
"""
import math
from dataclasses import dataclass
from datetime import date

from sqlalchemy.orm import Session

from adroi.core.logging import get_logger
from adroi.errors import NotFoundError, ValidationError
from adroi.services import commercial, deals
from adroi.services.clients import get_client_public_info
from adroi.services.gateway import commit

log = get_logger("public_report")

SUBMISSION_KINDS = ("weekly", "sale", "meeting", "proposal")

WEEKLY_PROSPECT = "Resumo Semanal"
WEEKLY_DEAL_DESCRIPTION = "Resumo Semanal - Fechamentos"
NO_DATA_PROSPECT = "Feedback Semanal (Sem Dados)"

MAX_COUNT = 1_000_000


@dataclass
class Submission:
    kind: str
    day: date
    notes: str = ""
    lead_quality: int | None = None
    meetings: int = 0
    proposals: int = 0
    sales_count: int = 0
    sales_total_value: float = 0.0
    prospect_name: str = ""
    value: float = 0.0
    quantity: int = 1
    description: str = ""


def _int(raw, label: str, *, minimum: int = 0, maximum: int = MAX_COUNT, default: int = 0) -> int:
    if raw is None or str(raw).strip() == "":
        return default
    try:
        value = int(str(raw).strip())
    except ValueError as exc:
        raise ValidationError(f"{label} must be a whole number") from exc
    if value < minimum or value > maximum:
        raise ValidationError(f"{label} must be between {minimum} and {maximum}")
    return value


def _money(raw, label: str) -> float:
    if raw is None or str(raw).strip() == "":
        return 0.0
    try:
        value = float(str(raw).strip().replace(",", "."))
    except ValueError as exc:
        raise ValidationError(f"{label} must be a number") from exc
    if not math.isfinite(value):
        raise ValidationError(f"{label} must be a number")
    if value < 0:
        raise ValidationError(f"{label} cannot be negative")
    return value


def parse_submission(form: dict) -> Submission:
    kind = (form.get("kind") or "weekly").strip()
    if kind not in SUBMISSION_KINDS:
        raise ValidationError(f"Unknown submission type {kind}")
    try:
        day = date.fromisoformat((form.get("date") or "").strip())
    except ValueError as exc:
        raise ValidationError("Date must be YYYY-MM-DD") from exc

    notes = (form.get("notes") or "").strip()
    if kind == "weekly":
        return Submission(
            kind=kind,
            day=day,
            notes=notes,
            lead_quality=_int(form.get("lead_quality"), "Lead quality", minimum=1, maximum=5, default=3),
            meetings=_int(form.get("meetings"), "Meetings"),
            proposals=_int(form.get("proposals"), "Proposals"),
            sales_count=_int(form.get("sales_count"), "Sales"),
            sales_total_value=_money(form.get("sales_total_value"), "Sales total"),
        )

    submission = Submission(
        kind=kind,
        day=day,
        notes=notes,
        prospect_name=(form.get("prospect_name") or "").strip(),
        description=(form.get("description") or "").strip(),
        value=_money(form.get("value"), "Value"),
        quantity=_int(form.get("quantity"), "Quantity", minimum=1, default=1),
        lead_quality=_int(form.get("lead_quality"), "Lead quality", minimum=1, maximum=5) or None,
    )
    if kind in {"meeting", "proposal"} and not submission.prospect_name:
        raise ValidationError("Prospect name is required")
    if kind == "sale" and submission.value <= 0:
        raise ValidationError("Sale value must be greater than zero")
    return submission


def _record_weekly(db: Session, organization_id: int, client_id: int, s: Submission) -> int:
    created = 0
    if s.meetings > 0:
        commercial.add_activity(
            db, organization_id, client_id,
            kind="meeting", day=s.day, prospect_name=WEEKLY_PROSPECT, notes=s.notes,
            quantity=s.meetings, lead_quality_score=s.lead_quality, commit_now=False,
        )
        created += 1
    if s.proposals > 0:
        commercial.add_activity(
            db, organization_id, client_id,
            kind="proposal", day=s.day, prospect_name=WEEKLY_PROSPECT,
            quantity=s.proposals, value=0, commit_now=False,
        )
        created += 1
    if s.sales_count > 0:
        deals.create_deal(
            db, organization_id, client_id,
            day=s.day, description=WEEKLY_DEAL_DESCRIPTION,
            quantity=s.sales_count, total_value=s.sales_total_value, commit_now=False,
        )
        created += 1
    if created == 0:
        # keep the qualitative feedback even when there is nothing to count
        commercial.add_activity(
            db, organization_id, client_id,
            kind="meeting", day=s.day, prospect_name=NO_DATA_PROSPECT, notes=s.notes,
            quantity=0, lead_quality_score=s.lead_quality, commit_now=False,
        )
        created = 1
    return created


def submit_report(db: Session, client_id: int, form: dict) -> int:
    """Validate and persist one public submission. Returns the number of rows written."""
    info = get_client_public_info(db, client_id)
    if info is None:
        raise NotFoundError("Client not found", toast="client-not-found")
    submission = parse_submission(form)
    organization_id = info["organization_id"]

    try:
        created = _record(db, organization_id, client_id, submission)
    except ValidationError:
        db.rollback()
        raise

    commit(db, "save public report")
    log.info("public %s report stored for client %s (%s rows)", submission.kind, client_id, created)
    return created


def _record(db: Session, organization_id: int, client_id: int, submission: Submission) -> int:
    if submission.kind == "weekly":
        return _record_weekly(db, organization_id, client_id, submission)
    if submission.kind == "sale":
        deals.create_deal(
            db, organization_id, client_id,
            day=submission.day, description=submission.description or submission.prospect_name,
            quantity=submission.quantity, total_value=submission.value, commit_now=False,
        )
        return 1
    commercial.add_activity(
        db, organization_id, client_id,
        kind=submission.kind, day=submission.day, prospect_name=submission.prospect_name,
        value=submission.value, notes=submission.notes, quantity=submission.quantity,
        lead_quality_score=submission.lead_quality, commit_now=False,
    )
    return 1
