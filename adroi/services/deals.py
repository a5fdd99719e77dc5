import csv
import io
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date

from sqlalchemy.orm import Session

from adroi.errors import ValidationError
from adroi.models import Client, Deal
from adroi.services.analytics import DateWindow, safe_ratio
from adroi.services.gateway import commit, get_scoped, scoped


def list_deals(db: Session, organization_id: int, client_id: int) -> list[Deal]:
    return (
        scoped(db, Deal, organization_id)
        .filter(Deal.client_id == client_id)
        .order_by(Deal.date.desc(), Deal.id.desc())
        .all()
    )


def list_all_deals(db: Session, organization_id: int, window: DateWindow) -> list[Deal]:
    return (
        scoped(db, Deal, organization_id)
        .filter(Deal.date >= window.start, Deal.date <= window.end)
        .order_by(Deal.date.desc(), Deal.id.desc())
        .all()
    )


def resolve_deal_values(quantity: int | None, unit_value: float | None, total_value: float | None) -> tuple[int, float, float]:
    """Fill whichever of unit and total value the caller left out."""
    qty = quantity if quantity is not None else 1
    if qty < 0:
        raise ValidationError("Quantity cannot be negative", toast="invalid-deal")
    total = total_value if total_value is not None else (quantity or 1) * (unit_value or 0)
    if unit_value is not None:
        unit = unit_value
    else:
        unit = total / quantity if quantity and quantity > 0 else total
    if total < 0 or unit < 0:
        raise ValidationError("Deal values cannot be negative", toast="invalid-deal")
    return qty, unit, total


def create_deal(
    db: Session,
    organization_id: int,
    client_id: int,
    *,
    day: date,
    description: str = "",
    quantity: int | None = None,
    unit_value: float | None = None,
    total_value: float | None = None,
    commit_now: bool = True,
) -> Deal:
    get_scoped(db, Client, organization_id, client_id)
    qty, unit, total = resolve_deal_values(quantity, unit_value, total_value)
    deal = Deal(
        organization_id=organization_id,
        client_id=client_id,
        date=day,
        description=(description or "").strip(),
        quantity=qty,
        unit_value=unit,
        total_value=total,
    )
    db.add(deal)
    if commit_now:
        commit(db, "save deal")
        db.refresh(deal)
    return deal


def update_deal(
    db: Session,
    organization_id: int,
    deal_id: int,
    *,
    day: date | None = None,
    description: str | None = None,
    quantity: int | None = None,
    unit_value: float | None = None,
) -> Deal:
    deal = get_scoped(db, Deal, organization_id, deal_id)
    if (quantity is not None and quantity < 0) or (unit_value is not None and unit_value < 0):
        raise ValidationError("Deal values cannot be negative", toast="invalid-deal")
    if day is not None:
        deal.date = day
    if description is not None:
        deal.description = description.strip()
    if quantity is not None:
        deal.quantity = quantity
    if unit_value is not None:
        deal.unit_value = unit_value
    if quantity is not None and unit_value is not None:
        deal.total_value = quantity * unit_value
    commit(db, "update deal")
    return deal


def delete_deal(db: Session, organization_id: int, deal_id: int) -> None:
    deal = get_scoped(db, Deal, organization_id, deal_id)
    db.delete(deal)
    commit(db, "delete deal")


@dataclass
class DealsSummary:
    total_revenue: float = 0.0
    total_sales: int = 0
    deal_count: int = 0
    top_clients: list[tuple[str, float]] = field(default_factory=list)

    @property
    def average_ticket(self) -> float:
        return safe_ratio(self.total_revenue, self.deal_count)


def _client_label(deal: Deal) -> str:
    if deal.client is None:
        return "Unknown"
    return deal.client.company or deal.client.name


def deals_summary(deals: list[Deal], top: int = 5) -> DealsSummary:
    by_client: dict[str, float] = defaultdict(float)
    summary = DealsSummary()
    for deal in deals:
        summary.total_revenue += float(deal.total_value or 0)
        summary.total_sales += deal.quantity or 1
        summary.deal_count += 1
        by_client[_client_label(deal)] += float(deal.total_value or 0)
    summary.top_clients = sorted(by_client.items(), key=lambda item: item[1], reverse=True)[:top]
    return summary


def deals_csv(deals: list[Deal]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(["date", "client", "description", "quantity", "unit_value", "total_value"])
    for deal in deals:
        writer.writerow(
            [
                deal.date.isoformat(),
                _client_label(deal),
                deal.description,
                deal.quantity,
                f"{deal.unit_value:.2f}",
                f"{deal.total_value:.2f}",
            ]
        )
    return buffer.getvalue()
