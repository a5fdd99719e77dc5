import math
from dataclasses import dataclass
from datetime import date, datetime, time

from sqlalchemy.orm import Session

from adroi.errors import ValidationError
from adroi.models import Client, Contract
from adroi.services.gateway import commit, get_scoped, scoped

CONTRACT_TYPES = ("fixed", "commission", "hybrid")
CONTRACT_STATUSES = ("active", "expired", "cancelled", "pending")


@dataclass
class ContractView:
    contract: Contract
    days_remaining: int

    @property
    def client_name(self) -> str:
        return self.contract.client.name if self.contract.client else ""


def days_remaining(end_date: date, now: datetime | None = None) -> int:
    """Whole days left until the end date, rounding partial days up."""
    now = now or datetime.now()
    delta = datetime.combine(end_date, time.min) - now
    return math.ceil(delta.total_seconds() / 86400)


def get_active_contracts(db: Session, organization_id: int, now: datetime | None = None) -> list[ContractView]:
    contracts = (
        scoped(db, Contract, organization_id)
        .filter(Contract.status != "cancelled")
        .order_by(Contract.end_date.asc())
        .all()
    )
    return [ContractView(contract=c, days_remaining=days_remaining(c.end_date, now)) for c in contracts]


def get_client_contract(db: Session, organization_id: int, client_id: int, now: datetime | None = None) -> ContractView | None:
    contract = (
        scoped(db, Contract, organization_id)
        .filter(Contract.client_id == client_id, Contract.status == "active")
        .order_by(Contract.created_at.desc(), Contract.id.desc())
        .first()
    )
    if not contract:
        return None
    return ContractView(contract=contract, days_remaining=days_remaining(contract.end_date, now))


def create_contract(
    db: Session,
    organization_id: int,
    client_id: int,
    *,
    kind: str,
    start_date: date,
    end_date: date,
    monthly_value: float = 0,
    commission_percent: float = 0,
    status: str = "active",
) -> Contract:
    get_scoped(db, Client, organization_id, client_id)
    if kind not in CONTRACT_TYPES:
        raise ValidationError(f"Unknown contract type {kind}", toast="invalid-contract")
    if status not in CONTRACT_STATUSES:
        raise ValidationError(f"Unknown contract status {status}", toast="invalid-contract")
    if end_date < start_date:
        raise ValidationError("Contract cannot end before it starts", toast="invalid-contract")
    if not 0 <= commission_percent <= 100:
        raise ValidationError("Commission must be between 0 and 100", toast="invalid-contract")

    contract = Contract(
        organization_id=organization_id,
        client_id=client_id,
        type=kind,
        monthly_value=monthly_value,
        commission_percent=commission_percent,
        start_date=start_date,
        end_date=end_date,
        status=status,
    )
    db.add(contract)
    commit(db, "save contract")
    db.refresh(contract)
    return contract
