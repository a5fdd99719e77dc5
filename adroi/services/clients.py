from dataclasses import dataclass
from datetime import date, datetime

from sqlalchemy.orm import Session

from adroi.core.logging import get_logger
from adroi.errors import ValidationError
from adroi.models import (
    Campaign,
    CampaignMetric,
    Client,
    ClientNote,
    CommercialActivity,
    Contract,
    Deal,
    Insight,
    Project,
    Task,
)
from adroi.services.analytics import (
    BlendedMetrics,
    CampaignStats,
    DailyMetric,
    DateWindow,
    activity_quantity,
    aggregate_by_date,
    cost_per_lead,
    safe_ratio,
)
from adroi.services.gateway import commit, get_scoped, scoped

log = get_logger("clients")

CLIENT_STATUSES = ("active", "paused", "churned")
METRIC_FIELDS = ("spend", "revenue", "leads", "impressions", "clicks", "purchases")


@dataclass
class ClientOverview:
    client: Client
    total_spend: float = 0.0
    total_revenue: float = 0.0
    total_leads: float = 0.0

    @property
    def roas(self) -> float:
        return safe_ratio(self.total_revenue, self.total_spend)


def _metrics_in_window(db: Session, organization_id: int, campaign_ids: list[int], window: DateWindow) -> list[CampaignMetric]:
    if not campaign_ids:
        return []
    return (
        scoped(db, CampaignMetric, organization_id)
        .filter(
            CampaignMetric.campaign_id.in_(campaign_ids),
            CampaignMetric.date >= window.start,
            CampaignMetric.date <= window.end,
        )
        .all()
    )


def list_clients(db: Session, organization_id: int, window: DateWindow) -> list[ClientOverview]:
    clients = scoped(db, Client, organization_id).order_by(Client.created_at.desc(), Client.id.desc()).all()
    if not clients:
        return []

    campaigns = scoped(db, Campaign, organization_id).filter(Campaign.client_id.in_([c.id for c in clients])).all()
    owner_of = {c.id: c.client_id for c in campaigns}
    overviews = {c.id: ClientOverview(client=c) for c in clients}

    for row in _metrics_in_window(db, organization_id, list(owner_of), window):
        overview = overviews[owner_of[row.campaign_id]]
        overview.total_spend += row.spend or 0
        overview.total_revenue += row.revenue or 0
        overview.total_leads += row.leads or 0

    return [overviews[c.id] for c in clients]


def get_client(db: Session, organization_id: int, client_id: int) -> Client:
    return get_scoped(db, Client, organization_id, client_id)


def get_client_public_info(db: Session, client_id: int) -> dict | None:
    """Minimal identity for the unauthenticated intake form."""
    client = db.query(Client).filter(Client.id == client_id).first()
    if not client:
        return None
    return {"id": client.id, "name": client.name, "company": client.company, "organization_id": client.organization_id}


def create_client(
    db: Session,
    organization_id: int,
    *,
    name: str,
    company: str = "",
    email: str = "",
    ad_account_id: str = "",
) -> Client:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Client name is required", toast="client-name-required")

    client = Client(
        organization_id=organization_id,
        name=name,
        company=(company or "").strip(),
        email=(email or "").strip().lower(),
        ad_account_id=(ad_account_id or "").strip(),
        status="active",
    )
    db.add(client)
    commit(db, "create client")
    db.refresh(client)
    log.info("client %s created in organization %s", client.id, organization_id)
    return client


def update_client(
    db: Session,
    organization_id: int,
    client_id: int,
    *,
    target_roas: float | None = None,
    target_cpa: float | None = None,
    budget_limit: float | None = None,
    crm_enabled: bool | None = None,
) -> Client:
    client = get_client(db, organization_id, client_id)
    if target_roas is not None:
        client.target_roas = target_roas
    if target_cpa is not None:
        client.target_cpa = target_cpa
    if budget_limit is not None:
        client.budget_limit = budget_limit
    if crm_enabled is not None:
        client.crm_enabled = crm_enabled
    client.last_updated = datetime.utcnow()
    commit(db, "update client")
    return client


def update_client_status(db: Session, organization_id: int, client_id: int, status: str) -> Client:
    if status not in CLIENT_STATUSES:
        raise ValidationError(f"Unknown client status {status}", toast="invalid-status")
    client = get_client(db, organization_id, client_id)
    client.status = status
    client.last_updated = datetime.utcnow()
    commit(db, "update client status")
    return client


def delete_client(db: Session, organization_id: int, client_id: int) -> None:
    client = get_client(db, organization_id, client_id)
    campaign_ids = [c.id for c in scoped(db, Campaign, organization_id).filter(Campaign.client_id == client.id).all()]

    for model in (Task, Deal, Contract, CommercialActivity, ClientNote, Insight):
        scoped(db, model, organization_id).filter(model.client_id == client.id).delete(synchronize_session=False)
    scoped(db, Project, organization_id).filter(Project.client_id == client.id).update({Project.client_id: None}, synchronize_session=False)
    if campaign_ids:
        scoped(db, CampaignMetric, organization_id).filter(CampaignMetric.campaign_id.in_(campaign_ids)).delete(synchronize_session=False)
        scoped(db, Campaign, organization_id).filter(Campaign.id.in_(campaign_ids)).delete(synchronize_session=False)
    db.delete(client)
    commit(db, "delete client")
    log.info("client %s deleted with %s campaigns", client_id, len(campaign_ids))


def get_campaigns(db: Session, organization_id: int, client_id: int, window: DateWindow) -> list[CampaignStats]:
    campaigns = scoped(db, Campaign, organization_id).filter(Campaign.client_id == client_id).all()
    stats = {c.id: CampaignStats(id=c.id, name=c.name, platform=c.platform, status=c.status) for c in campaigns}

    for row in _metrics_in_window(db, organization_id, list(stats), window):
        item = stats[row.campaign_id]
        for field in METRIC_FIELDS:
            setattr(item, field, getattr(item, field) + (getattr(row, field) or 0))

    return sorted(stats.values(), key=lambda c: c.spend, reverse=True)


def get_client_metrics(db: Session, organization_id: int, client_id: int, window: DateWindow) -> list[DailyMetric]:
    campaign_ids = [c.id for c in scoped(db, Campaign, organization_id).filter(Campaign.client_id == client_id).all()]
    return aggregate_by_date(_metrics_in_window(db, organization_id, campaign_ids, window))


def get_campaign_metrics(db: Session, organization_id: int, campaign_id: int, window: DateWindow) -> list[DailyMetric]:
    campaign = get_scoped(db, Campaign, organization_id, campaign_id)
    return aggregate_by_date(_metrics_in_window(db, organization_id, [campaign.id], window))


def add_manual_platform_metric(
    db: Session,
    organization_id: int,
    client_id: int,
    *,
    platform: str,
    day: date,
    spend: float = 0,
    impressions: float = 0,
    clicks: float = 0,
    leads: float = 0,
    revenue: float = 0,
) -> CampaignMetric:
    client = get_client(db, organization_id, client_id)
    platform = (platform or "").strip()
    if not platform:
        raise ValidationError("Platform is required", toast="platform-required")
    values = {"spend": spend, "impressions": impressions, "clicks": clicks, "leads": leads, "revenue": revenue}
    if any(v < 0 for v in values.values()):
        raise ValidationError("Metric values cannot be negative", toast="invalid-metric")

    name = f"{platform} (Manual)"
    campaign = (
        scoped(db, Campaign, organization_id)
        .filter(Campaign.client_id == client.id, Campaign.name == name)
        .first()
    )
    if not campaign:
        campaign = Campaign(organization_id=organization_id, client_id=client.id, name=name, platform=platform.lower(), status="ACTIVE", objective="manual")
        db.add(campaign)
        db.flush()

    metric = (
        scoped(db, CampaignMetric, organization_id)
        .filter(CampaignMetric.campaign_id == campaign.id, CampaignMetric.date == day)
        .first()
    )
    if not metric:
        metric = CampaignMetric(organization_id=organization_id, campaign_id=campaign.id, date=day)
        db.add(metric)
    for field, value in values.items():
        setattr(metric, field, value)
    metric.purchases = metric.purchases or 0
    commit(db, "save manual metric")
    return metric


def _money(value: float) -> str:
    return f"R$ {value:,.2f}"


def build_report_text(client: Client, campaigns: list[CampaignStats], stats: BlendedMetrics, activities: list, window: DateWindow) -> str:
    """Plain-text performance summary meant to be pasted into a chat with the client."""
    lines = [
        f"Hello, @{client.name or 'Client'}",
        f"Report ({window.span_days} days)",
        "",
        f"Period: {window.start:%d/%m} - {window.end:%d/%m}",
        "",
    ]
    for c in campaigns:
        if c.spend <= 0:
            continue
        lines += [
            f"*{c.name}*",
            f"- Spend: {_money(c.spend)}",
            f"- Leads: {c.leads:g}",
            f"- CPL: {_money(cost_per_lead(c.spend, c.leads))}",
            "",
        ]

    lines += [
        "---------",
        "Financial summary",
        f"Spend: {_money(stats.total_spend)}",
        f"Revenue (ads + offline): {_money(stats.total_revenue)}",
        f"Blended ROAS: {stats.roas:.2f}x",
    ]

    if client.crm_enabled:
        in_window = [a for a in activities if window.contains(a.date)]
        proposal_value = sum(a.value or 0 for a in in_window if a.type == "proposal")
        lines += [
            "",
            "Commercial funnel",
            f"- Meetings held: {activity_quantity(in_window, 'meeting')}",
            f"- Proposals sent: {activity_quantity(in_window, 'proposal')} ({_money(proposal_value)})",
        ]
    return "\n".join(lines)

