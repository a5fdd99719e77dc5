"""Pure calculators behind the dashboard, client view and reports.

Nothing in here touches the database: inputs are plain rows (ORM objects or
dataclasses exposing the same attributes) and outputs are dataclasses that the
templates render directly.
"""
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta

from adroi.errors import ValidationError

PRESETS = ("YESTERDAY", "7D", "14D", "30D", "THIS_MONTH")


@dataclass(frozen=True)
class DateWindow:
    """Inclusive ``[start, end]`` range of calendar days."""

    start: date
    end: date

    def __post_init__(self):
        if self.start > self.end:
            raise ValidationError("Start date must not be after end date", toast="invalid-range")

    @classmethod
    def last_days(cls, days: int, today: date | None = None) -> "DateWindow":
        today = today or date.today()
        return cls(start=today - timedelta(days=days), end=today)

    @classmethod
    def preset(cls, option: str, today: date | None = None) -> "DateWindow":
        today = today or date.today()
        option = (option or "").upper()
        if option == "YESTERDAY":
            yesterday = today - timedelta(days=1)
            return cls(start=yesterday, end=yesterday)
        if option == "THIS_MONTH":
            return cls(start=today.replace(day=1), end=today)
        if option in {"7D", "14D", "30D"}:
            return cls.last_days(int(option[:-1]), today)
        raise ValidationError(f"Unknown date range {option}", toast="invalid-range")

    @classmethod
    def parse(cls, start: str, end: str) -> "DateWindow":
        try:
            return cls(start=date.fromisoformat(start), end=date.fromisoformat(end))
        except (TypeError, ValueError) as exc:
            raise ValidationError("Dates must be YYYY-MM-DD", toast="invalid-range") from exc

    @classmethod
    def resolve(cls, option: str | None, start: str | None, end: str | None, default: str = "30D", today: date | None = None) -> "DateWindow":
        if start and end:
            return cls.parse(start, end)
        return cls.preset(option or default, today)

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def days(self) -> list[date]:
        return [self.start + timedelta(days=i) for i in range(self.span_days + 1)]

    @property
    def span_days(self) -> int:
        return (self.end - self.start).days


def safe_ratio(numerator: float, denominator: float) -> float:
    if not denominator or denominator <= 0:
        return 0.0
    return numerator / denominator


def cost_per_lead(spend: float, leads: float) -> float:
    return safe_ratio(spend, leads)


def quantity_of(row) -> int:
    """Batched rows carry a quantity; a missing one stands for a single event."""
    quantity = getattr(row, "quantity", None)
    return 1 if quantity is None else quantity


def activity_quantity(activities: Iterable, kind: str, window: DateWindow | None = None) -> int:
    return sum(
        quantity_of(a)
        for a in activities
        if a.type == kind and (window is None or window.contains(a.date))
    )


@dataclass
class CampaignStats:
    id: int
    name: str
    platform: str
    status: str
    spend: float = 0.0
    revenue: float = 0.0
    leads: float = 0.0
    impressions: float = 0.0
    clicks: float = 0.0
    purchases: float = 0.0

    @property
    def roas(self) -> float:
        return safe_ratio(self.revenue, self.spend)

    @property
    def cpl(self) -> float:
        return cost_per_lead(self.spend, self.leads)


@dataclass
class DailyMetric:
    date: date
    spend: float = 0.0
    revenue: float = 0.0
    leads: float = 0.0
    impressions: float = 0.0
    clicks: float = 0.0
    purchases: float = 0.0

    @property
    def roas(self) -> float:
        return round(safe_ratio(self.revenue, self.spend), 2)


@dataclass
class BlendedMetrics:
    total_spend: float
    ad_revenue: float
    offline_revenue: float
    total_revenue: float
    total_leads: float
    roas: float
    roi: float

    @property
    def cpl(self) -> float:
        return cost_per_lead(self.total_spend, self.total_leads)


def offline_revenue(deals: Iterable, window: DateWindow) -> float:
    return sum(float(d.total_value or 0) for d in deals if window.contains(d.date))


def blended_metrics(campaigns: Iterable, deals: Iterable, window: DateWindow) -> BlendedMetrics:
    campaigns = list(campaigns)
    spend = sum(c.spend for c in campaigns)
    ad_revenue = sum(c.revenue for c in campaigns)
    leads = sum(c.leads for c in campaigns)
    offline = offline_revenue(deals, window)
    total = ad_revenue + offline
    return BlendedMetrics(
        total_spend=spend,
        ad_revenue=ad_revenue,
        offline_revenue=offline,
        total_revenue=total,
        total_leads=leads,
        roas=safe_ratio(total, spend),
        roi=safe_ratio(total - spend, spend),
    )


def aggregate_by_date(rows: Iterable) -> list[DailyMetric]:
    """Sum raw per-campaign metric rows into one point per calendar date."""
    buckets: dict[date, DailyMetric] = {}
    for row in rows:
        point = buckets.setdefault(row.date, DailyMetric(date=row.date))
        point.spend += row.spend or 0
        point.revenue += row.revenue or 0
        point.leads += row.leads or 0
        point.impressions += row.impressions or 0
        point.clicks += row.clicks or 0
        point.purchases += row.purchases or 0
    return [buckets[d] for d in sorted(buckets)]


@dataclass
class FinancePoint:
    date: date
    spend: float
    ad_revenue: float
    offline_revenue: float

    @property
    def blended_revenue(self) -> float:
        return self.ad_revenue + self.offline_revenue


def finance_series(daily_metrics: Iterable[DailyMetric], deals: Iterable, window: DateWindow) -> list[FinancePoint]:
    # only dates present in the metric rows get a point
    offline_by_day: dict[date, float] = defaultdict(float)
    for deal in deals:
        if window.contains(deal.date):
            offline_by_day[deal.date] += float(deal.total_value or 0)

    return [
        FinancePoint(
            date=m.date,
            spend=m.spend,
            ad_revenue=m.revenue,
            offline_revenue=offline_by_day.get(m.date, 0.0),
        )
        for m in sorted(daily_metrics, key=lambda m: m.date)
        if window.contains(m.date)
    ]


@dataclass
class AcquisitionPoint:
    date: date
    leads: float
    cpl: float


def acquisition_series(daily_metrics: Iterable[DailyMetric]) -> list[AcquisitionPoint]:
    return [AcquisitionPoint(date=m.date, leads=m.leads, cpl=cost_per_lead(m.spend, m.leads)) for m in daily_metrics]


@dataclass
class FunnelStage:
    name: str
    value: float

    @property
    def chart_value(self) -> float:
        # zero stages still need a visible area
        return self.value or 1


@dataclass
class Funnel:
    title: str
    stages: list[FunnelStage]
    # stages counted from unrelated sources, not one tracked cohort
    independent_stages: bool = False


def marketing_funnel(campaigns: Iterable) -> Funnel:
    campaigns = list(campaigns)
    return Funnel(
        title="Marketing funnel (ads)",
        stages=[
            FunnelStage("Impressions", sum(c.impressions or 0 for c in campaigns)),
            FunnelStage("Clicks", sum(c.clicks or 0 for c in campaigns)),
            FunnelStage("Leads", sum(c.leads or 0 for c in campaigns)),
            FunnelStage("Purchases (ads)", sum(c.purchases or 0 for c in campaigns)),
        ],
    )


def commercial_funnel(total_leads: float, activities: Iterable, deals: Iterable, window: DateWindow) -> Funnel:
    activities = list(activities)
    closed = sum(1 for d in deals if window.contains(d.date))
    return Funnel(
        title="Commercial funnel (CRM)",
        stages=[
            FunnelStage("Leads", total_leads),
            FunnelStage("Meetings", activity_quantity(activities, "meeting", window)),
            FunnelStage("Proposals", activity_quantity(activities, "proposal", window)),
            FunnelStage("Closed deals", closed),
        ],
        independent_stages=True,
    )


@dataclass
class QualityPoint:
    date: date
    proposals: int
    sales: int
    avg_lead_quality: float | None


def quality_evolution_series(activities: Iterable, deals: Iterable, window: DateWindow) -> list[QualityPoint]:
    proposals: dict[date, int] = defaultdict(int)
    scores: dict[date, list[int]] = defaultdict(list)
    sales: dict[date, int] = defaultdict(int)

    for a in activities:
        if not window.contains(a.date):
            continue
        if a.type == "proposal":
            proposals[a.date] += quantity_of(a)
        if a.lead_quality_score and a.lead_quality_score > 0:
            scores[a.date].append(a.lead_quality_score)
    for d in deals:
        if window.contains(d.date):
            sales[d.date] += quantity_of(d)

    points = []
    for day in window.days():
        day_scores = scores.get(day)
        avg = round(sum(day_scores) / len(day_scores), 1) if day_scores else None
        points.append(QualityPoint(date=day, proposals=proposals.get(day, 0), sales=sales.get(day, 0), avg_lead_quality=avg))
    return points


@dataclass
class RevenuePoint:
    date: date
    revenue: float


def daily_revenue_series(deals: Iterable, window: DateWindow) -> list[RevenuePoint]:
    by_day: dict[date, float] = defaultdict(float)
    for d in deals:
        if window.contains(d.date):
            by_day[d.date] += float(d.total_value or 0)
    return [RevenuePoint(date=day, revenue=by_day.get(day, 0.0)) for day in window.days()]
