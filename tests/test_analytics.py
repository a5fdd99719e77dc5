from datetime import date
from types import SimpleNamespace

import pytest

from adroi.errors import ValidationError
from adroi.services import analytics
from adroi.services.analytics import CampaignStats, DailyMetric, DateWindow

TODAY = date(2026, 3, 15)


def _deal(day, total, quantity=1):
    return SimpleNamespace(date=day, total_value=total, quantity=quantity)


def _activity(day, kind, quantity=None, score=None, value=0):
    return SimpleNamespace(date=day, type=kind, quantity=quantity, lead_quality_score=score, value=value)


def _campaign(spend, revenue, leads=0, **extra):
    return CampaignStats(id=1, name="C", platform="meta", status="ACTIVE", spend=spend, revenue=revenue, leads=leads, **extra)


def test_presets_resolve_relative_to_today():
    assert DateWindow.preset("7D", TODAY) == DateWindow(date(2026, 3, 8), TODAY)
    assert DateWindow.preset("30d", TODAY).start == date(2026, 2, 13)
    assert DateWindow.preset("YESTERDAY", TODAY) == DateWindow(date(2026, 3, 14), date(2026, 3, 14))
    assert DateWindow.preset("THIS_MONTH", TODAY) == DateWindow(date(2026, 3, 1), TODAY)


def test_custom_range_wins_over_preset_and_rejects_inverted_dates():
    window = DateWindow.resolve("7D", "2026-01-01", "2026-01-31", today=TODAY)
    assert window.span_days == 30
    assert len(window.days()) == 31

    with pytest.raises(ValidationError):
        DateWindow.resolve(None, "2026-02-01", "2026-01-01")
    with pytest.raises(ValidationError):
        DateWindow.resolve(None, "2026-02-30", "2026-03-01")
    with pytest.raises(ValidationError):
        DateWindow.preset("90D", TODAY)


def test_zero_spend_never_divides():
    stats = analytics.blended_metrics([_campaign(0, 500)], [_deal(TODAY, 100)], DateWindow(TODAY, TODAY))
    assert stats.roas == 0
    assert stats.roi == 0
    assert stats.cpl == 0
    assert DailyMetric(date=TODAY, revenue=50).roas == 0


def test_offline_revenue_boundaries_are_inclusive():
    window = DateWindow(date(2026, 3, 1), date(2026, 3, 10))
    deals = [
        _deal(date(2026, 3, 1), 10),
        _deal(date(2026, 3, 10), 20),
        _deal(date(2026, 2, 28), 1000),
        _deal(date(2026, 3, 11), 1000),
    ]
    assert analytics.offline_revenue(deals, window) == 30


def test_blended_scenario_with_offline_deal():
    window = DateWindow.preset("7D", TODAY)
    stats = analytics.blended_metrics([_campaign(1000, 3000, leads=50)], [_deal(date(2026, 3, 12), 2000)], window)

    assert stats.total_revenue == 5000
    assert stats.roas == 5.0
    assert stats.roi == 4.0
    assert stats.cpl == 20


def test_activity_quantity_sums_quantity_and_defaults_missing_to_one():
    activities = [
        _activity(TODAY, "meeting", quantity=3),
        _activity(TODAY, "meeting", quantity=None),
        _activity(TODAY, "meeting", quantity=2),
        _activity(TODAY, "proposal", quantity=5),
        _activity(date(2025, 1, 1), "meeting", quantity=10),
    ]
    assert analytics.activity_quantity(activities, "meeting", DateWindow.preset("7D", TODAY)) == 6
    assert analytics.activity_quantity(activities, "proposal") == 5


def test_aggregate_by_date_sums_rows_per_day_in_order():
    rows = [
        SimpleNamespace(date=date(2026, 3, 2), spend=10, revenue=30, leads=1, impressions=100, clicks=5, purchases=1),
        SimpleNamespace(date=date(2026, 3, 1), spend=5, revenue=0, leads=0, impressions=50, clicks=1, purchases=0),
        SimpleNamespace(date=date(2026, 3, 2), spend=10, revenue=10, leads=1, impressions=100, clicks=5, purchases=None),
    ]
    points = analytics.aggregate_by_date(rows)

    assert [p.date for p in points] == [date(2026, 3, 1), date(2026, 3, 2)]
    assert points[1].spend == 20
    assert points[1].roas == 2.0
    assert points[1].purchases == 1


def test_finance_series_only_has_metric_dates():
    window = DateWindow(date(2026, 3, 1), date(2026, 3, 5))
    metrics = [DailyMetric(date=date(2026, 3, 2), spend=100, revenue=200)]
    deals = [_deal(date(2026, 3, 2), 50), _deal(date(2026, 3, 4), 70)]

    series = analytics.finance_series(metrics, deals, window)

    assert len(series) == 1
    assert series[0].offline_revenue == 50
    assert series[0].blended_revenue == 250


def test_funnels_keep_real_values_and_size_zero_stages():
    marketing = analytics.marketing_funnel([_campaign(10, 0, leads=4, impressions=1000, clicks=40, purchases=0)])
    assert [s.value for s in marketing.stages] == [1000, 40, 4, 0]
    assert marketing.stages[-1].chart_value == 1
    assert not marketing.independent_stages

    window = DateWindow.preset("7D", TODAY)
    commercial = analytics.commercial_funnel(
        12,
        [_activity(TODAY, "meeting", quantity=4), _activity(TODAY, "proposal")],
        [_deal(TODAY, 100, quantity=3), _deal(date(2025, 1, 1), 100)],
        window,
    )
    assert [s.value for s in commercial.stages] == [12, 4, 1, 1]
    assert commercial.independent_stages


def test_quality_evolution_is_zero_filled_with_rounded_average():
    window = DateWindow(date(2026, 3, 1), date(2026, 3, 3))
    activities = [
        _activity(date(2026, 3, 1), "meeting", score=4),
        _activity(date(2026, 3, 1), "meeting", score=5),
        _activity(date(2026, 3, 1), "meeting", score=5),
        _activity(date(2026, 3, 2), "proposal", quantity=2),
    ]
    series = analytics.quality_evolution_series(activities, [_deal(date(2026, 3, 3), 10, quantity=2)], window)

    assert len(series) == 3
    assert series[0].avg_lead_quality == 4.7
    assert series[1].proposals == 2
    assert series[1].avg_lead_quality is None
    assert series[2].sales == 2


def test_daily_revenue_series_has_one_point_per_day():
    window = DateWindow(date(2026, 3, 1), date(2026, 3, 7))
    series = analytics.daily_revenue_series([_deal(date(2026, 3, 3), 99), _deal(date(2026, 3, 3), 1)], window)

    assert len(series) == 7
    assert series[2].revenue == 100
    assert sum(p.revenue for p in series) == 100
