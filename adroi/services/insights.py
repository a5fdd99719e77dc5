import json
from dataclasses import dataclass

import requests
from sqlalchemy.orm import Session

from adroi.core.config import Settings, get_settings
from adroi.core.logging import get_logger
from adroi.models import Client, Insight
from adroi.services.analytics import BlendedMetrics, CampaignStats, DailyMetric
from adroi.services.gateway import commit, get_scoped, scoped

log = get_logger("insights")

INSIGHT_TYPES = ("critical", "opportunity", "warning", "info")

SYSTEM_INSTRUCTION = """
You are "AdRoi Intelligence", a senior traffic manager and data analyst for Meta Ads and Google Ads.
Analyze the JSON payload with client goals, campaign performance and recent trend.

Identify anomalies, opportunities and budget pacing issues:
1. ROAS below target_roas is CRITICAL or WARNING.
2. CPA above target_cpa is a WARNING.
3. A campaign with high spend and ROAS below 1.5 should be paused (CRITICAL).
4. A campaign with ROAS above 1.5x the target should be scaled (OPPORTUNITY).
5. Warn when spend is projected to exceed budget_limit.

Return strictly a JSON array of insights. Keep titles under five words and descriptions actionable.
"""

RESPONSE_SCHEMA = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "type": {"type": "STRING", "enum": list(INSIGHT_TYPES)},
            "title": {"type": "STRING"},
            "description": {"type": "STRING"},
            "recommendation": {"type": "STRING"},
        },
        "required": ["type", "title", "description", "recommendation"],
    },
}


@dataclass
class InsightDraft:
    type: str
    title: str
    description: str
    recommendation: str
    # static placeholder shown when the provider is unusable; never stored
    fallback: bool = False


MISSING_KEY = InsightDraft(
    type="warning",
    title="AI key missing",
    description="The Gemini API key is not configured.",
    recommendation="Set GEMINI_API_KEY in the environment to enable AI analysis.",
    fallback=True,
)

UNAVAILABLE = InsightDraft(
    type="info",
    title="Analysis unavailable",
    description="Could not reach the AI provider right now. Try again later.",
    recommendation="Check the network connection and the API key.",
    fallback=True,
)


def _avg_roas(points: list[DailyMetric]) -> float:
    return sum(p.roas for p in points) / (len(points) or 1)


def build_context(client: Client, stats: BlendedMetrics, campaigns: list[CampaignStats], metrics: list[DailyMetric]) -> dict:
    top = sorted(campaigns, key=lambda c: c.roas, reverse=True)[:3]
    bottom = sorted((c for c in campaigns if c.spend > 0), key=lambda c: c.roas)[:3]
    recent = sorted(metrics, key=lambda m: m.date, reverse=True)

    return {
        "client": client.company or client.name,
        "goals": {
            "target_roas": client.target_roas or 4.0,
            "target_cpa": client.target_cpa or 50.0,
            "budget_limit": client.budget_limit or 10000,
        },
        "current_performance": {
            "total_spend": stats.total_spend,
            "total_revenue": stats.total_revenue,
            "total_roas": stats.roas,
            "total_leads": stats.total_leads,
        },
        "campaign_highlights": {
            "top_3_roas": [{"name": c.name, "roas": c.roas, "spend": c.spend} for c in top],
            "bottom_3_roas": [{"name": c.name, "roas": c.roas, "spend": c.spend} for c in bottom],
        },
        "recent_trend": {
            "last_3_days_avg_roas": _avg_roas(recent[:3]),
            "prev_3_days_avg_roas": _avg_roas(recent[3:6]),
        },
    }


def _parse_drafts(payload: dict) -> list[InsightDraft]:
    text = payload["candidates"][0]["content"]["parts"][0]["text"]
    items = json.loads(text)
    if not isinstance(items, list):
        raise ValueError("expected a JSON array of insights")
    drafts = []
    for item in items:
        kind = item.get("type")
        drafts.append(
            InsightDraft(
                type=kind if kind in INSIGHT_TYPES else "info",
                title=str(item.get("title", "")).strip()[:200],
                description=str(item.get("description", "")),
                recommendation=str(item.get("recommendation", "")),
            )
        )
    return drafts


def generate_insights(
    client: Client,
    stats: BlendedMetrics,
    campaigns: list[CampaignStats],
    metrics: list[DailyMetric],
    settings: Settings | None = None,
) -> list[InsightDraft]:
    """Ask the AI provider for recommendations. Never raises: failures become one static insight."""
    settings = settings or get_settings()
    if not settings.gemini_api_key:
        return [MISSING_KEY]

    body = {
        "systemInstruction": {"parts": [{"text": SYSTEM_INSTRUCTION}]},
        "contents": [{"role": "user", "parts": [{"text": json.dumps(build_context(client, stats, campaigns, metrics))}]}],
        "generationConfig": {
            "responseMimeType": "application/json",
            "responseSchema": RESPONSE_SCHEMA,
            "temperature": 0.4,
        },
    }
    try:
        response = requests.post(
            f"{settings.gemini_api_url}/{settings.gemini_model}:generateContent",
            params={"key": settings.gemini_api_key},
            headers={"Content-Type": "application/json"},
            json=body,
            timeout=settings.ai_timeout_seconds,
        )
        response.raise_for_status()
        return _parse_drafts(response.json())
    except (requests.RequestException, ValueError, KeyError, IndexError, TypeError, AttributeError) as exc:
        log.warning("AI analysis failed for client %s: %s", client.id, exc)
        return [UNAVAILABLE]


def save_insights(db: Session, organization_id: int, client_id: int, drafts: list[InsightDraft]) -> int:
    rows = [
        Insight(
            organization_id=organization_id,
            client_id=client_id,
            type=d.type,
            title=d.title,
            description=d.description,
            recommendation=d.recommendation,
        )
        for d in drafts
        if not d.fallback
    ]
    if not rows:
        return 0
    db.add_all(rows)
    commit(db, "save insights")
    return len(rows)


def get_saved_insights(db: Session, organization_id: int, client_id: int) -> list[Insight]:
    return (
        scoped(db, Insight, organization_id)
        .filter(Insight.client_id == client_id)
        .order_by(Insight.created_at.desc(), Insight.id.desc())
        .all()
    )


def delete_insight(db: Session, organization_id: int, insight_id: int) -> None:
    insight = get_scoped(db, Insight, organization_id, insight_id)
    db.delete(insight)
    commit(db, "delete insight")
