from datetime import date

from fastapi import APIRouter, Depends, Form, Query, Request
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from adroi.core.config import get_settings
from adroi.core.db import get_db
from adroi.core.templates import templates
from adroi.models import ClientNote, CommercialActivity, Deal
from adroi.routes.helpers import confirmation_page, confirmed, parse_date, parse_float, parse_int, redirect
from adroi.services import analytics
from adroi.services import clients as client_service
from adroi.services import commercial as commercial_service
from adroi.services import contracts as contract_service
from adroi.services import deals as deal_service
from adroi.services import insights as insight_service
from adroi.services import notes as note_service
from adroi.services.analytics import DateWindow
from adroi.services.authz import AppContext, require_context, require_role
from adroi.services.gateway import get_scoped, read_or_empty

router = APIRouter(prefix="/clients", tags=["clients"])


def _client_url(client_id: int) -> str:
    return f"/clients/{client_id}"


def _analytics(db: Session, org_id: int, client, window: DateWindow) -> dict:
    campaigns = client_service.get_campaigns(db, org_id, client.id, window)
    metrics = client_service.get_client_metrics(db, org_id, client.id, window)
    deals = deal_service.list_deals(db, org_id, client.id)
    activities = commercial_service.list_activities(db, org_id, client.id)
    stats = analytics.blended_metrics(campaigns, deals, window)
    return {
        "campaigns": campaigns,
        "metrics": metrics,
        "deals": deals,
        "activities": activities,
        "stats": stats,
    }


@router.get("/{client_id}")
def client_view(
    request: Request,
    client_id: int,
    date_range: str = Query("30D", alias="range"),
    start: str | None = None,
    end: str | None = None,
    ctx: AppContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    org_id = ctx.organization_id
    client = client_service.get_client(db, org_id, client_id)
    window = DateWindow.resolve(date_range, start, end)
    data = _analytics(db, org_id, client, window)
    stats = data["stats"]

    notes, notes_error = read_or_empty("notes", lambda: note_service.list_notes(db, org_id, client.id))
    insights, insights_error = read_or_empty("insights", lambda: insight_service.get_saved_insights(db, org_id, client.id))
    in_window = [a for a in data["activities"] if window.contains(a.date)]

    return templates.TemplateResponse(
        request,
        "client_view.html",
        {
            "ctx": ctx,
            "client": client,
            "window": window,
            "range": "CUSTOM" if start and end else date_range.upper(),
            **data,
            "window_deals": [d for d in data["deals"] if window.contains(d.date)],
            "window_activities": in_window,
            "finance": analytics.finance_series(data["metrics"], data["deals"], window),
            "acquisition": analytics.acquisition_series(data["metrics"]),
            "quality": analytics.quality_evolution_series(data["activities"], data["deals"], window),
            "marketing_funnel": analytics.marketing_funnel(data["campaigns"]),
            "commercial_funnel": analytics.commercial_funnel(stats.total_leads, data["activities"], data["deals"], window),
            "funnel_stats": commercial_service.funnel_stats(db, org_id, client.id),
            "target_roas": client.target_roas or 4.0,
            "contract": contract_service.get_client_contract(db, org_id, client.id),
            "notes": notes,
            "insights": insights,
            "error": notes_error or insights_error,
            "public_link": f"{get_settings().public_base_url}/report/{client.id}",
            "today": date.today(),
        },
    )


@router.get("/{client_id}/report.txt")
def client_report_text(
    client_id: int,
    date_range: str = Query("30D", alias="range"),
    start: str | None = None,
    end: str | None = None,
    ctx: AppContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    client = client_service.get_client(db, ctx.organization_id, client_id)
    window = DateWindow.resolve(date_range, start, end)
    data = _analytics(db, ctx.organization_id, client, window)
    text = client_service.build_report_text(client, data["campaigns"], data["stats"], data["activities"], window)
    return PlainTextResponse(text)


@router.get("/{client_id}/campaigns/{campaign_id}/metrics")
def campaign_metrics(
    client_id: int,
    campaign_id: int,
    date_range: str = Query("30D", alias="range"),
    start: str | None = None,
    end: str | None = None,
    ctx: AppContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    client_service.get_client(db, ctx.organization_id, client_id)
    window = DateWindow.resolve(date_range, start, end)
    points = client_service.get_campaign_metrics(db, ctx.organization_id, campaign_id, window)
    return [
        {
            "date": p.date.isoformat(),
            "spend": p.spend,
            "revenue": p.revenue,
            "leads": p.leads,
            "impressions": p.impressions,
            "clicks": p.clicks,
            "purchases": p.purchases,
            "roas": p.roas,
        }
        for p in points
    ]


@router.post("/{client_id}/settings")
def update_client_settings(
    client_id: int,
    target_roas: str = Form(""),
    target_cpa: str = Form(""),
    budget_limit: str = Form(""),
    crm_enabled: str = Form(""),
    ctx: AppContext = Depends(require_role("manager")),
    db: Session = Depends(get_db),
):
    client_service.update_client(
        db,
        ctx.organization_id,
        client_id,
        target_roas=parse_float(target_roas, "Target ROAS"),
        target_cpa=parse_float(target_cpa, "Target CPA"),
        budget_limit=parse_float(budget_limit, "Budget limit"),
        crm_enabled=crm_enabled in {"on", "true", "1", "yes"},
    )
    return redirect(_client_url(client_id), "client-updated")


@router.get("/{client_id}/status")
def confirm_status_change(
    request: Request,
    client_id: int,
    to: str = "paused",
    ctx: AppContext = Depends(require_role("manager")),
    db: Session = Depends(get_db),
):
    client = client_service.get_client(db, ctx.organization_id, client_id)
    verb = "Reactivate" if to == "active" else "Pause"
    return confirmation_page(
        request,
        title=f"{verb} {client.name}?",
        message=f"{client.name} will be marked as {to}.",
        action=f"/clients/{client.id}/status",
        cancel_url="/",
        fields={"status": to},
        danger=to != "active",
    )


@router.post("/{client_id}/status")
def change_status(
    client_id: int,
    status: str = Form(...),
    confirm: str = Form(""),
    ctx: AppContext = Depends(require_role("manager")),
    db: Session = Depends(get_db),
):
    if not confirmed(confirm):
        return redirect("/", "action-cancelled")
    client_service.update_client_status(db, ctx.organization_id, client_id, status)
    return redirect("/", f"client-{status}")


@router.get("/{client_id}/delete")
def confirm_delete_client(
    request: Request,
    client_id: int,
    ctx: AppContext = Depends(require_role("manager")),
    db: Session = Depends(get_db),
):
    client = client_service.get_client(db, ctx.organization_id, client_id)
    return confirmation_page(
        request,
        title=f"Delete {client.name}?",
        message="All campaigns, metrics, deals, tasks and contracts of this client will be removed permanently.",
        action=f"/clients/{client.id}/delete",
        cancel_url="/",
    )


@router.post("/{client_id}/delete")
def delete_client(
    client_id: int,
    confirm: str = Form(""),
    ctx: AppContext = Depends(require_role("manager")),
    db: Session = Depends(get_db),
):
    if not confirmed(confirm):
        return redirect("/", "action-cancelled")
    client_service.delete_client(db, ctx.organization_id, client_id)
    return redirect("/", "client-deleted")


@router.post("/{client_id}/metrics")
def add_manual_metric(
    client_id: int,
    platform: str = Form(...),
    date_value: str = Form(..., alias="date"),
    spend: str = Form("0"),
    impressions: str = Form("0"),
    clicks: str = Form("0"),
    leads: str = Form("0"),
    revenue: str = Form("0"),
    ctx: AppContext = Depends(require_role("manager")),
    db: Session = Depends(get_db),
):
    client_service.add_manual_platform_metric(
        db,
        ctx.organization_id,
        client_id,
        platform=platform,
        day=parse_date(date_value) or date.today(),
        spend=parse_float(spend, "Spend") or 0,
        impressions=parse_float(impressions, "Impressions") or 0,
        clicks=parse_float(clicks, "Clicks") or 0,
        leads=parse_float(leads, "Leads") or 0,
        revenue=parse_float(revenue, "Revenue") or 0,
    )
    return redirect(_client_url(client_id), "metric-saved")


@router.post("/{client_id}/deals")
def create_deal(
    client_id: int,
    date_value: str = Form(..., alias="date"),
    description: str = Form(""),
    quantity: str = Form(""),
    unit_value: str = Form(""),
    total_value: str = Form(""),
    ctx: AppContext = Depends(require_role("manager")),
    db: Session = Depends(get_db),
):
    deal_service.create_deal(
        db,
        ctx.organization_id,
        client_id,
        day=parse_date(date_value) or date.today(),
        description=description,
        quantity=parse_int(quantity, "Quantity"),
        unit_value=parse_float(unit_value, "Unit value"),
        total_value=parse_float(total_value, "Total value"),
    )
    return redirect(_client_url(client_id), "deal-created")


@router.post("/{client_id}/deals/{deal_id}")
def update_deal(
    client_id: int,
    deal_id: int,
    date_value: str = Form("", alias="date"),
    description: str | None = Form(None),
    quantity: str = Form(""),
    unit_value: str = Form(""),
    ctx: AppContext = Depends(require_role("manager")),
    db: Session = Depends(get_db),
):
    deal_service.update_deal(
        db,
        ctx.organization_id,
        deal_id,
        day=parse_date(date_value),
        description=description,
        quantity=parse_int(quantity, "Quantity"),
        unit_value=parse_float(unit_value, "Unit value"),
    )
    return redirect(_client_url(client_id), "deal-updated")


@router.get("/{client_id}/deals/{deal_id}/delete")
def confirm_delete_deal(
    request: Request,
    client_id: int,
    deal_id: int,
    ctx: AppContext = Depends(require_role("manager")),
    db: Session = Depends(get_db),
):
    deal = get_scoped(db, Deal, ctx.organization_id, deal_id)
    return confirmation_page(
        request,
        title="Delete sale?",
        message=f"{deal.description or 'Sale'} of {deal.date.isoformat()} ({deal.total_value:,.2f}) will be removed.",
        action=f"/clients/{client_id}/deals/{deal.id}/delete",
        cancel_url=_client_url(client_id),
    )


@router.post("/{client_id}/deals/{deal_id}/delete")
def delete_deal(
    client_id: int,
    deal_id: int,
    confirm: str = Form(""),
    ctx: AppContext = Depends(require_role("manager")),
    db: Session = Depends(get_db),
):
    if not confirmed(confirm):
        return redirect(_client_url(client_id), "action-cancelled")
    deal_service.delete_deal(db, ctx.organization_id, deal_id)
    return redirect(_client_url(client_id), "deal-deleted")


@router.post("/{client_id}/activities")
def create_activity(
    client_id: int,
    kind: str = Form(...),
    date_value: str = Form(..., alias="date"),
    prospect_name: str = Form(""),
    value: str = Form(""),
    notes: str = Form(""),
    quantity: str = Form(""),
    lead_quality_score: str = Form(""),
    ctx: AppContext = Depends(require_role("manager")),
    db: Session = Depends(get_db),
):
    commercial_service.add_activity(
        db,
        ctx.organization_id,
        client_id,
        kind=kind,
        day=parse_date(date_value) or date.today(),
        prospect_name=prospect_name,
        value=parse_float(value, "Value"),
        notes=notes,
        quantity=parse_int(quantity, "Quantity"),
        lead_quality_score=parse_int(lead_quality_score, "Lead quality"),
    )
    return redirect(_client_url(client_id), f"{kind}-created")


@router.post("/{client_id}/activities/{activity_id}")
def update_activity(
    client_id: int,
    activity_id: int,
    prospect_name: str | None = Form(None),
    value: str = Form(""),
    notes: str | None = Form(None),
    quantity: str = Form(""),
    lead_quality_score: str = Form(""),
    ctx: AppContext = Depends(require_role("manager")),
    db: Session = Depends(get_db),
):
    commercial_service.update_activity(
        db,
        ctx.organization_id,
        activity_id,
        prospect_name=prospect_name,
        value=parse_float(value, "Value"),
        notes=notes,
        quantity=parse_int(quantity, "Quantity"),
        lead_quality_score=parse_int(lead_quality_score, "Lead quality"),
    )
    return redirect(_client_url(client_id), "activity-updated")


@router.get("/{client_id}/activities/{activity_id}/delete")
def confirm_delete_activity(
    request: Request,
    client_id: int,
    activity_id: int,
    ctx: AppContext = Depends(require_role("manager")),
    db: Session = Depends(get_db),
):
    activity = get_scoped(db, CommercialActivity, ctx.organization_id, activity_id)
    return confirmation_page(
        request,
        title=f"Delete {activity.type}?",
        message=f"{activity.prospect_name or activity.type} of {activity.date.isoformat()} will be removed.",
        action=f"/clients/{client_id}/activities/{activity.id}/delete",
        cancel_url=_client_url(client_id),
    )


@router.post("/{client_id}/activities/{activity_id}/delete")
def delete_activity(
    client_id: int,
    activity_id: int,
    confirm: str = Form(""),
    ctx: AppContext = Depends(require_role("manager")),
    db: Session = Depends(get_db),
):
    if not confirmed(confirm):
        return redirect(_client_url(client_id), "action-cancelled")
    commercial_service.delete_activity(db, ctx.organization_id, activity_id)
    return redirect(_client_url(client_id), "activity-deleted")


@router.post("/{client_id}/notes")
def create_note(
    client_id: int,
    title: str = Form(...),
    content: str = Form(""),
    date_value: str = Form("", alias="date"),
    is_pinned: str = Form(""),
    ctx: AppContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    note_service.create_note(
        db,
        ctx.organization_id,
        client_id,
        title=title,
        content=content,
        day=parse_date(date_value),
        is_pinned=is_pinned in {"on", "true", "1"},
    )
    return redirect(_client_url(client_id), "note-created")


@router.post("/{client_id}/notes/{note_id}")
def update_note(
    client_id: int,
    note_id: int,
    title: str | None = Form(None),
    content: str | None = Form(None),
    ctx: AppContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    note_service.update_note(db, ctx.organization_id, note_id, title=title, content=content)
    return redirect(_client_url(client_id), "note-updated")


@router.post("/{client_id}/notes/{note_id}/pin")
def toggle_note_pin(
    client_id: int,
    note_id: int,
    ctx: AppContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    note = get_scoped(db, ClientNote, ctx.organization_id, note_id)
    note_service.update_note(db, ctx.organization_id, note.id, is_pinned=not note.is_pinned)
    return redirect(_client_url(client_id), "note-updated")


@router.get("/{client_id}/notes/{note_id}/delete")
def confirm_delete_note(
    request: Request,
    client_id: int,
    note_id: int,
    ctx: AppContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    note = get_scoped(db, ClientNote, ctx.organization_id, note_id)
    return confirmation_page(
        request,
        title="Delete note?",
        message=f"\"{note.title}\" will be removed.",
        action=f"/clients/{client_id}/notes/{note.id}/delete",
        cancel_url=_client_url(client_id),
    )


@router.post("/{client_id}/notes/{note_id}/delete")
def delete_note(
    client_id: int,
    note_id: int,
    confirm: str = Form(""),
    ctx: AppContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    if not confirmed(confirm):
        return redirect(_client_url(client_id), "action-cancelled")
    note_service.delete_note(db, ctx.organization_id, note_id)
    return redirect(_client_url(client_id), "note-deleted")


@router.post("/{client_id}/contracts")
def create_contract(
    client_id: int,
    kind: str = Form("fixed"),
    start_date: str = Form(...),
    end_date: str = Form(...),
    monthly_value: str = Form("0"),
    commission_percent: str = Form("0"),
    ctx: AppContext = Depends(require_role("admin")),
    db: Session = Depends(get_db),
):
    contract_service.create_contract(
        db,
        ctx.organization_id,
        client_id,
        kind=kind,
        start_date=parse_date(start_date, "Start date") or date.today(),
        end_date=parse_date(end_date, "End date") or date.today(),
        monthly_value=parse_float(monthly_value, "Monthly value") or 0,
        commission_percent=parse_float(commission_percent, "Commission") or 0,
    )
    return redirect(_client_url(client_id), "contract-created")


@router.post("/{client_id}/insights/generate")
def generate_insights(
    client_id: int,
    date_range: str = Query("30D", alias="range"),
    start: str | None = None,
    end: str | None = None,
    ctx: AppContext = Depends(require_role("manager")),
    db: Session = Depends(get_db),
):
    org_id = ctx.organization_id
    client = client_service.get_client(db, org_id, client_id)
    window = DateWindow.resolve(date_range, start, end)
    data = _analytics(db, org_id, client, window)

    drafts = insight_service.generate_insights(client, data["stats"], data["campaigns"], data["metrics"])
    saved = insight_service.save_insights(db, org_id, client.id, drafts)
    if saved:
        return redirect(_client_url(client_id), "analysis-complete")
    toast = "ai-key-missing" if insight_service.MISSING_KEY in drafts else "ai-unavailable"
    return redirect(_client_url(client_id), toast)


@router.post("/{client_id}/insights/{insight_id}/dismiss")
def dismiss_insight(
    client_id: int,
    insight_id: int,
    ctx: AppContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    insight_service.delete_insight(db, ctx.organization_id, insight_id)
    return redirect(_client_url(client_id), "insight-dismissed")
