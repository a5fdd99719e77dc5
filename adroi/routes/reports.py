from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import Response
from sqlalchemy.orm import Session

from adroi.core.db import get_db
from adroi.core.templates import templates
from adroi.services import analytics
from adroi.services import deals as deal_service
from adroi.services.analytics import DateWindow
from adroi.services.authz import AppContext, require_role
from adroi.services.gateway import read_or_empty

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("")
def reports_page(
    request: Request,
    date_range: str = Query("THIS_MONTH", alias="range"),
    start: str | None = None,
    end: str | None = None,
    ctx: AppContext = Depends(require_role("manager")),
    db: Session = Depends(get_db),
):
    window = DateWindow.resolve(date_range, start, end, default="THIS_MONTH")
    deals, error = read_or_empty("reports", lambda: deal_service.list_all_deals(db, ctx.organization_id, window))
    return templates.TemplateResponse(
        request,
        "reports.html",
        {
            "ctx": ctx,
            "window": window,
            "range": "CUSTOM" if start and end else date_range.upper(),
            "deals": deals,
            "summary": deal_service.deals_summary(deals),
            "evolution": analytics.daily_revenue_series(deals, window),
            "error": error,
        },
    )


@router.get("/deals.csv")
def export_deals(
    date_range: str = Query("THIS_MONTH", alias="range"),
    start: str | None = None,
    end: str | None = None,
    ctx: AppContext = Depends(require_role("manager")),
    db: Session = Depends(get_db),
):
    window = DateWindow.resolve(date_range, start, end, default="THIS_MONTH")
    deals = deal_service.list_all_deals(db, ctx.organization_id, window)
    filename = f"sales_{window.start.isoformat()}_{window.end.isoformat()}.csv"
    return Response(
        content=deal_service.deals_csv(deals),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
