from fastapi import APIRouter, Depends, Form, Query, Request
from sqlalchemy.orm import Session

from adroi.core.db import get_db
from adroi.core.templates import templates
from adroi.routes.helpers import redirect
from adroi.services import clients as client_service
from adroi.services import contracts as contract_service
from adroi.services.analytics import DateWindow
from adroi.services.authz import AppContext, require_context, require_role
from adroi.services.gateway import read_or_empty

router = APIRouter(tags=["dashboard"])


@router.get("/")
def dashboard(
    request: Request,
    date_range: str = Query("30D", alias="range"),
    start: str | None = None,
    end: str | None = None,
    ctx: AppContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    window = DateWindow.resolve(date_range, start, end)
    org_id = ctx.organization_id
    overviews, error = read_or_empty("clients", lambda: client_service.list_clients(db, org_id, window))
    contracts, contract_error = read_or_empty("contracts", lambda: contract_service.get_active_contracts(db, org_id))

    totals = {
        "spend": sum(o.total_spend for o in overviews),
        "revenue": sum(o.total_revenue for o in overviews),
        "leads": sum(o.total_leads for o in overviews),
        "active": sum(1 for o in overviews if o.client.status == "active"),
    }
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {
            "ctx": ctx,
            "overviews": overviews,
            "contracts": contracts,
            "totals": totals,
            "window": window,
            "range": "CUSTOM" if start and end else date_range.upper(),
            "error": error or contract_error,
        },
    )


@router.post("/clients")
def create_client(
    name: str = Form(...),
    company: str = Form(""),
    email: str = Form(""),
    ad_account_id: str = Form(""),
    ctx: AppContext = Depends(require_role("manager")),
    db: Session = Depends(get_db),
):
    client_service.create_client(
        db,
        ctx.organization_id,
        name=name,
        company=company,
        email=email,
        ad_account_id=ad_account_id,
    )
    return redirect("/", "client-created")
