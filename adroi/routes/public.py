from datetime import date

from fastapi import APIRouter, Depends, Form, Request, status
from sqlalchemy.orm import Session

from adroi.core.db import get_db
from adroi.core.templates import templates
from adroi.errors import ValidationError
from adroi.services.clients import get_client_public_info
from adroi.services.public_report import SUBMISSION_KINDS, submit_report

router = APIRouter(prefix="/report", tags=["public"])


def _render(request: Request, client: dict | None, **extra):
    status_code = extra.pop("status_code", status.HTTP_200_OK)
    context = {
        "client": client,
        "kinds": SUBMISSION_KINDS,
        "today": date.today().isoformat(),
        "form": {},
        **extra,
    }
    return templates.TemplateResponse(request, "public_report.html", context, status_code=status_code)


@router.get("/{client_id}")
def report_form(request: Request, client_id: int, db: Session = Depends(get_db)):
    client = get_client_public_info(db, client_id)
    if client is None:
        return _render(request, None, status_code=status.HTTP_404_NOT_FOUND)
    return _render(request, client)


@router.post("/{client_id}")
def submit(
    request: Request,
    client_id: int,
    kind: str = Form("weekly"),
    date_value: str = Form("", alias="date"),
    notes: str = Form(""),
    lead_quality: str = Form(""),
    meetings: str = Form(""),
    proposals: str = Form(""),
    sales_count: str = Form(""),
    sales_total_value: str = Form(""),
    prospect_name: str = Form(""),
    description: str = Form(""),
    value: str = Form(""),
    quantity: str = Form(""),
    db: Session = Depends(get_db),
):
    client = get_client_public_info(db, client_id)
    if client is None:
        return _render(request, None, status_code=status.HTTP_404_NOT_FOUND)

    form = {
        "kind": kind,
        "date": date_value,
        "notes": notes,
        "lead_quality": lead_quality,
        "meetings": meetings,
        "proposals": proposals,
        "sales_count": sales_count,
        "sales_total_value": sales_total_value,
        "prospect_name": prospect_name,
        "description": description,
        "value": value,
        "quantity": quantity,
    }
    try:
        submit_report(db, client_id, form)
    except ValidationError as exc:
        return _render(request, client, error=exc.message, form=form, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)
    return _render(request, client, success=True)
