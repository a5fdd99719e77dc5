from fastapi import APIRouter, Depends, Form, HTTPException, Request, status
from sqlalchemy.orm import Session

from adroi.core.db import get_db
from adroi.core.templates import templates
from adroi.errors import ValidationError
from adroi.routes.helpers import redirect
from adroi.services.authz import AppContext, has_role, require_context
from adroi.services.gateway import commit

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("")
def settings_page(request: Request, ctx: AppContext = Depends(require_context)):
    return templates.TemplateResponse(
        request,
        "settings.html",
        {"ctx": ctx, "can_edit_org": has_role(ctx.user, "admin")},
    )


@router.post("/profile")
def update_profile(
    full_name: str = Form(...),
    ctx: AppContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    if not full_name.strip():
        raise ValidationError("Name is required", toast="name-required")
    ctx.user.full_name = full_name.strip()
    commit(db, "update profile")
    return redirect("/settings", "profile-updated")


@router.post("/organization")
def update_organization(
    name: str = Form(...),
    ctx: AppContext = Depends(require_context),
    db: Session = Depends(get_db),
):
    if not has_role(ctx.user, "admin"):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
    if not name.strip():
        raise ValidationError("Agency name is required", toast="name-required")
    ctx.organization.name = name.strip()
    commit(db, "update organization")
    return redirect("/settings", "organization-updated")
