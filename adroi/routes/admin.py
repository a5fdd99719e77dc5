from fastapi import APIRouter, Depends, Form, Request
from sqlalchemy.orm import Session

from adroi.core.db import get_db
from adroi.core.templates import templates
from adroi.errors import GatewayError
from adroi.models import User
from adroi.routes.helpers import redirect
from adroi.services import admin as admin_service
from adroi.services.authz import ROLE_ORDER, require_super_admin

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("")
def admin_page(
    request: Request,
    tab: str = "orgs",
    q: str = "",
    user: User = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    organizations: list[dict] = []
    users: list[dict] = []
    error = None
    try:
        organizations = admin_service.get_all_organizations(db, q)
        users = admin_service.get_all_users(db, q)
    except GatewayError as exc:
        error = exc.message

    return templates.TemplateResponse(
        request,
        "admin.html",
        {
            "user": user,
            "tab": tab if tab in {"orgs", "users"} else "orgs",
            "q": q,
            "organizations": organizations,
            "users": users,
            "roles": list(ROLE_ORDER),
            "error": error,
        },
    )


@router.post("/users/{user_id}/role")
def change_role(
    user_id: int,
    role: str = Form(...),
    user: User = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    admin_service.update_user_role(db, user_id, role)
    return redirect("/admin?tab=users", "role-updated")
