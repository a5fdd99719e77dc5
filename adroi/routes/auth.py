from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from adroi.core.db import get_db
from adroi.core.logging import get_logger
from adroi.core.security import hash_password, verify_password
from adroi.core.session import clear_session, set_session
from adroi.core.templates import templates
from adroi.models import Organization, User
from adroi.services.gateway import commit

router = APIRouter(tags=["auth"])
log = get_logger("auth")


@router.get("/login")
def login_page(request: Request):
    return templates.TemplateResponse(request, "login.html", {})


@router.post("/login")
def login(request: Request, email: str = Form(...), password: str = Form(...), db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == email.lower().strip(), User.is_active.is_(True)).first()
    if not user or not verify_password(password, user.password_hash):
        log.info("failed login for %s", email.lower().strip())
        return templates.TemplateResponse(
            request,
            "login.html",
            {"error": "Invalid credentials", "email": email},
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    target = "/admin" if user.role == "super_admin" and not user.organization_id else "/"
    response = RedirectResponse(url=target, status_code=status.HTTP_303_SEE_OTHER)
    set_session(response, user.id)
    return response


@router.post("/logout")
def logout():
    response = RedirectResponse(url="/login", status_code=status.HTTP_303_SEE_OTHER)
    clear_session(response)
    return response


@router.get("/register")
def register_page(request: Request):
    return templates.TemplateResponse(request, "register.html", {})


@router.post("/register")
def register(
    request: Request,
    full_name: str = Form(...),
    organization_name: str = Form(...),
    email: str = Form(...),
    password: str = Form(...),
    db: Session = Depends(get_db),
):
    email = email.lower().strip()
    errors = []
    if not full_name.strip() or not organization_name.strip():
        errors.append("Name and agency name are required")
    if len(password) < 8:
        errors.append("Password must have at least 8 characters")
    if db.query(User).filter(User.email == email).first():
        errors.append("Email already registered")
    if errors:
        return templates.TemplateResponse(
            request,
            "register.html",
            {"error": errors[0], "email": email, "full_name": full_name, "organization_name": organization_name},
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    organization = Organization(name=organization_name.strip())
    db.add(organization)
    db.flush()
    user = User(
        organization_id=organization.id,
        email=email,
        full_name=full_name.strip(),
        password_hash=hash_password(password),
        role="admin",
    )
    db.add(user)
    commit(db, "register account")
    log.info("organization %s registered by %s", organization.id, email)

    response = RedirectResponse(url="/?toast=welcome", status_code=status.HTTP_303_SEE_OTHER)
    set_session(response, user.id)
    return response
