"""Cross-tenant reporting for super admins, exposed as named procedures."""
from sqlalchemy import func
from sqlalchemy.orm import Session

from adroi.errors import NotFoundError, ValidationError
from adroi.models import Client, Organization, Project, User
from adroi.services.authz import ROLE_ORDER
from adroi.services.gateway import call_procedure, commit, procedure


def _counts(db: Session, model, *criteria) -> dict[int, int]:
    rows = db.query(model.organization_id, func.count(model.id)).filter(*criteria).group_by(model.organization_id).all()
    return {org_id: count for org_id, count in rows if org_id is not None}


@procedure("sa_get_organizations_metrics")
def organizations_metrics(db: Session) -> list[dict]:
    users = _counts(db, User)
    clients = _counts(db, Client)
    active = _counts(db, Client, Client.status == "active")
    projects = _counts(db, Project)
    return [
        {
            "id": org.id,
            "name": org.name,
            "created_at": org.created_at,
            "total_users": users.get(org.id, 0),
            "total_clients": clients.get(org.id, 0),
            "active_clients": active.get(org.id, 0),
            "total_projects": projects.get(org.id, 0),
        }
        for org in db.query(Organization).order_by(Organization.created_at.desc(), Organization.id.desc()).all()
    ]


@procedure("sa_get_all_users")
def all_users(db: Session) -> list[dict]:
    rows = (
        db.query(User, Organization.name)
        .outerjoin(Organization, Organization.id == User.organization_id)
        .order_by(User.created_at.desc(), User.id.desc())
        .all()
    )
    return [
        {
            "id": user.id,
            "email": user.email,
            "full_name": user.full_name,
            "role": user.role,
            "organization_name": org_name or "",
            "created_at": user.created_at,
        }
        for user, org_name in rows
    ]


def get_all_organizations(db: Session, search: str = "") -> list[dict]:
    term = search.strip().lower()
    orgs = call_procedure(db, "sa_get_organizations_metrics")
    if not term:
        return orgs
    return [o for o in orgs if term in o["name"].lower() or term == str(o["id"])]


def get_all_users(db: Session, search: str = "") -> list[dict]:
    term = search.strip().lower()
    users = call_procedure(db, "sa_get_all_users")
    if not term:
        return users
    return [
        u
        for u in users
        if term in (u["email"] or "").lower() or term in (u["full_name"] or "").lower() or term in u["organization_name"].lower()
    ]


def update_user_role(db: Session, user_id: int, role: str) -> User:
    if role not in ROLE_ORDER:
        raise ValidationError(f"Unknown role {role}", toast="invalid-role")
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError(f"User {user_id} not found", toast="user-not-found")
    user.role = role
    commit(db, "update user role")
    return user
