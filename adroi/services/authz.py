from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from adroi.core.db import get_db
from adroi.core.session import read_session
from adroi.models import Organization, User

ROLE_ORDER = {"client": 1, "manager": 2, "admin": 3, "super_admin": 4}


@dataclass
class AppContext:
    user: User
    organization: Organization

    @property
    def organization_id(self) -> int:
        return self.organization.id

    @property
    def role(self) -> str:
        return self.user.role


def _find_current_user(request: Request, db: Session) -> User:
    user_id = read_session(request)
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    user = db.query(User).filter(User.id == user_id, User.is_active.is_(True)).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid session")
    return user


def require_context(request: Request, db: Session = Depends(get_db)) -> AppContext:
    user = _find_current_user(request, db)
    if not user.organization_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="No organization")

    organization = db.query(Organization).filter(Organization.id == user.organization_id).first()
    if not organization:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Organization unavailable")

    return AppContext(user=user, organization=organization)


def has_role(user: User, min_role: str) -> bool:
    return ROLE_ORDER.get(user.role, 0) >= ROLE_ORDER.get(min_role, 0)


def require_role(min_role: str):
    def _dep(ctx: AppContext = Depends(require_context)) -> AppContext:
        if not has_role(ctx.user, min_role):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
        return ctx

    return _dep


def require_super_admin(request: Request, db: Session = Depends(get_db)) -> User:
    user = _find_current_user(request, db)
    if user.role != "super_admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Super admin only")
    return user
