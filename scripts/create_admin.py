import argparse
import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from adroi.core.db import SessionLocal
from adroi.core.security import hash_password
from adroi.models import Organization, User
from adroi.services.authz import ROLE_ORDER


def run(email: str, password: str, organization_name: str | None, role: str, full_name: str):
    db = SessionLocal()
    try:
        organization = None
        if organization_name:
            organization = db.query(Organization).filter(Organization.name == organization_name).first()
            if not organization:
                organization = Organization(name=organization_name)
                db.add(organization)
                db.flush()

        email = email.lower().strip()
        user = db.query(User).filter(User.email == email).first()
        if not user:
            user = User(email=email, full_name=full_name, password_hash=hash_password(password))
            db.add(user)
        user.role = role
        user.organization_id = organization.id if organization else None

        db.commit()
        print(f"User ready: {email} ({role}) @ {organization.name if organization else 'platform'}")
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument("--organization", default=None, help="omit for a platform-only super admin")
    parser.add_argument("--role", default="admin", choices=list(ROLE_ORDER))
    parser.add_argument("--name", default="Admin User")
    args = parser.parse_args()
    if args.role != "super_admin" and not args.organization:
        parser.error("--organization is required unless --role super_admin")
    run(args.email, args.password, args.organization, args.role, args.name)
