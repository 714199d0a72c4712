"""
scripts/create_admin.py

Run this from your project root to create the first admin user:

    python -m scripts.create_admin

You will be prompted for name, email, phone, and password. If an account
with that email already exists it is promoted to admin and re-activated.
This is the only way an account becomes an admin.
"""

import getpass
import sys

from pydantic import ValidationError
from sqlalchemy import select

from estate_api.core.config import settings
from estate_api.core.database import build_engine, build_session_factory, init_db
from estate_api.models.user import User, UserRole
from estate_api.schemas.user import UserCreate
from estate_api.utils.auth import get_password_hash


def provision_admin(db, name: str, email: str, phone: str, password: str) -> User:
    """Create the admin, or promote the existing account with this email."""
    email = email.lower()
    user = db.execute(select(User).where(User.email == email)).scalar_one_or_none()

    if user is None:
        user = User(
            name=name,
            email=email,
            phone=phone,
            password_hash=get_password_hash(password),
            role=UserRole.ADMIN,
            is_active=True,
            is_verified=True,
        )
        db.add(user)
    else:
        user.role = UserRole.ADMIN
        user.is_active = True
        user.is_verified = True

    db.commit()
    db.refresh(user)
    return user


def create_admin():
    print("\n── Create Admin User ─────────────────────")

    name     = input("Full name:       ").strip()
    email    = input("Email:           ").strip()
    phone    = input("Phone (07...):   ").strip()
    password = getpass.getpass("Password:        ").strip()

    # Same validation rules as self-service registration
    try:
        data = UserCreate(
            name=name,
            email=email,
            phone=phone,
            password=password,
            confirm_password=password,
        )
    except ValidationError as e:
        print("❌ Invalid input:")
        for error in e.errors():
            field = ".".join(str(part) for part in error["loc"]) or "input"
            print(f"   {field}: {error['msg']}")
        sys.exit(1)

    engine = build_engine(settings.DATABASE_URL)
    init_db(engine)
    db = build_session_factory(engine)()
    try:
        admin = provision_admin(db, data.name, data.email, data.phone, data.password)

        print(f"\n✅ Admin user ready!")
        print(f"   ID:    {admin.id}")
        print(f"   Name:  {admin.name}")
        print(f"   Email: {admin.email}")
        print(f"   Role:  {admin.role.value}")
        print(f"\nYou can now log in at /api/v1/admin/auth/login.\n")

    except Exception as e:
        db.rollback()
        print(f"❌ Failed: {e}")
        sys.exit(1)
    finally:
        db.close()
        engine.dispose()


if __name__ == "__main__":
    create_admin()
