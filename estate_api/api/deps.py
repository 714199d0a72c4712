from fastapi import Depends
from fastapi.security import APIKeyHeader
from sqlalchemy.orm import Session
from estate_api.core.database import get_db
from estate_api.core.exceptions import ApiError, UnknownUser
from estate_api.models.user import User, UserRole
from estate_api.services.access import require_role as check_role
from estate_api.services.identity import Principal, resolve_principal
from typing import Optional

# Raw header so malformed schemes can be told apart from missing credentials
authorization_header = APIKeyHeader(
    name="Authorization",
    auto_error=False,
    description="Bearer <access token>",
)


def get_current_principal(
    db: Session = Depends(get_db),
    authorization: Optional[str] = Depends(authorization_header),
) -> Principal:
    return resolve_principal(db, authorization)


def get_optional_principal(
    db: Session = Depends(get_db),
    authorization: Optional[str] = Depends(authorization_header),
) -> Optional[Principal]:
    if not authorization:
        return None
    try:
        return resolve_principal(db, authorization)
    except ApiError:
        return None


def get_current_user(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> User:
    user = db.get(User, principal.id)
    # resolve_principal just loaded it; a concurrent delete is the only way here
    if user is None:
        raise UnknownUser()
    return user


def require_role(role: UserRole):
    def role_checker(
        db: Session = Depends(get_db),
        principal: Principal = Depends(get_current_principal),
    ) -> User:
        # Fresh read: the role inside the token may be stale
        db.expire_all()
        return check_role(db.get(User, principal.id), role)
    return role_checker
