"""
Resolve the ``Authorization`` header of a request into an authenticated
principal.

Every call re-reads the user so deactivation takes effect on the next
request. Rejections are all 401s; only an expired token gets its own
message, every other token failure collapses into the generic one.
"""
import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from estate_api.core.exceptions import (
    AccountDisabled,
    MalformedCredential,
    TokenExpired,
    Unauthenticated,
    UnknownUser,
)
from estate_api.models.user import User, UserRole
from estate_api.utils.auth import TokenError, decode_token

logger = logging.getLogger(__name__)

AUTH_SCHEME = "Bearer"
MIN_TOKEN_LENGTH = 10
MAX_TOKEN_LENGTH = 500


@dataclass(frozen=True)
class Principal:
    id: UUID
    email: str
    role: UserRole


def extract_bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise Unauthenticated("Authentication token is required")

    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != AUTH_SCHEME:
        raise MalformedCredential()

    token = parts[1]
    if not MIN_TOKEN_LENGTH <= len(token) <= MAX_TOKEN_LENGTH:
        raise MalformedCredential("Invalid token")
    return token


def resolve_principal(db: Session, authorization: Optional[str]) -> Principal:
    token = extract_bearer_token(authorization)

    claims = decode_token(token)
    if claims is TokenError.EXPIRED:
        raise TokenExpired()
    if isinstance(claims, TokenError):
        logger.warning("Rejected bearer token: %s", claims.value)
        raise Unauthenticated("Invalid token")

    try:
        user_id = UUID(claims.subject)
    except ValueError:
        logger.warning("Rejected bearer token: subject is not a user id")
        raise Unauthenticated("Invalid token")

    user = db.get(User, user_id)
    if user is None:
        raise UnknownUser()
    if not user.is_active:
        raise AccountDisabled()

    return Principal(id=user.id, email=user.email, role=user.role)
