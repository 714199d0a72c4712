"""
utils/auth.py

Password hashing and the signed access token used as the bearer credential.

Tokens are HS256 JWTs carrying ``sub`` (user id), ``email``, ``role``,
``iat`` and ``exp``. ``decode_token`` never raises for client-supplied input:
it returns either the verified claims or a ``TokenError``.
"""

import enum
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

import bcrypt
import jwt

from estate_api.core.config import PLACEHOLDER_SECRET_KEY, settings


# ─── Passwords ────────────────────────────────────────────────────────────────

def get_password_hash(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Over-long password or a hash bcrypt cannot parse
        return False


# ─── Access tokens ────────────────────────────────────────────────────────────

class TokenError(str, enum.Enum):
    EXPIRED = "expired"
    MALFORMED = "malformed"
    MISSING_CLAIM = "missing_claim"


@dataclass(frozen=True)
class TokenClaims:
    subject: str
    email: Optional[str]
    role: Optional[str]
    issued_at: Optional[datetime]
    expires_at: datetime


def _signing_key(secret_key: Optional[str]) -> str:
    return secret_key if secret_key is not None else settings.SECRET_KEY


def create_access_token(
    data: dict,
    expires_delta: Optional[timedelta] = None,
    secret_key: Optional[str] = None,
) -> str:
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"iat": now, "exp": expire})
    return jwt.encode(to_encode, _signing_key(secret_key), algorithm=settings.ALGORITHM)


def create_user_token(user, expires_delta: Optional[timedelta] = None) -> str:
    return create_access_token(
        data={
            "sub": str(user.id),
            "email": user.email,
            "role": user.role.value,
        },
        expires_delta=expires_delta,
    )


def decode_token(token: str, secret_key: Optional[str] = None) -> Union[TokenClaims, TokenError]:
    key = _signing_key(secret_key)
    if settings.is_production and (not key or key == PLACEHOLDER_SECRET_KEY):
        # Never trust a well-known key in production
        return TokenError.MALFORMED

    try:
        payload = jwt.decode(
            token,
            key,
            algorithms=[settings.ALGORITHM],
            options={"require": ["exp"]},
        )
    except jwt.ExpiredSignatureError:
        return TokenError.EXPIRED
    except jwt.InvalidTokenError:
        return TokenError.MALFORMED

    subject = payload.get("sub")
    if not subject or not isinstance(subject, str):
        return TokenError.MISSING_CLAIM

    issued_at = payload.get("iat")
    return TokenClaims(
        subject=subject,
        email=payload.get("email"),
        role=payload.get("role"),
        issued_at=datetime.fromtimestamp(issued_at, tz=timezone.utc) if issued_at else None,
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    )
