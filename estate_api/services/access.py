"""
Authorization rules.

Owner-scoped property routes are owner-only, admins included: admins change
listings only through the moderation endpoints. Role checks always look at
the user row loaded for the current request, never at the role copied into
the token.
"""
from typing import Optional

from estate_api.core.exceptions import Forbidden
from estate_api.models.property import Property
from estate_api.models.user import User, UserRole
from estate_api.services.identity import Principal


def can_mutate_property(principal: Principal, prop: Property) -> bool:
    return principal.id == prop.owner_id


def owned_by(principal: Principal):
    """SQL form of ``can_mutate_property`` for single-statement conditional writes."""
    return Property.owner_id == principal.id


def require_role(user: Optional[User], role: UserRole) -> User:
    if user is None or user.role != role:
        raise Forbidden("You do not have administrative permissions" if role == UserRole.ADMIN else None)
    return user
