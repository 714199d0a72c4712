"""
Property moderation lifecycle.

``status`` and ``is_published`` only ever change together: every transition
is computed by ``transition`` as a complete ``ModerationState`` and written
with one UPDATE statement, so a listing is published exactly when it is
approved.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional, Union
from uuid import UUID

from sqlalchemy import and_, update
from sqlalchemy.orm import Session

from estate_api.core.exceptions import InvalidStatus, NotFound
from estate_api.models.base import utcnow
from estate_api.models.property import Property, PropertyStatus

logger = logging.getLogger(__name__)

# Targets reachable through admin moderation
MODERATION_TARGETS = frozenset({
    PropertyStatus.PENDING,
    PropertyStatus.APPROVED,
    PropertyStatus.REJECTED,
})

# Never taken from an owner's create/update payload
PROTECTED_FIELDS = frozenset({
    "id",
    "owner_id",
    "owner",
    "status",
    "is_published",
    "published_at",
    "featured",
    "view_count",
    "contact_count",
    "favorite_count",
    "share_count",
    "reviews",
    "average_rating",
    "total_reviews",
    "sold_date",
    "sold_to",
    "created_at",
    "updated_at",
})


@dataclass(frozen=True)
class ModerationState:
    status: PropertyStatus
    is_published: bool
    published_at: Optional[datetime]
    updated_at: Optional[datetime]

    @classmethod
    def of(cls, prop: Property) -> "ModerationState":
        return cls(
            status=prop.status,
            is_published=prop.is_published,
            published_at=prop.published_at,
            updated_at=prop.updated_at,
        )

    def as_values(self) -> dict:
        return {
            "status": self.status,
            "is_published": self.is_published,
            "published_at": self.published_at,
            "updated_at": self.updated_at,
        }


def initial_state(now: Optional[datetime] = None) -> ModerationState:
    return ModerationState(
        status=PropertyStatus.PENDING,
        is_published=False,
        published_at=None,
        updated_at=now or utcnow(),
    )


def parse_target(new_status: Any) -> PropertyStatus:
    allowed = "Allowed: pending, approved, rejected"
    if not isinstance(new_status, str):
        raise InvalidStatus(f"Status is required and must be a string. {allowed}")
    try:
        target = PropertyStatus(new_status)
    except ValueError:
        raise InvalidStatus(f"Invalid status '{new_status}'. {allowed}")
    if target not in MODERATION_TARGETS:
        raise InvalidStatus(f"Invalid status '{new_status}'. {allowed}")
    return target


def transition(
    current: ModerationState,
    new_status: Union[str, PropertyStatus],
    now: Optional[datetime] = None,
) -> ModerationState:
    target = parse_target(new_status)
    now = now or utcnow()

    if target == PropertyStatus.APPROVED:
        return ModerationState(status=target, is_published=True, published_at=now, updated_at=now)

    # rejected / back to pending: unpublished, publish date kept as history
    return ModerationState(status=target, is_published=False, published_at=current.published_at, updated_at=now)


def is_publicly_visible(prop: Property) -> bool:
    return prop.status == PropertyStatus.APPROVED and bool(prop.is_published)


def public_listing_filter():
    return and_(Property.status == PropertyStatus.APPROVED, Property.is_published.is_(True))


def submit(draft: Mapping[str, Any], owner_id: UUID) -> Property:
    """Build a new listing from an owner's draft. It always starts pending and unpublished."""
    data = {k: v for k, v in draft.items() if k not in PROTECTED_FIELDS}
    state = initial_state()
    return Property(
        **data,
        owner_id=owner_id,
        status=state.status,
        is_published=state.is_published,
        published_at=state.published_at,
        updated_at=state.updated_at,
    )


def set_status(db: Session, property_id: UUID, new_status: Any) -> Property:
    """
    Apply an admin moderation decision.

    Role is checked by the caller. Concurrent decisions on the same listing
    are last-write-wins.
    """
    target = parse_target(new_status)

    prop = db.get(Property, property_id)
    if prop is None:
        raise NotFound("Property not found")

    previous = prop.status
    new_state = transition(ModerationState.of(prop), target)

    result = db.execute(
        update(Property)
        .where(Property.id == property_id)
        .values(**new_state.as_values())
    )
    if result.rowcount == 0:
        # Deleted after it was loaded
        db.rollback()
        raise NotFound("Property not found")
    db.commit()
    db.refresh(prop)

    logger.info(
        "Property %s moderated: %s -> %s (published=%s)",
        property_id, previous.value, prop.status.value, prop.is_published,
    )
    return prop
