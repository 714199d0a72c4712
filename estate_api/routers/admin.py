import logging
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from estate_api.core.database import get_db
from estate_api.core.exceptions import Forbidden, NotFound, Unauthenticated
from estate_api.api.deps import require_role
from estate_api.models.base import utcnow
from estate_api.models.property import Property, PropertyStatus
from estate_api.models.user import User, UserRole
from estate_api.routers.auth import LOGIN_FAILED, authenticate, issue_session
from estate_api.schemas.property import AdminPropertyResponse, PropertyStatusResponse, PropertyStatusUpdate
from estate_api.schemas.user import TokenResponse, UserLogin, UserResponse
from estate_api.services.moderation import MODERATION_TARGETS, set_status

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Admin"])

require_admin = require_role(UserRole.ADMIN)

STATUS_MESSAGES = {
    PropertyStatus.APPROVED: "Property approved and published",
    PropertyStatus.REJECTED: "Property rejected",
    PropertyStatus.PENDING: "Property returned to pending review",
}


# ─── Helpers ──────────────────────────────────────────────────────────────────

def _time_ago(created_at: Optional[datetime], now: Optional[datetime] = None) -> str:
    if created_at is None:
        return ""
    if created_at.tzinfo is None:
        # SQLite hands back naive datetimes; they were written as UTC
        created_at = created_at.replace(tzinfo=timezone.utc)
    seconds = int(((now or utcnow()) - created_at).total_seconds())

    def plural(n: int, unit: str) -> str:
        return f"{n} {unit}{'' if n == 1 else 's'} ago"

    if seconds < 60:
        return "just now"
    minutes = seconds // 60
    if minutes < 60:
        return plural(minutes, "minute")
    hours = minutes // 60
    if hours < 24:
        return plural(hours, "hour")
    days = hours // 24
    if days < 30:
        return plural(days, "day")
    return plural(days // 30, "month")


# ─── AUTH ─────────────────────────────────────────────────────────────────────

@router.post("/auth/login", response_model=TokenResponse)
def admin_login(credentials: UserLogin, db: Session = Depends(get_db)):
    """
    Admin-only login. Rejects any user who isn't an admin with the same
    message as a wrong password, so the dashboard can't be used to probe roles.
    """
    user = authenticate(db, credentials.email, credentials.password)

    if user.role != UserRole.ADMIN:
        raise Unauthenticated(LOGIN_FAILED)

    return issue_session(db, user)


# ─── USERS ────────────────────────────────────────────────────────────────────

@router.get("/users", response_model=List[UserResponse])
def list_users(
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    users = db.execute(select(User).order_by(User.created_at.desc())).scalars().all()
    return [UserResponse.model_validate(u) for u in users]


@router.patch("/users/{user_id}/toggle-status", response_model=dict)
def toggle_user_status(
    user_id: UUID,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Flip a user's activation flag. Nothing else about the account changes."""
    if user_id == admin.id:
        raise Forbidden("You cannot deactivate your own account")

    user = db.get(User, user_id)
    if not user:
        raise NotFound("User not found")

    db.execute(
        update(User)
        .where(User.id == user_id)
        .values(is_active=~User.is_active, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    db.commit()
    db.refresh(user)

    logger.info("Admin %s set user %s active=%s", admin.id, user_id, user.is_active)
    return {
        "message": f"User {'activated' if user.is_active else 'deactivated'} successfully",
        "is_active": user.is_active,
    }


# ─── PROPERTIES ───────────────────────────────────────────────────────────────

@router.get("/properties", response_model=List[AdminPropertyResponse])
def list_all_properties(
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    status_filter: Optional[str] = Query(None, alias="status"),
):
    """Every listing, newest first. Unknown status filters are ignored."""
    query = select(Property).order_by(Property.created_at.desc())
    if status_filter in {s.value for s in MODERATION_TARGETS}:
        query = query.where(Property.status == PropertyStatus(status_filter))

    now = utcnow()
    return [
        AdminPropertyResponse.model_validate(p).model_copy(update={"time_ago": _time_ago(p.created_at, now)})
        for p in db.execute(query).unique().scalars().all()
    ]


@router.patch("/properties/{property_id}/status", response_model=PropertyStatusResponse)
def update_property_status(
    property_id: UUID,
    body: PropertyStatusUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Approve, reject or return a listing to pending. Publishing follows the status."""
    prop = set_status(db, property_id, body.status)
    return PropertyStatusResponse(
        id=prop.id,
        status=prop.status,
        is_published=prop.is_published,
        published_at=prop.published_at,
        message=STATUS_MESSAGES[prop.status],
    )


@router.delete("/properties/{property_id}")
def delete_any_property(
    property_id: UUID,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    result = db.execute(delete(Property).where(Property.id == property_id))
    if result.rowcount == 0:
        db.rollback()
        raise NotFound("Property not found")
    db.commit()

    logger.info("Admin %s deleted property %s", admin.id, property_id)
    return {"message": "Property deleted successfully"}


# ─── STATS ────────────────────────────────────────────────────────────────────

@router.get("/stats", response_model=dict)
def get_stats(
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    def grouped(column) -> dict:
        rows = db.execute(select(column, func.count()).group_by(column)).all()
        return {key.value: count for key, count in rows}

    total_users = db.execute(select(func.count(User.id))).scalar_one()
    active_users = db.execute(select(func.count(User.id)).where(User.is_active.is_(True))).scalar_one()
    by_status = grouped(Property.status)

    return {
        "users": {
            "total": total_users,
            "active": active_users,
            "inactive": total_users - active_users,
            "by_role": grouped(User.role),
        },
        "properties": {
            "total": sum(by_status.values()),
            "pending": by_status.get(PropertyStatus.PENDING.value, 0),
            "approved": by_status.get(PropertyStatus.APPROVED.value, 0),
            "rejected": by_status.get(PropertyStatus.REJECTED.value, 0),
            "by_status": by_status,
            "by_transaction_type": grouped(Property.transaction_type),
        },
    }
