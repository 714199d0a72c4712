import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import String, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from estate_api.api.deps import get_current_user
from estate_api.core.database import get_db
from estate_api.core.exceptions import Conflict
from estate_api.models.property import Property, PropertyStatus
from estate_api.models.user import User, UserRole
from estate_api.schemas.pagination import Pagination
from estate_api.schemas.user import OwnerSummary, UserResponse, UserSearchResponse, UserUpdate
from estate_api.services.moderation import public_listing_filter
from estate_api.utils.auth import get_password_hash

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/profile", response_model=UserResponse)
def get_profile(current_user: User = Depends(get_current_user)):
    return UserResponse.model_validate(current_user)


@router.put("/profile", response_model=UserResponse)
def update_profile(
    user_data: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Self-service profile update. Role and activation can't be changed here."""
    changes = user_data.model_dump(exclude_unset=True)

    if "email" in changes and changes["email"] != current_user.email:
        taken = db.execute(
            select(User.id).where(User.email == changes["email"], User.id != current_user.id)
        ).first()
        if taken:
            raise Conflict("Email already registered")

    password = changes.pop("password", None)
    if password:
        current_user.password_hash = get_password_hash(password)

    for field, value in changes.items():
        if field in ("name", "email", "phone") and value is None:
            continue
        setattr(current_user, field, value)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("Email already registered")
    db.refresh(current_user)
    return UserResponse.model_validate(current_user)


@router.delete("/account", status_code=status.HTTP_200_OK)
def delete_account(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    user_id = current_user.id
    db.delete(current_user)
    db.commit()
    logger.info("User %s deleted their account", user_id)
    return {"message": "Account deleted successfully"}


@router.get("/stats", response_model=dict)
def get_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Counts of the caller's own listings by moderation state."""
    owned = Property.owner_id == current_user.id

    def count(*criteria) -> int:
        return db.execute(select(func.count(Property.id)).where(owned, *criteria)).scalar_one()

    total_views = db.execute(
        select(func.coalesce(func.sum(Property.view_count), 0)).where(owned)
    ).scalar_one()

    return {
        "properties": {
            "total": count(),
            "published": count(public_listing_filter()),
            "pending": count(Property.status == PropertyStatus.PENDING),
            "rejected": count(Property.status == PropertyStatus.REJECTED),
        },
        "views": {"total": int(total_views)},
    }


@router.get("/search", response_model=UserSearchResponse)
def search_users(
    db: Session = Depends(get_db),
    query: Optional[str] = Query(None, min_length=1, max_length=100),
    role: Optional[UserRole] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    """Public directory of active users and agencies."""
    criteria = [User.is_active.is_(True)]

    if query:
        term = f"%{query}%"
        criteria.append(or_(
            User.name.ilike(term),
            User.email.ilike(term),
            User.agency_info.cast(String).ilike(term),
        ))
    if role:
        criteria.append(User.role == role)

    total_count = db.execute(select(func.count(User.id)).where(*criteria)).scalar_one()
    users = db.execute(
        select(User)
        .where(*criteria)
        .order_by(User.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).scalars().all()

    return UserSearchResponse(
        items=[OwnerSummary.model_validate(u) for u in users],
        pagination=Pagination.build(page, limit, total_count),
    )
