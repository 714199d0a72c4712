import json
import logging
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import String, delete, func, or_, select, update
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from estate_api.api.deps import get_current_principal, get_optional_principal
from estate_api.core.database import get_db
from estate_api.core.exceptions import Forbidden, NotFound
from estate_api.models.base import utcnow
from estate_api.models.property import Property, PropertyCategory, TransactionType
from estate_api.schemas.pagination import Pagination
from estate_api.schemas.property import (
    PropertyCreate, PropertyListResponse, PropertyResponse, PropertyUpdate, ReviewCreate
)
from estate_api.services.access import can_mutate_property, owned_by
from estate_api.services.identity import Principal
from estate_api.services.moderation import (
    PROTECTED_FIELDS, is_publicly_visible, public_listing_filter, submit
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/properties", tags=["Properties"])

NOT_FOUND_OR_NOT_OWNER = "Property not found or you do not have permission to modify it"

SORT_COLUMNS = {
    "created_at": Property.created_at,
    "price": Property.price,
    "area": Property.area,
    "view_count": Property.view_count,
    "average_rating": Property.average_rating,
}


# ─── Helpers ──────────────────────────────────────────────────────────────────

def _feature_criteria(raw: Optional[str]):
    """Comma separated features; a listing matches if it has any of them."""
    if not raw:
        return None
    wanted = [f.strip() for f in raw.split(",") if f.strip()]
    if not wanted:
        return None
    # features is a JSON array; match the encoded element text
    return or_(*(Property.features.cast(String).like(f"%{json.dumps(f)}%") for f in wanted))


def _paginate(db: Session, criteria: list, order_by, page: int, limit: int) -> PropertyListResponse:
    total_count = db.execute(select(func.count(Property.id)).where(*criteria)).scalar_one()
    properties = db.execute(
        select(Property)
        .where(*criteria)
        .order_by(order_by)
        .offset((page - 1) * limit)
        .limit(limit)
    ).unique().scalars().all()

    return PropertyListResponse(
        items=[PropertyResponse.model_validate(p) for p in properties],
        pagination=Pagination.build(page, limit, total_count),
    )


# ─── LIST (public) ────────────────────────────────────────────────────────────

@router.get("/", response_model=PropertyListResponse)
def list_properties(
    db: Session = Depends(get_db),
    transaction_type: Optional[TransactionType] = Query(None),
    category: Optional[PropertyCategory] = Query(None),
    city: Optional[str] = Query(None),
    district: Optional[str] = Query(None),
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    min_area: Optional[float] = Query(None, ge=0),
    max_area: Optional[float] = Query(None, ge=0),
    rooms: Optional[int] = Query(None, ge=0),
    bathrooms: Optional[int] = Query(None, ge=0),
    features: Optional[str] = Query(None),
    search: Optional[str] = Query(None, min_length=2),
    sort_by: str = Query("created_at", pattern="^(created_at|price|area|view_count|average_rating)$"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    """Approved, published listings with filtering and sorting."""
    criteria = [public_listing_filter()]

    if transaction_type:
        criteria.append(Property.transaction_type == transaction_type)
    if category:
        criteria.append(Property.category == category)
    if city:
        criteria.append(Property.city == city)
    if district:
        criteria.append(Property.district == district)
    if min_price is not None:
        criteria.append(Property.price >= min_price)
    if max_price is not None:
        criteria.append(Property.price <= max_price)
    if min_area is not None:
        criteria.append(Property.area >= min_area)
    if max_area is not None:
        criteria.append(Property.area <= max_area)
    if rooms is not None:
        criteria.append(Property.rooms == rooms)
    if bathrooms is not None:
        criteria.append(Property.bathrooms == bathrooms)

    feature_match = _feature_criteria(features)
    if feature_match is not None:
        criteria.append(feature_match)

    if search:
        term = f"%{search}%"
        criteria.append(or_(Property.title.ilike(term), Property.description.ilike(term)))

    column = SORT_COLUMNS[sort_by]
    order_by = column.asc() if sort_order == "asc" else column.desc()
    return _paginate(db, criteria, order_by, page, limit)


# ─── Caller's own listings ────────────────────────────────────────────────────

@router.get("/user/my-properties", response_model=PropertyListResponse)
def my_properties(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    """All of the caller's listings, whatever their moderation state."""
    return _paginate(db, [owned_by(principal)], Property.created_at.desc(), page, limit)


# ─── CREATE ───────────────────────────────────────────────────────────────────

@router.post("/", response_model=PropertyResponse, status_code=status.HTTP_201_CREATED)
def create_property(
    payload: PropertyCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """Create a listing. It stays pending and unpublished until an admin approves it."""
    prop = submit(payload.to_columns(), owner_id=principal.id)
    db.add(prop)
    db.commit()
    db.refresh(prop)

    logger.info("Property %s submitted by %s", prop.id, principal.id)
    return PropertyResponse.model_validate(prop)


# ─── GET single property ──────────────────────────────────────────────────────

@router.get("/{property_id}", response_model=PropertyResponse)
def get_property(
    property_id: UUID,
    db: Session = Depends(get_db),
    principal: Optional[Principal] = Depends(get_optional_principal),
):
    """Published listings are public; unpublished ones are visible to their owner only."""
    prop = db.get(Property, property_id)
    if not prop:
        raise NotFound("Property not found")

    if not is_publicly_visible(prop):
        if principal is None or not can_mutate_property(principal, prop):
            raise NotFound("Property not found")
        return PropertyResponse.model_validate(prop)

    db.execute(
        update(Property)
        .where(Property.id == property_id)
        .values(view_count=Property.view_count + 1)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    db.refresh(prop)
    return PropertyResponse.model_validate(prop)


# ─── UPDATE (owner only) ──────────────────────────────────────────────────────

@router.put("/{property_id}", response_model=PropertyResponse)
def update_property(
    property_id: UUID,
    payload: PropertyUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """
    Owner-only update, applied as one conditional UPDATE on (id, owner).
    Non-owners get 404 so the listing's existence is not confirmed.
    """
    values = {k: v for k, v in payload.to_columns().items() if k not in PROTECTED_FIELDS}
    values["updated_at"] = utcnow()

    result = db.execute(
        update(Property)
        .where(Property.id == property_id, owned_by(principal))
        .values(**values)
    )
    if result.rowcount == 0:
        db.rollback()
        raise NotFound(NOT_FOUND_OR_NOT_OWNER)
    db.commit()

    prop = db.get(Property, property_id)
    db.refresh(prop)
    return PropertyResponse.model_validate(prop)


# ─── DELETE (owner only) ──────────────────────────────────────────────────────

@router.delete("/{property_id}")
def delete_property(
    property_id: UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    result = db.execute(
        delete(Property).where(Property.id == property_id, owned_by(principal))
    )
    if result.rowcount == 0:
        db.rollback()
        raise NotFound("Property not found or you do not have permission to delete it")
    db.commit()

    logger.info("Property %s deleted by owner %s", property_id, principal.id)
    return {"message": "Property deleted successfully"}


# ─── REVIEWS ──────────────────────────────────────────────────────────────────

@router.post("/{property_id}/reviews", response_model=PropertyResponse, status_code=status.HTTP_201_CREATED)
def add_review(
    property_id: UUID,
    review: ReviewCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """Rate a published listing. Posting again replaces the caller's earlier review."""
    prop = db.get(Property, property_id)
    if not prop or not is_publicly_visible(prop):
        raise NotFound("Property not found")

    if can_mutate_property(principal, prop):
        raise Forbidden("You cannot review your own property")

    reviewer = str(principal.id)
    reviews = [r for r in (prop.reviews or []) if r.get("user_id") != reviewer]
    reviews.append({
        "user_id": reviewer,
        "rating": review.rating,
        "comment": review.comment,
        "created_at": utcnow().isoformat(),
    })
    average = round(sum(r["rating"] for r in reviews) / len(reviews), 2)

    db.execute(
        update(Property)
        .where(Property.id == property_id)
        .values(reviews=reviews, average_rating=average, total_reviews=len(reviews))
    )
    db.commit()
    db.refresh(prop)
    return PropertyResponse.model_validate(prop)
