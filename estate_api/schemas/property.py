from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List, Dict, Any
from uuid import UUID
from datetime import datetime, date as date_type

from estate_api.models.property import PropertyCategory, PropertyStatus, TransactionType
from estate_api.schemas.pagination import Pagination
from estate_api.schemas.user import OwnerSummary, strip_tags


# ─── Location ─────────────────────────────────────────────────────────────────

class Coordinates(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class PropertyLocation(BaseModel):
    city: Optional[str] = Field(None, max_length=50)
    district: Optional[str] = Field(None, max_length=50)
    neighborhood: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=500)
    coordinates: Optional[Coordinates] = None


class PropertyLocationIn(PropertyLocation):
    @model_validator(mode="after")
    def require_place(self):
        if not (self.city or self.district or self.address):
            raise ValueError("location must include at least a city, district or address")
        return self


# ─── Media ────────────────────────────────────────────────────────────────────
# Media are references (URLs) to files hosted elsewhere

class MediaImage(BaseModel):
    url: str
    caption: Optional[str] = Field(None, max_length=200)
    is_main: bool = False
    uploaded_at: Optional[datetime] = None


class MediaVideo(BaseModel):
    url: str
    caption: Optional[str] = Field(None, max_length=200)
    duration: Optional[float] = Field(None, ge=0)
    uploaded_at: Optional[datetime] = None


# ─── Listing-type specific details ────────────────────────────────────────────

class AvailableDay(BaseModel):
    date: date_type
    is_available: bool = True
    booked_by: Optional[UUID] = None


class DailyRentInfo(BaseModel):
    min_days: int = Field(1, ge=1)
    max_days: int = Field(30, ge=1)
    available_days: List[AvailableDay] = []
    rules: Optional[str] = Field(None, max_length=1000)

    @model_validator(mode="after")
    def check_range(self):
        if self.max_days < self.min_days:
            raise ValueError("max_days must be greater than or equal to min_days")
        return self


class FarmInfo(BaseModel):
    has_water: bool = False
    has_electricity: bool = False
    has_parking: bool = False
    has_restroom: bool = False
    has_kitchen: bool = False
    has_bbq: bool = False
    has_playground: bool = False
    has_pool: bool = False
    max_capacity: int = Field(10, ge=1)


# ─── Reviews ──────────────────────────────────────────────────────────────────

class ReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=500)

    @field_validator("comment", mode="before")
    @classmethod
    def clean_comment(cls, v):
        return strip_tags(v) if isinstance(v, str) else v


class Review(ReviewCreate):
    user_id: UUID
    created_at: datetime


# ─── Create / Update ──────────────────────────────────────────────────────────

# Stored as JSON documents on the property row
_JSON_FIELDS = {"images", "videos", "daily_rent_info", "farm_info"}
_REQUIRED_COLUMNS = {"title", "transaction_type", "category", "price", "rooms", "bathrooms"}


class _PropertyInput(BaseModel):
    """Shared conversion from request payload to property columns."""

    model_config = {"extra": "ignore"}

    @field_validator("tags", mode="before", check_fields=False)
    @classmethod
    def normalize_tags(cls, v):
        if isinstance(v, list):
            return [t.strip().lower() for t in v if isinstance(t, str) and t.strip()]
        return v

    @field_validator("features", mode="before", check_fields=False)
    @classmethod
    def normalize_features(cls, v):
        if isinstance(v, list):
            return [f.strip() for f in v if isinstance(f, str) and f.strip()]
        return v

    @field_validator("title", "description", "additional_features", mode="before", check_fields=False)
    @classmethod
    def clean_text(cls, v):
        return strip_tags(v) if isinstance(v, str) else v

    def to_columns(self, exclude_unset: bool = False) -> Dict[str, Any]:
        columns = self.model_dump(exclude_unset=exclude_unset, exclude={"location", *_JSON_FIELDS})
        columns.update(self.model_dump(mode="json", exclude_unset=exclude_unset, include=_JSON_FIELDS))

        location = getattr(self, "location", None)
        if location is not None:
            loc = location.model_dump(exclude_unset=exclude_unset)
            coordinates = loc.pop("coordinates", "unset")
            columns.update(loc)
            if coordinates != "unset":
                columns["latitude"] = coordinates["latitude"] if coordinates else None
                columns["longitude"] = coordinates["longitude"] if coordinates else None
        return columns


class PropertyCreate(_PropertyInput):
    title: str = Field(..., min_length=3, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    transaction_type: TransactionType
    category: PropertyCategory
    price: float = Field(..., ge=0)
    area: Optional[float] = Field(None, ge=0)
    rooms: int = Field(0, ge=0)
    bathrooms: int = Field(0, ge=0)
    location: Optional[PropertyLocationIn] = None
    features: List[str] = []
    additional_features: Optional[str] = Field(None, max_length=1000)
    tags: List[str] = []
    images: List[MediaImage] = []
    videos: List[MediaVideo] = []
    daily_rent_info: Optional[DailyRentInfo] = None
    farm_info: Optional[FarmInfo] = None
    expiry_date: Optional[datetime] = None


class PropertyUpdate(_PropertyInput):
    """Owner update. Moderation, ownership and engagement fields are never accepted."""
    title: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    transaction_type: Optional[TransactionType] = None
    category: Optional[PropertyCategory] = None
    price: Optional[float] = Field(None, ge=0)
    area: Optional[float] = Field(None, ge=0)
    rooms: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[int] = Field(None, ge=0)
    # Partial: only the sent location fields change, so no place is required here
    location: Optional[PropertyLocation] = None
    features: Optional[List[str]] = None
    additional_features: Optional[str] = Field(None, max_length=1000)
    tags: Optional[List[str]] = None
    images: Optional[List[MediaImage]] = None
    videos: Optional[List[MediaVideo]] = None
    daily_rent_info: Optional[DailyRentInfo] = None
    farm_info: Optional[FarmInfo] = None
    expiry_date: Optional[datetime] = None

    def to_columns(self, exclude_unset: bool = True) -> Dict[str, Any]:
        columns = super().to_columns(exclude_unset=exclude_unset)
        # An explicit null never clears a required column
        return {k: v for k, v in columns.items() if v is not None or k not in _REQUIRED_COLUMNS}


# ─── Response Schemas ─────────────────────────────────────────────────────────

class PropertyResponse(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = None
    transaction_type: TransactionType
    category: PropertyCategory
    price: float
    area: Optional[float] = None
    rooms: int = 0
    bathrooms: int = 0
    location: PropertyLocation
    features: List[str] = []
    additional_features: Optional[str] = None
    tags: List[str] = []
    images: List[MediaImage] = []
    videos: List[MediaVideo] = []

    owner_id: UUID
    owner: Optional[OwnerSummary] = None

    status: PropertyStatus
    is_published: bool
    published_at: Optional[datetime] = None
    featured: bool = False

    view_count: int = 0
    contact_count: int = 0
    favorite_count: int = 0
    share_count: int = 0

    daily_rent_info: Optional[DailyRentInfo] = None
    farm_info: Optional[FarmInfo] = None

    reviews: List[Review] = []
    average_rating: float = 0
    total_reviews: int = 0

    expiry_date: Optional[datetime] = None
    sold_date: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @field_validator("features", "tags", "images", "videos", "reviews", mode="before")
    @classmethod
    def none_as_empty(cls, v):
        """JSON list columns may be NULL on rows written outside the ORM."""
        return v or []

    @field_validator("rooms", "bathrooms", "view_count", "contact_count",
                     "favorite_count", "share_count", "total_reviews", mode="before")
    @classmethod
    def none_as_zero(cls, v):
        return v or 0

    @field_validator("featured", mode="before")
    @classmethod
    def none_as_false(cls, v):
        return bool(v)


class AdminPropertyResponse(PropertyResponse):
    full_address: str
    time_ago: str = ""


class PropertyListResponse(BaseModel):
    items: List[PropertyResponse]
    pagination: Pagination


# ─── Admin Moderation ─────────────────────────────────────────────────────────

class PropertyStatusUpdate(BaseModel):
    # Any value, or none at all; the moderation service turns bad targets into InvalidStatus (400)
    status: Optional[Any] = None


class PropertyStatusResponse(BaseModel):
    id: UUID
    status: PropertyStatus
    is_published: bool
    published_at: Optional[datetime] = None
    message: str
