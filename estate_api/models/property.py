import enum

from sqlalchemy import Boolean, Column, DateTime, Enum, Float, ForeignKey, Integer, JSON, String, Text, Uuid
from sqlalchemy.orm import relationship

from estate_api.models.base import BaseModel


class TransactionType(str, enum.Enum):
    SALE = "sale"
    RENT = "rent"
    DAILY_RENT = "dailyRent"


class PropertyCategory(str, enum.Enum):
    HOUSE = "house"
    APARTMENT = "apartment"
    VILLA = "villa"
    LAND = "land"
    FARM = "farm"


class PropertyStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SOLD = "sold"
    RENTED = "rented"
    INACTIVE = "inactive"


LOCATION_FIELDS = ("city", "district", "neighborhood", "address")


class Property(BaseModel):
    __tablename__ = "properties"

    # Basic Info
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    transaction_type = Column(Enum(TransactionType), nullable=False, index=True)
    category = Column(Enum(PropertyCategory), nullable=False, index=True)

    # Pricing / size
    price = Column(Float, nullable=False, index=True)
    area = Column(Float, nullable=True, index=True)
    rooms = Column(Integer, default=0)
    bathrooms = Column(Integer, default=0)

    # Location
    city = Column(String(50), nullable=True, index=True)
    district = Column(String(50), nullable=True, index=True)
    neighborhood = Column(String(50), nullable=True)
    address = Column(String(500), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    # Features
    features = Column(JSON, default=list)
    additional_features = Column(Text, nullable=True)
    tags = Column(JSON, default=list)

    # Media: [{url, caption, is_main, uploaded_at}] / [{url, caption, duration, uploaded_at}]
    images = Column(JSON, default=list)
    videos = Column(JSON, default=list)

    # Ownership (immutable after creation)
    owner_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    owner = relationship("User", back_populates="properties", foreign_keys=[owner_id], lazy="joined")

    # Moderation: is_published is true iff status == approved
    status = Column(Enum(PropertyStatus), default=PropertyStatus.PENDING, nullable=False, index=True)
    is_published = Column(Boolean, default=False, nullable=False)
    published_at = Column(DateTime(timezone=True), nullable=True)
    featured = Column(Boolean, default=False)

    # Engagement
    view_count = Column(Integer, default=0, nullable=False)
    contact_count = Column(Integer, default=0, nullable=False)
    favorite_count = Column(Integer, default=0, nullable=False)
    share_count = Column(Integer, default=0, nullable=False)

    # Listing-type specific details
    daily_rent_info = Column(JSON, nullable=True)
    farm_info = Column(JSON, nullable=True)

    # Reviews: [{user_id, rating, comment, created_at}]
    reviews = Column(JSON, default=list)
    average_rating = Column(Float, default=0, nullable=False)
    total_reviews = Column(Integer, default=0, nullable=False)

    # Sale metadata
    expiry_date = Column(DateTime(timezone=True), nullable=True)
    sold_date = Column(DateTime(timezone=True), nullable=True)
    sold_to = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    @property
    def location(self) -> dict:
        return {
            "city": self.city,
            "district": self.district,
            "neighborhood": self.neighborhood,
            "address": self.address,
            "coordinates": (
                {"latitude": self.latitude, "longitude": self.longitude}
                if self.latitude is not None and self.longitude is not None
                else None
            ),
        }

    @property
    def full_address(self) -> str:
        parts = [getattr(self, field) for field in LOCATION_FIELDS if getattr(self, field)]
        return " - ".join(parts) if parts else "Not specified"


# Register User on the mapper registry whenever Property is imported
from estate_api.models.user import User  # noqa: E402,F401
