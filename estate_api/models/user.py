import enum

from sqlalchemy import Boolean, Column, DateTime, Enum, JSON, String
from sqlalchemy.orm import relationship

from estate_api.models.base import BaseModel


class UserRole(str, enum.Enum):
    INDIVIDUAL = "individual"
    AGENCY = "agency"
    ADMIN = "admin"


class User(BaseModel):
    __tablename__ = "users"

    name = Column(String(100), nullable=False)
    # Always stored lower-cased; uniqueness is therefore case-insensitive
    email = Column(String(100), unique=True, index=True, nullable=False)
    phone = Column(String(20), index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)

    role = Column(Enum(UserRole), default=UserRole.INDIVIDUAL, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)

    # {agency_name, license_number, license_image, description}
    agency_info = Column(JSON, nullable=True)
    profile_image = Column(String(255), nullable=True)
    # {city, district, neighborhood}
    location = Column(JSON, nullable=True)

    last_login = Column(DateTime(timezone=True), nullable=True)

    properties = relationship(
        "Property",
        back_populates="owner",
        foreign_keys="Property.owner_id",
        cascade="all, delete-orphan",
    )


# Register Property on the mapper registry whenever User is imported
from estate_api.models.property import Property  # noqa: E402,F401
