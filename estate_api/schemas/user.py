from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from typing import Optional, List
from uuid import UUID
from datetime import datetime
import json
import re

from estate_api.models.user import UserRole
from estate_api.schemas.pagination import Pagination

# bcrypt only looks at the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72

# Keeps every issued access token inside the accepted bearer length
MAX_EMAIL_LENGTH = 100

_TAG_RE = re.compile(r"<[^>]*>")


# Iraqi mobile number validation
def validate_iraqi_phone(phone: str) -> str:
    phone = re.sub(r'[\s\-]', '', phone)

    if not re.match(r'^(\+964|00964|0)?7\d{9}$', phone):
        raise ValueError('Invalid Iraqi phone number (must start with 07 or +964)')

    if phone.startswith('00964'):
        phone = '+' + phone[2:]
    elif phone.startswith('0'):
        phone = '+964' + phone[1:]
    elif phone.startswith('7'):
        phone = '+964' + phone

    return phone


def strip_tags(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return _TAG_RE.sub('', value).strip()


def normalize_email(email: str) -> str:
    # Measured as it is embedded in the token payload (non-ASCII is escaped)
    if len(json.dumps(email)) - 2 > MAX_EMAIL_LENGTH:
        raise ValueError(f'Email must be at most {MAX_EMAIL_LENGTH} characters')
    return email.lower()


def validate_password(password: str) -> str:
    if len(password.encode('utf-8')) > MAX_PASSWORD_BYTES:
        raise ValueError(f'Password must be at most {MAX_PASSWORD_BYTES} bytes')
    return password


class AgencyInfo(BaseModel):
    agency_name: Optional[str] = Field(None, max_length=200)
    license_number: Optional[str] = Field(None, max_length=50)
    license_image: Optional[str] = None
    description: Optional[str] = Field(None, max_length=1000)

    @field_validator('agency_name', 'license_number', 'description', mode='before')
    @classmethod
    def clean_text(cls, v):
        return strip_tags(v) if isinstance(v, str) else v


class UserLocation(BaseModel):
    city: Optional[str] = Field(None, max_length=50)
    district: Optional[str] = Field(None, max_length=50)
    neighborhood: Optional[str] = Field(None, max_length=50)


class UserCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    phone: str
    password: str = Field(..., min_length=8)
    confirm_password: str
    user_type: UserRole = UserRole.INDIVIDUAL
    agency_name: Optional[str] = None
    license_number: Optional[str] = None

    @field_validator('name', 'agency_name', 'license_number', mode='before')
    @classmethod
    def clean_text(cls, v):
        return strip_tags(v) if isinstance(v, str) else v

    @field_validator('email')
    @classmethod
    def lower_email(cls, v: str) -> str:
        return normalize_email(v)

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v):
        return validate_iraqi_phone(v)

    @field_validator('password')
    @classmethod
    def check_password(cls, v):
        return validate_password(v)

    @field_validator('user_type')
    @classmethod
    def no_self_service_admin(cls, v: UserRole) -> UserRole:
        if v == UserRole.ADMIN:
            raise ValueError('user_type must be individual or agency')
        return v

    @model_validator(mode='after')
    def check_consistency(self):
        if self.password != self.confirm_password:
            raise ValueError('Passwords do not match')

        if self.user_type == UserRole.AGENCY:
            if not self.agency_name or not 3 <= len(self.agency_name) <= 200:
                raise ValueError('agency_name must be between 3 and 200 characters')
            if not self.license_number or not 5 <= len(self.license_number) <= 50:
                raise ValueError('license_number must be between 5 and 50 characters')
        return self


class UserLogin(BaseModel):
    email: EmailStr
    password: str

    @field_validator('email')
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class UserUpdate(BaseModel):
    """Self-service profile update. Role and activation are not accepted here."""
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    password: Optional[str] = Field(None, min_length=8)
    profile_image: Optional[str] = None
    location: Optional[UserLocation] = None
    agency_info: Optional[AgencyInfo] = None

    model_config = {"extra": "forbid"}

    @field_validator('name', mode='before')
    @classmethod
    def clean_name(cls, v):
        return strip_tags(v) if isinstance(v, str) else v

    @field_validator('email')
    @classmethod
    def lower_email(cls, v: Optional[str]) -> Optional[str]:
        return normalize_email(v) if v else v

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v):
        return validate_iraqi_phone(v) if v is not None else v

    @field_validator('password')
    @classmethod
    def check_password(cls, v):
        return validate_password(v) if v is not None else v


class OwnerSummary(BaseModel):
    id: UUID
    name: str
    email: str
    phone: str
    role: UserRole
    profile_image: Optional[str] = None
    agency_info: Optional[AgencyInfo] = None
    location: Optional[UserLocation] = None

    model_config = {"from_attributes": True}


class UserResponse(BaseModel):
    id: UUID
    name: str
    email: str
    phone: str
    role: UserRole
    is_active: bool
    is_verified: bool
    agency_info: Optional[AgencyInfo] = None
    profile_image: Optional[str] = None
    location: Optional[UserLocation] = None
    last_login: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class VerifyTokenRequest(BaseModel):
    token: str


class VerifyTokenResponse(BaseModel):
    valid: bool = True
    user: UserResponse


class UserSearchResponse(BaseModel):
    items: List[OwnerSummary]
    pagination: Pagination
