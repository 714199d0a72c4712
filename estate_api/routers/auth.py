import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from estate_api.api.deps import get_current_user
from estate_api.core.database import get_db
from estate_api.core.exceptions import AccountDisabled, Conflict, Unauthenticated
from estate_api.models.base import utcnow
from estate_api.models.user import User, UserRole
from estate_api.schemas.user import (
    TokenResponse,
    UserCreate,
    UserLogin,
    UserResponse,
    VerifyTokenRequest,
    VerifyTokenResponse,
)
from estate_api.services.identity import AUTH_SCHEME, resolve_principal
from estate_api.utils.auth import create_user_token, get_password_hash, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

LOGIN_FAILED = "Incorrect email or password"


def authenticate(db: Session, email: str, password: str) -> User:
    """Shared by user and admin login. Unknown email and wrong password look the same."""
    user = db.execute(select(User).where(User.email == email)).scalar_one_or_none()

    if not user or not verify_password(password, user.password_hash):
        raise Unauthenticated(LOGIN_FAILED)

    if not user.is_active:
        raise AccountDisabled()

    return user


def issue_session(db: Session, user: User) -> TokenResponse:
    user.last_login = utcnow()
    db.commit()
    db.refresh(user)

    return TokenResponse(
        access_token=create_user_token(user),
        user=UserResponse.model_validate(user),
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(user_data: UserCreate, db: Session = Depends(get_db)):
    # Check if email exists
    if db.execute(select(User.id).where(User.email == user_data.email)).first():
        raise Conflict("Email already registered")

    user = User(
        name=user_data.name,
        email=user_data.email,
        phone=user_data.phone,
        password_hash=get_password_hash(user_data.password),
        role=user_data.user_type,
        is_active=True,
    )
    if user_data.user_type == UserRole.AGENCY:
        user.agency_info = {
            "agency_name": user_data.agency_name,
            "license_number": user_data.license_number,
        }

    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration of the same email
        db.rollback()
        raise Conflict("Email already registered")
    db.refresh(user)

    logger.info("Registered %s user %s", user.role.value, user.id)

    return TokenResponse(
        access_token=create_user_token(user),
        user=UserResponse.model_validate(user),
    )


@router.post("/login", response_model=TokenResponse)
def login(user_data: UserLogin, db: Session = Depends(get_db)):
    user = authenticate(db, user_data.email, user_data.password)
    return issue_session(db, user)


@router.post("/verify-token", response_model=VerifyTokenResponse)
def verify_token(request: VerifyTokenRequest, db: Session = Depends(get_db)):
    """Check a token sent in the body instead of the Authorization header."""
    principal = resolve_principal(db, f"{AUTH_SCHEME} {request.token}")
    user = db.get(User, principal.id)
    return VerifyTokenResponse(user=UserResponse.model_validate(user))


@router.get("/me", response_model=UserResponse)
def get_current_user_info(
    current_user: User = Depends(get_current_user)
):
    return UserResponse.model_validate(current_user)
