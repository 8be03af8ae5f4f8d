import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Dict, Any

from config import Settings, get_settings
from database.database import get_db
from models.models import User
from schemas.user_schema import (
    UserCreate, UserResponse, UserResponseWithToken, UserLogin,
    AdminClaimRequest, AdminClaimResponse
)
from utils.auth import (
    hash_password, verify_password, create_access_token, token_claims_for,
    require_allowed_domain, get_current_user_from_token, get_current_admin, caller_id
)
from utils.errors import ServiceError, internal_error

logger = logging.getLogger(__name__)

router = APIRouter()

def _with_token(db_user: User, settings: Settings) -> UserResponseWithToken:
    access_token = create_access_token(data=token_claims_for(db_user), settings=settings)
    return UserResponseWithToken(
        id=db_user.id,
        email=db_user.email,
        name=db_user.name,
        is_admin=bool(db_user.is_admin),
        created_at=db_user.created_at,
        access_token=access_token,
        token_type="bearer"
    )

@router.post("/", response_model=UserResponseWithToken)
def create_user(
    user: UserCreate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings)
):
    """Create a new user with name, email and password. Returns user data with JWT token."""
    require_allowed_domain(user.email, settings)

    # Check if user with email already exists
    existing_user = db.query(User).filter(User.email == user.email).first()
    if existing_user:
        raise ServiceError("invalid-argument", "Email already registered")

    db_user = User(
        email=user.email,
        name=user.name,
        password=hash_password(user.password),
        is_admin=False
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)

    return _with_token(db_user, settings)

@router.post("/login", response_model=UserResponseWithToken)
def login_user(
    user_login: UserLogin,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings)
):
    """Login user with email and password. Returns user data with JWT token."""
    email = user_login.email.strip().lower()
    require_allowed_domain(email, settings)

    db_user = db.query(User).filter(User.email == email).first()
    if not db_user or not verify_password(user_login.password, db_user.password):
        raise ServiceError("unauthenticated", "Invalid email or password")

    return _with_token(db_user, settings)

@router.get("/me", response_model=UserResponse)
def get_me(
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(get_current_user_from_token)
):
    """Get the calling user."""
    user = db.query(User).filter(User.id == caller_id(current_user)).first()
    if not user:
        raise ServiceError("not-found", "User not found")
    return user

@router.get("/", response_model=List[UserResponse])
def get_users(
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(get_current_admin)
):
    """Get all users."""
    return db.query(User).order_by(User.id).all()

@router.post("/admin-claim", response_model=AdminClaimResponse)
def set_admin_claim(
    payload: AdminClaimRequest,
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(get_current_admin)
):
    """
    Grant or revoke the admin claim for a user.

    The change shows up in the target's token the next time they log in.
    """
    try:
        email = payload.email.strip().lower()
        user = db.query(User).filter(User.email == email).first()
        if not user:
            raise ServiceError("not-found", f"No user registered with {email}.")

        user.is_admin = payload.is_admin
        db.commit()

        action = "granted to" if payload.is_admin else "revoked from"
        logger.info(f"Admin claim {action} {email} by user {current_user['sub']}")
        return AdminClaimResponse(
            success=True,
            message=f"Admin claim {action} {email}. They must log in again for it to take effect."
        )
    except ServiceError:
        raise
    except Exception as e:
        logger.exception("Error in set_admin_claim")
        raise internal_error(e)
