"""
Authentication utilities for password hashing, verification, and JWT tokens
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from config import Settings, get_settings
from utils.errors import ServiceError

# Configure password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Security scheme for JWT tokens; missing credentials are reported as "unauthenticated"
security = HTTPBearer(auto_error=False)

def hash_password(password: str) -> str:
    """
    Hash a plain text password.

    Args:
        password: Plain text password to hash

    Returns:
        Hashed password string
    """
    return pwd_context.hash(password)

def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain text password against a hashed password.

    Args:
        plain_password: Plain text password to verify
        hashed_password: Hashed password to verify against

    Returns:
        True if password matches, False otherwise
    """
    return pwd_context.verify(plain_password, hashed_password)

def email_domain_allowed(email: str, settings: Settings) -> bool:
    """Check an email against the configured domain restriction."""
    if not settings.domain_restriction:
        return True
    domain = email.rsplit("@", 1)[-1].lower() if "@" in email else ""
    return domain == settings.domain_restriction.lower()

def require_allowed_domain(email: str, settings: Settings) -> None:
    if not email_domain_allowed(email, settings):
        raise ServiceError(
            "permission-denied",
            f"Access restricted to @{settings.domain_restriction} emails."
        )

def create_access_token(
    data: Dict[str, Any],
    settings: Settings,
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a JWT access token.

    Args:
        data: Dictionary containing the data to encode in the token
        settings: Application settings holding the signing key
        expires_delta: Optional expiration time delta

    Returns:
        Encoded JWT token string
    """
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)

    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)
    return encoded_jwt

def token_claims_for(user) -> Dict[str, Any]:
    """Build the token claims for a user row."""
    return {
        "sub": str(user.id),  # Subject (user ID)
        "email": user.email,
        "name": user.name,
        "admin": bool(user.is_admin)
    }

def verify_token(token: str, settings: Settings) -> Dict[str, Any]:
    """
    Verify and decode a JWT token.

    Raises:
        ServiceError: If token is invalid or expired
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        raise ServiceError(
            "unauthenticated",
            "Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not payload.get("sub"):
        raise ServiceError("unauthenticated", "Token has no subject.")
    return payload

def get_current_user_from_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    settings: Settings = Depends(get_settings)
) -> Dict[str, Any]:
    """
    Dependency to get current user from JWT token in Authorization header.

    Returns:
        Decoded token payload containing user information

    Raises:
        ServiceError: If the token is missing, invalid, expired, or outside the allowed domain
    """
    if credentials is None:
        raise ServiceError(
            "unauthenticated",
            "User must be logged in.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    payload = verify_token(credentials.credentials, settings)
    require_allowed_domain(payload.get("email") or "", settings)
    return payload

def get_current_admin(
    current_user: Dict[str, Any] = Depends(get_current_user_from_token)
) -> Dict[str, Any]:
    """Dependency that only lets callers carrying the admin claim through."""
    if current_user.get("admin") is not True:
        raise ServiceError("permission-denied", "Admins only.")
    return current_user

def caller_id(current_user: Dict[str, Any]) -> int:
    return int(current_user["sub"])
