"""Authentication utilities for the GigFlow backend."""

from datetime import datetime, timedelta, timezone
from typing import Annotated

import bcrypt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from gigflow.accounts import User
from gigflow.errors import AuthenticationError, NotFoundError

from .config import Settings, get_settings
from .database import Accounts
from .logging_config import get_logger

logger = get_logger("gigflow.auth")

# Bearer token scheme; missing credentials are reported by get_current_user
security = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    """Hash a user password using bcrypt."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(plain: str, hashed: str) -> bool:
    """Verify a password against its hash."""
    try:
        return bcrypt.checkpw(plain.encode(), hashed.encode())
    except (ValueError, TypeError):
        return False


def create_access_token(
    user_id: str,
    settings: Settings,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a JWT access token for a user."""
    now = datetime.now(timezone.utc)
    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(minutes=settings.jwt_expire_minutes)

    to_encode = {
        "sub": user_id,
        "exp": expire,
        "iat": now,
        "type": "access",
    }
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def user_id_from_token(token: str, settings: Settings | None = None) -> str:
    """Decode a token and return its subject.

    Raises:
        AuthenticationError: If the token is malformed, expired or has no subject
    """
    settings = settings or get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as e:
        raise AuthenticationError("Invalid or expired token") from e
    user_id = payload.get("sub")
    if not user_id or payload.get("type") != "access":
        raise AuthenticationError("Invalid token payload")
    return user_id


def decode_token(token: str, settings: Settings) -> str:
    """Decode a bearer token for an HTTP request, returning the user id."""
    try:
        return user_id_from_token(token, settings)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        )


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    settings: Annotated[Settings, Depends(get_settings)],
    accounts: Accounts,
) -> User:
    """Get the authenticated user from the Authorization header."""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated - provide Authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = decode_token(credentials.credentials, settings)
    try:
        return accounts.get_user(user_id)
    except NotFoundError:
        logger.warning(f"Token for unknown user {user_id}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User no longer exists",
            headers={"WWW-Authenticate": "Bearer"},
        )


# Type alias for dependency injection
CurrentUser = Annotated[User, Depends(get_current_user)]
