"""Authentication routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status

from gigflow.errors import AuthenticationError

from ..auth import CurrentUser, create_access_token, hash_password, verify_password
from ..config import Settings, get_settings
from ..database import Accounts
from ..logging_config import get_logger
from ..models import AuthResponse, LoginRequest, RegisterRequest, UserResponse, to_user_info
from ..rate_limit import limiter

logger = get_logger("gigflow.auth")
router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("5/minute")
def register(
    request: Request,
    body: RegisterRequest,
    accounts: Accounts,
    settings: Annotated[Settings, Depends(get_settings)],
):
    """Create an account and return an access token for it."""
    logger.info(f"POST /auth/register | email={body.email}")
    user = accounts.register(body.name, body.email, hash_password(body.password))
    token = create_access_token(user.id, settings)
    logger.info(f"User registered | id={user.id}")
    return AuthResponse(user=to_user_info(user), access_token=token)


@router.post("/login", response_model=AuthResponse)
@limiter.limit("10/minute")
def login(
    request: Request,
    body: LoginRequest,
    accounts: Accounts,
    settings: Annotated[Settings, Depends(get_settings)],
):
    """Exchange email and password for an access token."""
    logger.info(f"POST /auth/login | email={body.email}")
    user = accounts.find_by_email(body.email)
    if user is None or not verify_password(body.password, user.password_hash):
        logger.warning(f"Failed login | email={body.email}")
        raise AuthenticationError("Invalid email or password")
    token = create_access_token(user.id, settings)
    return AuthResponse(user=to_user_info(user), access_token=token)


@router.get("/me", response_model=UserResponse)
def me(user: CurrentUser):
    """Return the authenticated user."""
    return UserResponse(user=to_user_info(user))
