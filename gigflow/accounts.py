"""User accounts.

The marketplace only needs a stable identity plus display fields for each
user. Credential hashing and token issuance live with the web layer; this
module stores and looks up the resulting records.
"""

import logging
import re
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from .errors import ConflictError, NotFoundError, ValidationError
from .utils import utc_now

if TYPE_CHECKING:
    from gigflow.storage import MarketplaceStorage

logger = logging.getLogger(__name__)

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def generate_user_id() -> str:
    """Generate a stable user_id (usr_ + 12 char hex)."""
    return f"usr_{uuid.uuid4().hex[:12]}"


@dataclass
class User:
    """A registered marketplace user."""

    id: str
    name: str
    email: str
    password_hash: str
    created_at: Optional[datetime] = None

    def __post_init__(self):
        self.name = self.name.strip()
        self.email = self.email.strip().lower()
        if not NAME_MIN_LENGTH <= len(self.name) <= NAME_MAX_LENGTH:
            raise ValueError(
                f"Name must be between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters"
            )
        if not EMAIL_PATTERN.match(self.email):
            raise ValueError("Invalid email address")


class AccountService:
    """Create and look up users."""

    def __init__(self, storage: "MarketplaceStorage"):
        self.storage = storage

    def register(self, name: str, email: str, password_hash: str) -> User:
        """Create a user.

        Raises:
            ValidationError: If name or email are malformed
            ConflictError: If the email is already registered
        """
        try:
            user = User(
                id=generate_user_id(),
                name=name,
                email=email,
                password_hash=password_hash,
                created_at=utc_now(),
            )
        except ValueError as e:
            raise ValidationError(str(e)) from e

        if self.storage.get_user_by_email(user.email) is not None:
            raise ConflictError("Email already registered")

        self.storage.save_user(user)
        logger.info(f"Registered user {user.id}")
        return user

    def get_user(self, user_id: str) -> User:
        user = self.storage.get_user(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return user

    def find_by_email(self, email: str) -> Optional[User]:
        return self.storage.get_user_by_email(email.strip().lower())
