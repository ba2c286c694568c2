"""Small helpers shared across GigFlow modules."""

import uuid
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Get the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Generate a new record identifier."""
    return uuid.uuid4().hex


def to_iso(value: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime for storage."""
    if value is None:
        return None
    return value.isoformat()


def parse_datetime(s: Optional[str]) -> Optional[datetime]:
    """Parse an ISO datetime string, assuming UTC for naive values."""
    if not s:
        return None
    parsed = datetime.fromisoformat(s.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
