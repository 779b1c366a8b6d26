"""
Core utilities: timestamps and id generation.
"""
import random
import string
import time
from datetime import datetime, timezone
from typing import Optional

_ID_ALPHABET = string.digits + string.ascii_lowercase


def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    """
    Naive datetimes are read as local wall-clock time and made aware, so every
    datetime the app compares carries an offset.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.astimezone()
    return value


def generate_id(prefix: str) -> str:
    """
    Builds ids shaped like ``task_1718740800000_k3j9x0a1b``: millisecond
    timestamp plus nine random base36 characters. Unique enough for a single
    local store, not cryptographically.
    """
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"

