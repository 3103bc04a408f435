from __future__ import annotations

import re
import secrets
from datetime import datetime, timezone


CUSTOM_ID_PATTERN = re.compile(r"^([a-zA-Z0-9]+)-(\d{14})-(\d{8,10})$")
USER_ID_PATTERN = re.compile(r"^user-\d{14}-\d{10}$")
ROLE_ID_PATTERN = re.compile(r"^role-\d{14}-\d{10}$")
PERMISSION_ID_PATTERN = re.compile(r"^permission-\d{14}-\d{10}$")

SYSTEM_USER_ID = "system-20240317230608-000000001"


def generate_unique_id(prefix: str, now: datetime | None = None) -> str:
    """Build a `<prefix>-<YYYYMMDDHHMMSS>-<10 digits>` identifier."""
    now = now or datetime.now(timezone.utc)
    suffix = "".join(secrets.choice("0123456789") for _ in range(10))
    return f"{prefix}-{now.strftime('%Y%m%d%H%M%S')}-{suffix}"


def generate_username(name: str) -> str:
    """Derive a username candidate from a display name.

    Keeps lowercase ascii letters and digits of the name and appends a random
    4 digit suffix; collisions are resolved by the caller regenerating.
    """
    base = re.sub(r"[^a-z0-9]", "", (name or "").lower()) or "user"
    suffix = "".join(secrets.choice("0123456789") for _ in range(4))
    return f"{base[:24]}{suffix}"
