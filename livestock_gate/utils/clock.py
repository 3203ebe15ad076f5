# =======================================================================================
# livestock_gate/utils/clock.py - Time Helpers
# =======================================================================================
from datetime import datetime, timezone
from typing import Optional

def utc_now() -> datetime:
    """Naive UTC timestamp, the form stored in every timestamp column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)

def as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware datetime to naive UTC; naive values are taken as UTC already."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
