"""Date and time utility functions."""
import time
from datetime import datetime, timezone
from typing import Callable, Optional


def now_iso() -> str:
    """Current UTC time as an ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat()


def timestamp_suffix(digits: int = 4, clock: Optional[Callable[[], float]] = None) -> str:
    """
    Low-order digits of the current millisecond timestamp.

    Args:
        digits: How many trailing digits to keep (default: 4)
        clock: Time source returning seconds since the epoch

    Returns:
        Zero-padded string of length ``digits``
    """
    millis = int((clock or time.time)() * 1000)
    return str(millis)[-digits:].zfill(digits)


def format_created_at(value: str) -> str:
    """
    Format a stored ISO timestamp for display.

    Returns the input unchanged when it can't be parsed.
    """
    if not value:
        return ""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    return parsed.astimezone().strftime("%Y-%m-%d %H:%M")


def today_str() -> str:
    return datetime.now().strftime("%Y-%m-%d")
