#!/usr/bin/env python3
"""
Timestamp utilities for the history store.

Message times are stored as integer epoch milliseconds (UTC) in the
``messages.time`` column and handed back to callers as timezone-aware
``datetime`` objects.
"""

from datetime import datetime, timezone
from typing import Optional, Union


def now_utc() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_epoch_ms(value: Union[datetime, int, float, str]) -> int:
    """
    Convert a message time to integer epoch milliseconds.
    
    Args:
        value: Can be:
            - datetime object (assumed local if naive)
            - ISO string ("2024-03-05T14:30:00Z")
            - epoch milliseconds (int or float)
    
    Returns:
        Milliseconds since the epoch
    """
    if isinstance(value, bool):
        raise TypeError("Cannot convert bool to epoch milliseconds")
    
    # Already epoch milliseconds
    if isinstance(value, (int, float)):
        return int(value)
    
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace('Z', '+00:00'))
        except ValueError as e:
            raise ValueError(f"Cannot parse timestamp string: {value}") from e
    
    if isinstance(value, datetime):
        return int(round(value.timestamp() * 1000))
    
    raise TypeError(f"Cannot convert {type(value)} to epoch milliseconds")


def from_epoch_ms(ms: Optional[int]) -> Optional[datetime]:
    """
    Convert epoch milliseconds back to a UTC datetime.
    
    Args:
        ms: Milliseconds since the epoch
    
    Returns:
        Timezone-aware datetime, or None if ms is None
    """
    if ms is None:
        return None
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
