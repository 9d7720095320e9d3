"""
Utility functions for the DCA Monitor.
"""

import time
from typing import Optional


def now_ms() -> int:
    return int(time.time() * 1000)


def is_timestamp_older_than(
    timestamp_ms: int,
    seconds: Optional[float] = None,
    minutes: Optional[float] = None,
    now: Optional[int] = None,
) -> bool:
    """
    Check if an epoch-millisecond timestamp is older than a given duration.

    ## Parameters
    - `timestamp_ms`: Epoch timestamp in milliseconds
    - `seconds`: Number of seconds to check against (optional)
    - `minutes`: Number of minutes to check against (optional)
    - `now`: Reference time in milliseconds (defaults to the current time)

    ## Returns
    - `True` if the timestamp is older than the specified duration
    """
    if seconds is None and minutes is None:
        raise ValueError("Must specify either seconds or minutes")

    window = seconds if seconds is not None else minutes * 60
    reference = now if now is not None else now_ms()
    return reference - timestamp_ms > window * 1000


def short_address(address: str) -> str:
    return f"{address[:4]}...{address[-4:]}"


def scale_amount(raw: int, decimals: int) -> float:
    """Convert a raw on-chain integer amount to a human-scaled float."""
    return raw / (10**decimals)


def format_amount(value: float) -> str:
    """Thousands separators, at most two decimals, no trailing zeros."""
    text = f"{value:,.2f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text
