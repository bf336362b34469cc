from __future__ import annotations

import logging
import re
from datetime import datetime, timezone, tzinfo
from typing import Optional

import pytz

logger = logging.getLogger(__name__)

_UTC_OFFSET_PATTERN = re.compile(r"^UTC([+-])(\d{1,2})(?::(\d{2}))?$")


def parse_utc_offset(timezone_str: str) -> Optional[int]:
    """
    Parse ``UTC+3``, ``UTC-5`` or ``UTC+5:30`` into an offset in minutes.

    Returns None when the string is not in that format.
    """
    match = _UTC_OFFSET_PATTERN.match(timezone_str)
    if not match:
        return None
    sign, hours, minutes = match.group(1), int(match.group(2)), int(match.group(3) or 0)
    if hours > 14 or minutes >= 60:
        return None
    total = hours * 60 + minutes
    return -total if sign == "-" else total


def validate_timezone(timezone_str: str) -> bool:
    """Check whether the string is an IANA zone name or a ``UTC+N`` offset."""
    if timezone_str.startswith("UTC") and timezone_str != "UTC":
        return parse_utc_offset(timezone_str) is not None
    try:
        pytz.timezone(timezone_str)
        return True
    except pytz.exceptions.UnknownTimeZoneError:
        return False


def resolve_timezone(timezone_str: Optional[str]) -> tzinfo:
    """Return the tzinfo for the name, falling back to UTC for unknown values."""
    if not timezone_str:
        return pytz.utc
    if timezone_str.startswith("UTC") and timezone_str != "UTC":
        offset = parse_utc_offset(timezone_str)
        if offset is not None:
            return pytz.FixedOffset(offset)
    try:
        return pytz.timezone(timezone_str)
    except pytz.exceptions.UnknownTimeZoneError:
        logger.warning("Unknown timezone %r, using UTC", timezone_str)
        return pytz.utc


def get_local_now(timezone_str: Optional[str]) -> datetime:
    """
    Current wall clock time in the given zone, without tzinfo.

    Fire times are wall clock values, so they are compared against naive local time.
    """
    return datetime.now(timezone.utc).astimezone(resolve_timezone(timezone_str)).replace(tzinfo=None)
