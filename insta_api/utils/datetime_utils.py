# insta_api/utils/datetime_utils.py
"""
Centralized date/time handling.

- Every timestamp the backend writes is a timezone-aware UTC datetime.
- Firestore cannot store `date`, so dates are widened to midnight UTC.
- ISO strings coming from clients are parsed with dateutil.
"""

import logging
from datetime import datetime, date, timezone, time
from typing import Any, Optional
from dateutil import parser as dateutil_parser

logger = logging.getLogger(__name__)


class DateTimeUtils:
    """Date/time helpers shared by models, services and schemas."""

    @staticmethod
    def now() -> datetime:
        """Current time as a UTC timezone-aware datetime."""
        return datetime.now(timezone.utc)

    @staticmethod
    def parse_iso_datetime(iso_string: str) -> datetime:
        """
        Parses an ISO string into a UTC datetime.

        Accepted:
        - 2024-01-15T10:30:00Z
        - 2024-01-15T10:30:00+09:00
        - 2024-01-15T10:30:00
        - 2024-01-15
        """
        try:
            if not iso_string:
                raise ValueError("Cannot parse an empty string")

            if iso_string.endswith('Z'):
                iso_string = iso_string[:-1] + '+00:00'

            dt = dateutil_parser.isoparse(iso_string)

            # naive values are assumed to be UTC
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=timezone.utc)

            return dt.astimezone(timezone.utc)

        except Exception as e:
            logger.error(f"ISO datetime parsing failed: {iso_string} - {e}")
            raise ValueError(f"Invalid ISO date format: {iso_string}")

    @staticmethod
    def to_iso_string(dt: Optional[datetime]) -> Optional[str]:
        """datetime -> ISO string with a Z suffix."""
        if dt is None:
            return None
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        else:
            dt = dt.astimezone(timezone.utc)
        return dt.isoformat().replace('+00:00', 'Z')

    @staticmethod
    def for_firestore(obj: Any) -> Any:
        """
        Converts date/time values of a document before it is written.

        - date -> datetime (00:00:00 UTC)
        - naive datetime -> UTC datetime
        - recurses into dicts and lists
        """
        if isinstance(obj, date) and not isinstance(obj, datetime):
            return datetime.combine(obj, time.min).replace(tzinfo=timezone.utc)
        elif isinstance(obj, datetime):
            if obj.tzinfo is None:
                return obj.replace(tzinfo=timezone.utc)
            return obj.astimezone(timezone.utc)
        elif isinstance(obj, dict):
            return {k: DateTimeUtils.for_firestore(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [DateTimeUtils.for_firestore(item) for item in obj]
        return obj

