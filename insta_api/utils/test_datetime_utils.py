# insta_api/utils/test_datetime_utils.py
"""
Date/time helper tests.

Usage: python -m pytest insta_api/utils/test_datetime_utils.py -v
"""

import pytest
from datetime import datetime, date, timezone, timedelta
from insta_api.utils.datetime_utils import DateTimeUtils


def test_now_is_utc():
    assert DateTimeUtils.now().tzinfo == timezone.utc


def test_parse_iso_datetime():
    """Every accepted ISO form ends up timezone-aware in UTC"""
    test_cases = [
        "2024-01-15T10:30:00Z",
        "2024-01-15T10:30:00+09:00",
        "2024-01-15T10:30:00.123456Z",
        "2024-01-15T10:30:00",
    ]

    for iso_string in test_cases:
        dt = DateTimeUtils.parse_iso_datetime(iso_string)
        assert isinstance(dt, datetime)
        assert dt.tzinfo == timezone.utc

    assert DateTimeUtils.parse_iso_datetime("2024-01-15T10:30:00+09:00").hour == 1


def test_to_iso_string():
    assert DateTimeUtils.to_iso_string(None) is None
    assert DateTimeUtils.to_iso_string(datetime(2024, 1, 15, 10, 30)) == "2024-01-15T10:30:00Z"

    seoul = timezone(timedelta(hours=9))
    assert DateTimeUtils.to_iso_string(datetime(2024, 1, 15, 10, 30, tzinfo=seoul)) == "2024-01-15T01:30:00Z"


def test_for_firestore():
    test_data = {
        'date_of_birth': date(2000, 1, 15),
        'timestamp': datetime(2024, 1, 15, 10, 30),
        'nested': {
            'event_date': date(2023, 12, 25)
        },
        'shares': [
            {'date': datetime(2024, 1, 1)}
        ],
        'caption': 'untouched',
    }

    converted = DateTimeUtils.for_firestore(test_data)

    # dates are widened to datetimes
    assert isinstance(converted['date_of_birth'], datetime)
    assert isinstance(converted['nested']['event_date'], datetime)
    assert isinstance(converted['shares'][0]['date'], datetime)

    assert converted['date_of_birth'].tzinfo == timezone.utc
    assert converted['timestamp'].tzinfo == timezone.utc
    assert converted['caption'] == 'untouched'


def test_error_handling():
    with pytest.raises(ValueError):
        DateTimeUtils.parse_iso_datetime("invalid-date")

    with pytest.raises(ValueError):
        DateTimeUtils.parse_iso_datetime("")
