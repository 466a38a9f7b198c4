# company_feed/utils/test_datetime_utils.py
"""
시간 유틸리티 테스트

사용법: python -m pytest company_feed/utils/test_datetime_utils.py -v
"""

import pytest
from datetime import datetime, timezone, timedelta

from company_feed.utils.datetime_utils import DateTimeUtils


def test_parse_iso_datetime():
    """ISO 포맷 파싱 테스트"""
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


def test_to_iso_string_uses_z_suffix():
    dt = datetime(2024, 1, 15, 10, 30, tzinfo=timezone(timedelta(hours=9)))
    assert DateTimeUtils.to_iso_string(dt) == "2024-01-15T01:30:00Z"
    assert DateTimeUtils.to_iso_string(None) is None


def test_for_firestore():
    """Firestore 변환 테스트"""
    test_data = {
        'createdAt': datetime(2024, 1, 15, 10, 30),
        'metadata': {'editedAt': datetime(2023, 12, 25)},
        'history': [{'at': datetime(2024, 1, 1)}],
    }

    converted = DateTimeUtils.for_firestore(test_data)

    assert converted['createdAt'].tzinfo == timezone.utc
    assert converted['metadata']['editedAt'].tzinfo == timezone.utc
    assert converted['history'][0]['at'].tzinfo == timezone.utc


def test_from_firestore():
    aware = datetime(2024, 1, 15, 10, 30, tzinfo=timezone(timedelta(hours=9)))
    assert DateTimeUtils.from_firestore(aware) == datetime(2024, 1, 15, 1, 30, tzinfo=timezone.utc)
    assert DateTimeUtils.from_firestore(None) is None
    assert DateTimeUtils.from_firestore("2024-01-15T10:30:00Z").hour == 10


def test_error_handling():
    """오류 처리 테스트"""
    with pytest.raises(ValueError):
        DateTimeUtils.parse_iso_datetime("invalid-date")

    with pytest.raises(ValueError):
        DateTimeUtils.parse_iso_datetime("")

    with pytest.raises(ValueError):
        DateTimeUtils.from_firestore(object())
