# company_feed/utils/datetime_utils.py
"""
피드 전체에서 사용하는 시간 처리 유틸리티.

- 모든 타임스탬프는 UTC timezone-aware datetime으로 저장합니다.
  (Firestore가 Timestamp로 저장하므로 서버 측 정렬이 가능합니다.)
- Firestore에서 읽은 값(DatetimeWithNanoseconds 등)은 일반 UTC datetime으로 정규화합니다.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from dateutil import parser as dateutil_parser

logger = logging.getLogger(__name__)


class DateTimeUtils:
    """시간 처리를 위한 중앙화된 유틸리티 클래스"""

    @staticmethod
    def now() -> datetime:
        """현재 시간을 UTC timezone-aware datetime으로 반환"""
        return datetime.now(timezone.utc)

    @staticmethod
    def parse_iso_datetime(iso_string: str) -> datetime:
        """
        ISO 포맷 문자열을 UTC datetime으로 파싱합니다.
        timezone 정보가 없으면 UTC로 간주합니다.
        """
        if not iso_string:
            raise ValueError("빈 문자열은 파싱할 수 없습니다")
        try:
            if iso_string.endswith('Z'):
                iso_string = iso_string[:-1] + '+00:00'
            dt = dateutil_parser.isoparse(iso_string)
        except (ValueError, OverflowError) as e:
            logger.error(f"ISO datetime 파싱 실패: {iso_string} - {e}")
            raise ValueError(f"잘못된 ISO 날짜 형식입니다: {iso_string}")

        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)

    @staticmethod
    def to_iso_string(dt: Optional[datetime]) -> Optional[str]:
        """datetime을 'Z' 접미사가 붙은 ISO 문자열로 변환 (None은 그대로 None)"""
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
        Firestore 저장 전 변환.
        - timezone-naive datetime -> UTC로 간주
        - dict/list 내부는 재귀적으로 변환
        """
        if isinstance(obj, datetime):
            if obj.tzinfo is None:
                return obj.replace(tzinfo=timezone.utc)
            return obj.astimezone(timezone.utc)
        if isinstance(obj, dict):
            return {k: DateTimeUtils.for_firestore(v) for k, v in obj.items()}
        if isinstance(obj, list):
            return [DateTimeUtils.for_firestore(item) for item in obj]
        return obj

    @staticmethod
    def from_firestore(value: Any) -> Optional[datetime]:
        """
        Firestore에서 읽은 타임스탬프 값을 UTC datetime으로 변환합니다.
        값이 없으면 None을 반환합니다.
        """
        if value is None:
            return None
        if isinstance(value, datetime):
            if value.tzinfo is None:
                return value.replace(tzinfo=timezone.utc)
            return datetime.fromtimestamp(value.timestamp(), tz=timezone.utc)
        if isinstance(value, str):
            return DateTimeUtils.parse_iso_datetime(value)
        if hasattr(value, 'timestamp'):
            # protobuf Timestamp 등
            return datetime.fromtimestamp(value.timestamp(), tz=timezone.utc)
        raise ValueError(f"타임스탬프로 변환할 수 없는 값입니다: {value!r}")
