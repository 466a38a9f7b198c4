# company_feed/utils/__init__.py
"""
유틸리티 모듈 패키지

시간 처리와 서비스 예외를 포함합니다.
"""

from .datetime_utils import DateTimeUtils
from .exceptions import (
    FeedServiceError, NotFound, Conflicted, ValidationFailed, UploadFailed, SubscriptionClosed
)

__all__ = [
    'DateTimeUtils',
    'FeedServiceError', 'NotFound', 'Conflicted', 'ValidationFailed', 'UploadFailed', 'SubscriptionClosed',
]
