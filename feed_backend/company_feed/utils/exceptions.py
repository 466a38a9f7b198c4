# company_feed/utils/exceptions.py
from typing import Optional, Any


class FeedServiceError(Exception):
    """
    피드 서비스 계층에서 발생하는 모든 예외의 기반 클래스.
    라우트 계층은 이 예외의 `code`를 그대로 응답의 error_code로 사용합니다.
    """
    code = "FEED_SERVICE_ERROR"
    status_code = 500

    def __init__(self, message: str, original_error: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        return f"{self.__class__.__name__}: {self.message} (Code: {self.code})"


class NotFound(FeedServiceError):
    """참조한 게시글/댓글이 작업 시점에 존재하지 않습니다."""
    code = "NOT_FOUND"
    status_code = 404


class Conflicted(FeedServiceError):
    """동시 쓰기 경합으로 트랜잭션이 재시도 한도 내에 커밋되지 못했습니다."""
    code = "TRANSACTION_CONFLICT"
    status_code = 409


class ValidationFailed(FeedServiceError):
    """이미지 없는 빈 게시글, 빈 댓글 등 입력값 검증 실패."""
    code = "VALIDATION_ERROR"
    status_code = 400


class UploadFailed(FeedServiceError):
    """
    오브젝트 릴레이 업로드 실패.
    호출자에게 던지지 않고 이미지별로 수집되어 요약(실패 개수)으로만 보고됩니다.
    """
    code = "UPLOAD_FAILED"
    status_code = 502


class SubscriptionClosed(FeedServiceError):
    """저장소 연결 오류 등으로 라이브 쿼리 감시가 스스로 종료되었습니다. restart()로 다시 구독할 수 있습니다."""
    code = "SUBSCRIPTION_CLOSED"
    status_code = 503
