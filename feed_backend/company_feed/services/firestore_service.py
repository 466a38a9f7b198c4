# company_feed/services/firestore_service.py
import logging
from typing import Any, Callable, Dict

from firebase_admin import firestore
from google.api_core import exceptions as gcp_exceptions

from company_feed.utils.exceptions import FeedServiceError, NotFound, Conflicted

# firestore.Client의 기본 트랜잭션 재시도 횟수와 같습니다.
DEFAULT_MAX_ATTEMPTS = 5


# --- 컬렉션 경로 ---
# companies/{companyId}/posts/{postId}
# companies/{companyId}/posts/{postId}/likes/{userId}
# companies/{companyId}/posts/{postId}/comments/{commentId}
# companies/{companyId}/posts/{postId}/comments/{commentId}/likes/{userId}

def posts_collection(db, company_id: str):
    return db.collection('companies').document(company_id).collection('posts')


def post_likes_collection(db, company_id: str, post_id: str):
    return posts_collection(db, company_id).document(post_id).collection('likes')


def comments_collection(db, company_id: str, post_id: str):
    return posts_collection(db, company_id).document(post_id).collection('comments')


def comment_likes_collection(db, company_id: str, post_id: str, comment_id: str):
    return comments_collection(db, company_id, post_id).document(comment_id).collection('likes')


def _is_retry_exhausted(error: ValueError) -> bool:
    # 재시도 한도 초과 시 클라이언트는 마지막 Aborted를 원인으로 하는
    # ValueError("Failed to commit transaction in N attempts.")를 던집니다.
    return (isinstance(error.__cause__, gcp_exceptions.Aborted)
            or str(error).startswith("Failed to commit transaction"))


def run_transaction(db, callback: Callable, *args, max_attempts: int = DEFAULT_MAX_ATTEMPTS, description: str = "transaction"):
    """
    callback(transaction, *args)를 Firestore 트랜잭션 안에서 실행합니다.

    - 충돌 시 Firestore 클라이언트가 callback 전체를 다시 실행하므로 callback은
      커밋 전까지 외부에 보이는 부수효과가 없어야 합니다.
    - 재시도 한도를 모두 소진하면 Conflicted를 던집니다.
    - callback이 던진 FeedServiceError(NotFound 등)는 그대로 전달합니다.

    :param db: firestore.Client
    :param callback: 트랜잭션 본문
    :param max_attempts: 충돌 시 최대 시도 횟수
    :param description: 로그용 작업 이름
    """
    transaction = db.transaction(max_attempts=max_attempts)
    try:
        return firestore.transactional(callback)(transaction, *args)
    except FeedServiceError:
        raise
    except gcp_exceptions.NotFound as e:
        raise NotFound("대상 문서를 찾을 수 없습니다.", original_error=e)
    except (ValueError, gcp_exceptions.Aborted) as e:
        if isinstance(e, ValueError) and not _is_retry_exhausted(e):
            raise
        logging.warning(f"트랜잭션 커밋 실패 ({description}, 최대 {max_attempts}회 시도): {e}")
        raise Conflicted(f"동시 요청과 충돌하여 {description} 작업을 완료하지 못했습니다.", original_error=e)


def update_document(doc_ref, data: Dict[str, Any], not_found_message: str) -> None:
    """
    카운터와 무관한 단순 필드 업데이트. 문서가 없으면 NotFound로 변환합니다.
    """
    try:
        doc_ref.update(data)
    except gcp_exceptions.NotFound as e:
        raise NotFound(not_found_message, original_error=e)
    except Exception as e:
        logging.error(f"Firestore 업데이트 실패 (path: {doc_ref.path}): {e}", exc_info=True)
        raise
