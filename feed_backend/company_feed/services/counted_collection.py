# company_feed/services/counted_collection.py
"""
카운터-멤버십 일관성 규칙.

부모 문서의 카운트 필드(likeCount, commentCount)는 하위 컬렉션 문서 수의 캐시입니다.
멤버십 문서 추가/삭제와 카운터 증감은 항상 같은 트랜잭션 안에서 함께 일어나며,
카운터는 클라이언트가 읽은 값을 다시 쓰지 않고 firestore.Increment로만 변경합니다.
그래서 서로 다른 사용자의 동시 요청은 갱신 손실 없이 모두 반영됩니다.
"""

import logging
from typing import Any, Dict

from firebase_admin import firestore

from company_feed.models.like import Like
from company_feed.services.firestore_service import run_transaction, DEFAULT_MAX_ATTEMPTS
from company_feed.utils.datetime_utils import DateTimeUtils
from company_feed.utils.exceptions import NotFound

LIKE_COUNT_FIELD = 'likeCount'


def toggle_like(db, target_ref, like_ref, user_id: str, *,
                not_found_message: str, max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> bool:
    """
    대상(게시글 또는 댓글)의 좋아요를 토글하고 새 좋아요 상태를 반환합니다.

    ABSENT -> PRESENT: likes/{user_id} 생성 + likeCount +1
    PRESENT -> ABSENT: likes/{user_id} 삭제 + likeCount -1

    목표 상태는 첫 시도에서 읽은 상태로 정해집니다. 충돌로 재시도할 때 다른 요청이
    이미 목표 상태로 바꿔 놓았다면 증감을 다시 적용하지 않고 목표 상태만 반환합니다.
    """
    intent: Dict[str, bool] = {}

    def _toggle_in_transaction(transaction):
        target_snapshot = target_ref.get(transaction=transaction)
        if not target_snapshot.exists:
            raise NotFound(not_found_message)

        like_snapshot = like_ref.get(transaction=transaction)
        currently_liked = like_snapshot.exists

        if 'liked' not in intent:
            intent['liked'] = not currently_liked
        elif currently_liked == intent['liked']:
            return intent['liked']

        now = DateTimeUtils.now()
        if currently_liked:
            transaction.delete(like_ref)
            transaction.update(target_ref, {LIKE_COUNT_FIELD: firestore.Increment(-1), 'updatedAt': now})
        else:
            transaction.set(like_ref, Like(user_id=user_id, created_at=now).to_firestore())
            transaction.update(target_ref, {LIKE_COUNT_FIELD: firestore.Increment(1), 'updatedAt': now})
        return intent['liked']

    liked = run_transaction(db, _toggle_in_transaction, max_attempts=max_attempts,
                            description=f"좋아요 토글({target_ref.path})")
    logging.info(f"좋아요 토글 완료 (target: {target_ref.path}, user_id: {user_id}, liked: {liked})")
    return liked


def add_counted_child(db, parent_ref, child_ref, child_data: Dict[str, Any], counter_field: str, *,
                      not_found_message: str, max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> str:
    """
    부모 문서 아래에 자식 문서를 만들고 부모의 카운터를 1 증가시킵니다. (단일 트랜잭션)
    부모의 isDeleted 여부는 확인하지 않고 존재 여부만 확인합니다.
    """
    def _add_in_transaction(transaction):
        parent_snapshot = parent_ref.get(transaction=transaction)
        if not parent_snapshot.exists:
            raise NotFound(not_found_message)

        transaction.set(child_ref, child_data)
        transaction.update(parent_ref, {counter_field: firestore.Increment(1), 'updatedAt': DateTimeUtils.now()})
        return child_ref.id

    return run_transaction(db, _add_in_transaction, max_attempts=max_attempts,
                           description=f"{counter_field} 증가({parent_ref.path})")
