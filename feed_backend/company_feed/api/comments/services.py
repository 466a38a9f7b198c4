# company_feed/api/comments/services.py

import logging
from typing import Optional, Dict, Any, Callable

from firebase_admin import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from company_feed.models.comment import Comment
from company_feed.models.like import Like
from company_feed.services import counted_collection
from company_feed.services.firestore_service import (
    posts_collection, comments_collection, comment_likes_collection, update_document, DEFAULT_MAX_ATTEMPTS
)
from company_feed.services.live_query import Subscription, LiveSnapshot, documents_of, document_exists
from company_feed.utils.datetime_utils import DateTimeUtils
from company_feed.utils.exceptions import ValidationFailed

COMMENTS_LIMIT = 50
COMMENT_LIKES_LIMIT = 50

COMMENT_COUNT_FIELD = 'commentCount'

Listener = Optional[Callable[[LiveSnapshot], None]]


def validate_comment_content(content: Optional[str]) -> None:
    if not (content or '').strip():
        raise ValidationFailed("댓글 내용을 입력해주세요.")


class CommentService:
    """
    댓글 관련 비즈니스 로직을 담당하는 서비스 클래스.
    - 댓글은 companies/{company_id}/posts/{post_id}/comments 하위 컬렉션에 저장됩니다.
    - 댓글 작성과 게시글 commentCount 증가는 하나의 트랜잭션입니다.
    - commentCount는 댓글 "작성 횟수"이며 소프트 삭제 시 감소시키지 않습니다.
    """
    def __init__(self, db=None, max_attempts: int = DEFAULT_MAX_ATTEMPTS):
        """서비스 초기화 시 Firestore 클라이언트를 설정합니다."""
        self.db = db or firestore.client()
        self.max_attempts = max_attempts

    def _comment_ref(self, company_id: str, post_id: str, comment_id: str):
        return comments_collection(self.db, company_id, post_id).document(comment_id)

    def add_comment(self, post_id: str, author_id: str, company_id: str, content: str,
                    metadata: Optional[Dict[str, Any]] = None) -> str:
        """
        새로운 댓글을 작성하고 게시글의 commentCount를 1 증가시킵니다.
        게시글이 존재하기만 하면 소프트 삭제된 게시글에도 작성할 수 있습니다.
        """
        validate_comment_content(content)

        post_ref = posts_collection(self.db, company_id).document(post_id)
        comment_ref = comments_collection(self.db, company_id, post_id).document()
        new_comment = Comment(
            comment_id=comment_ref.id,
            user_id=author_id,
            content=content,
            metadata=metadata,
        )

        comment_id = counted_collection.add_counted_child(
            self.db, post_ref, comment_ref, new_comment.to_firestore(), COMMENT_COUNT_FIELD,
            not_found_message="댓글을 작성할 게시물이 존재하지 않습니다.",
            max_attempts=self.max_attempts,
        )
        logging.info(f"댓글 작성 완료 (post_id: {post_id}, comment_id: {comment_id})")
        return comment_id

    def get_comment(self, post_id: str, comment_id: str, company_id: str) -> Optional[Comment]:
        doc = self._comment_ref(company_id, post_id, comment_id).get()
        return Comment.from_snapshot(doc) if doc.exists else None

    def get_comments(self, post_id: str, company_id: str, listener: Listener = None) -> Subscription:
        """게시글의 댓글 라이브 쿼리 (작성순 50개, 삭제된 댓글 제외)"""
        query = (comments_collection(self.db, company_id, post_id)
                 .where(filter=FieldFilter('isDeleted', '==', False))
                 .order_by('createdAt', direction=firestore.Query.ASCENDING)
                 .limit(COMMENTS_LIMIT))
        return Subscription(query, documents_of(Comment.from_snapshot), listener,
                            description=f"comments ({company_id}/{post_id})")

    def toggle_comment_like(self, post_id: str, comment_id: str, user_id: str, company_id: str) -> bool:
        """댓글 좋아요를 누르거나 취소하고 새 좋아요 상태를 반환합니다."""
        comment_ref = self._comment_ref(company_id, post_id, comment_id)
        like_ref = comment_likes_collection(self.db, company_id, post_id, comment_id).document(user_id)
        return counted_collection.toggle_like(
            self.db, comment_ref, like_ref, user_id,
            not_found_message="좋아요를 누를 댓글을 찾을 수 없습니다.",
            max_attempts=self.max_attempts,
        )

    def is_comment_liked(self, post_id: str, comment_id: str, user_id: str, company_id: str) -> bool:
        return comment_likes_collection(self.db, company_id, post_id, comment_id).document(user_id).get().exists

    def watch_comment_liked(self, post_id: str, comment_id: str, user_id: str, company_id: str,
                            listener: Listener = None) -> Subscription:
        like_ref = comment_likes_collection(self.db, company_id, post_id, comment_id).document(user_id)
        return Subscription(like_ref, document_exists, listener,
                            description=f"comment liked ({company_id}/{post_id}/{comment_id}/{user_id})")

    def get_comment_likes(self, post_id: str, comment_id: str, company_id: str,
                          listener: Listener = None) -> Subscription:
        query = (comment_likes_collection(self.db, company_id, post_id, comment_id)
                 .order_by('createdAt', direction=firestore.Query.ASCENDING)
                 .limit(COMMENT_LIKES_LIMIT))
        return Subscription(query, documents_of(Like.from_snapshot), listener,
                            description=f"comment likes ({company_id}/{post_id}/{comment_id})")

    def update_comment(self, post_id: str, comment_id: str, company_id: str, content: str) -> None:
        validate_comment_content(content)
        update_document(self._comment_ref(company_id, post_id, comment_id),
                        {'content': content, 'updatedAt': DateTimeUtils.now()},
                        "수정할 댓글이 없습니다.")

    def delete_comment(self, post_id: str, comment_id: str, company_id: str) -> None:
        """댓글을 소프트 삭제합니다. 게시글의 commentCount는 그대로 둡니다."""
        update_document(self._comment_ref(company_id, post_id, comment_id),
                        {'isDeleted': True, 'updatedAt': DateTimeUtils.now()},
                        "삭제할 댓글이 없습니다.")
        logging.info(f"댓글 삭제(soft) 완료 (post_id: {post_id}, comment_id: {comment_id})")
