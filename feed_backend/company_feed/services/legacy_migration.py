# company_feed/services/legacy_migration.py
"""
이전 게시글 구조(최상위 posts/{id} 문서에 likes/comments 배열을 내장)를
회사별 하위 컬렉션 구조로 옮기는 일회성 마이그레이션.

    posts/{postId}                 -> companies/{companyId}/posts/{postId}
    posts/{postId}.likes[]         -> .../posts/{postId}/likes/{userId}
    posts/{postId}.comments[]      -> .../posts/{postId}/comments/{commentId}
    comments[].likes[]             -> .../comments/{commentId}/likes/{userId}

likeCount/commentCount는 옮겨진 멤버십 문서 수로 채웁니다. 원본 문서는 그대로 둡니다.
게시글 문서는 하위 문서를 모두 쓴 뒤 마지막에 씁니다. 도중에 배치 커밋이 실패하면
새 경로에 게시글이 없으므로 다시 실행했을 때 처음부터 옮겨집니다.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from google.cloud.firestore_v1.base_query import FieldFilter

from company_feed.models.comment import Comment
from company_feed.models.like import Like
from company_feed.models.post import Post
from company_feed.services.firestore_service import (
    posts_collection, post_likes_collection, comments_collection, comment_likes_collection
)
from company_feed.utils.datetime_utils import DateTimeUtils

logger = logging.getLogger(__name__)

LEGACY_POSTS_COLLECTION = 'posts'
# Firestore 배치 한 번에 허용되는 쓰기는 500개입니다.
DEFAULT_BATCH_SIZE = 400


@dataclass
class MigrationReport:
    dry_run: bool = False
    posts: int = 0
    likes: int = 0
    comments: int = 0
    comment_likes: int = 0
    skipped_existing: List[str] = field(default_factory=list)
    skipped_invalid: List[str] = field(default_factory=list)

    def summary(self) -> str:
        mode = "dry-run" if self.dry_run else "migrated"
        return (f"[{mode}] posts={self.posts}, likes={self.likes}, comments={self.comments}, "
                f"comment_likes={self.comment_likes}, skipped_existing={len(self.skipped_existing)}, "
                f"skipped_invalid={len(self.skipped_invalid)}")


def _unique_likes(raw_likes: Optional[List[Dict[str, Any]]], fallback_time) -> List[Like]:
    """userId 기준으로 중복을 제거합니다. 같은 사용자의 좋아요는 처음 것만 남깁니다."""
    likes: Dict[str, Like] = {}
    for raw in raw_likes or []:
        user_id = (raw or {}).get('userId')
        if not user_id or user_id in likes:
            continue
        created_at = DateTimeUtils.from_firestore(raw.get('createdAt')) or fallback_time
        likes[user_id] = Like(user_id=user_id, created_at=created_at)
    return list(likes.values())


class _BatchWriter:
    """배치 크기를 넘기기 전에 자동으로 커밋하는 쓰기 도우미"""

    def __init__(self, db, batch_size: int, dry_run: bool):
        self._db = db
        self._batch_size = batch_size
        self._dry_run = dry_run
        self._batch = None
        self._pending = 0

    def set(self, doc_ref, data: Dict[str, Any]) -> None:
        if self._dry_run:
            return
        if self._batch is None:
            self._batch = self._db.batch()
        self._batch.set(doc_ref, data)
        self._pending += 1
        if self._pending >= self._batch_size:
            self.flush()

    def write_post(self, writes: List[Tuple[Any, Dict[str, Any]]]) -> None:
        """
        게시글 하나의 쓰기 묶음을 기록합니다.
        현재 배치에 다 들어가지 않으면 먼저 커밋해서 묶음이 한 배치에 담기게 합니다.
        배치 크기보다 큰 묶음은 나뉘어 커밋되므로 게시글 문서는 묶음의 마지막에 둡니다.
        """
        if self._dry_run:
            return
        if self._pending and self._pending + len(writes) > self._batch_size:
            self.flush()
        for doc_ref, data in writes:
            self.set(doc_ref, data)

    def flush(self) -> None:
        if self._batch is not None and self._pending:
            self._batch.commit()
            logger.info(f"배치 커밋 완료 ({self._pending}건)")
        self._batch = None
        self._pending = 0


class LegacyPostMigrator:
    """
    :param db: firestore.Client
    :param batch_size: 배치당 최대 쓰기 수
    """

    def __init__(self, db, batch_size: int = DEFAULT_BATCH_SIZE):
        if not 0 < batch_size <= 500:
            raise ValueError("batch_size는 1~500 사이여야 합니다.")
        self.db = db
        self.batch_size = batch_size

    def _legacy_query(self, company_id: Optional[str]):
        query = self.db.collection(LEGACY_POSTS_COLLECTION)
        if company_id:
            query = query.where(filter=FieldFilter('companyId', '==', company_id))
        return query

    def migrate(self, company_id: Optional[str] = None, dry_run: bool = False) -> MigrationReport:
        """
        레거시 게시글을 옮깁니다. 이미 새 경로에 같은 ID의 게시글이 있으면 건너뛰므로
        여러 번 실행해도 결과가 같습니다.

        :param company_id: 특정 회사만 옮길 때 지정
        :param dry_run: True면 쓰지 않고 개수만 집계
        """
        report = MigrationReport(dry_run=dry_run)
        writer = _BatchWriter(self.db, self.batch_size, dry_run)

        for doc in self._legacy_query(company_id).stream():
            data = doc.to_dict() or {}
            post_company_id = data.get('companyId')
            if not post_company_id or not data.get('userId') or data.get('createdAt') is None:
                logger.warning(f"필수 필드가 없는 레거시 게시글을 건너뜁니다 (post_id: {doc.id})")
                report.skipped_invalid.append(doc.id)
                continue

            target_ref = posts_collection(self.db, post_company_id).document(doc.id)
            if target_ref.get().exists:
                report.skipped_existing.append(doc.id)
                continue

            self._migrate_post(doc.id, data, post_company_id, writer, report)

        writer.flush()
        logger.info(report.summary())
        return report

    def _migrate_post(self, post_id: str, data: Dict[str, Any], company_id: str,
                      writer: _BatchWriter, report: MigrationReport) -> None:
        created_at = DateTimeUtils.from_firestore(data['createdAt'])
        likes = _unique_likes(data.get('likes'), created_at)
        raw_comments = [c for c in (data.get('comments') or []) if c]

        post = Post(
            post_id=post_id,
            user_id=data['userId'],
            company_id=company_id,
            content=data.get('content') or '',
            image_urls=list(data.get('imageUrls') or []),
            created_at=created_at,
            updated_at=DateTimeUtils.from_firestore(data.get('updatedAt')),
            like_count=len(likes),
            # 작성 횟수 기준이므로 소프트 삭제된 댓글도 셉니다.
            comment_count=len(raw_comments),
            share_count=int(data.get('shareCount') or 0),
            is_deleted=bool(data.get('isDeleted', False)),
        )
        writes: List[Tuple[Any, Dict[str, Any]]] = []
        for like in likes:
            writes.append((post_likes_collection(self.db, company_id, post_id).document(like.user_id), like.to_firestore()))

        for index, raw in enumerate(raw_comments):
            # ID가 없는 댓글도 재실행 시 같은 문서에 쓰도록 위치로 ID를 정합니다.
            comment_id = raw.get('id') or f"{post_id}-legacy-{index}"
            comment_ref = comments_collection(self.db, company_id, post_id).document(comment_id)
            comment_created_at = DateTimeUtils.from_firestore(raw.get('createdAt')) or created_at
            comment_likes = _unique_likes(raw.get('likes'), comment_created_at)
            comment = Comment(
                comment_id=comment_ref.id,
                user_id=raw.get('userId') or '',
                content=raw.get('content') or '',
                created_at=comment_created_at,
                updated_at=DateTimeUtils.from_firestore(raw.get('updatedAt')),
                like_count=len(comment_likes),
                is_deleted=bool(raw.get('isDeleted', False)),
            )
            writes.append((comment_ref, comment.to_firestore()))
            for like in comment_likes:
                writes.append((
                    comment_likes_collection(self.db, company_id, post_id, comment_ref.id).document(like.user_id),
                    like.to_firestore(),
                ))
            report.comment_likes += len(comment_likes)

        writes.append((posts_collection(self.db, company_id).document(post_id), post.to_firestore()))
        writer.write_post(writes)

        report.posts += 1
        report.likes += len(likes)
        report.comments += len(raw_comments)
