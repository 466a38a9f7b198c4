# company_feed/api/posts/services.py
import logging
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List, Callable

import requests
from firebase_admin import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from company_feed.models.post import Post
from company_feed.models.like import Like
from company_feed.services import counted_collection
from company_feed.services.firestore_service import (
    posts_collection, post_likes_collection, update_document, DEFAULT_MAX_ATTEMPTS
)
from company_feed.services.live_query import Subscription, LiveSnapshot, documents_of, document_exists
from company_feed.services.relay_client import RelayClient, RelayConfig, ImageUpload
from company_feed.utils.datetime_utils import DateTimeUtils
from company_feed.utils.exceptions import NotFound, ValidationFailed, UploadFailed

COMPANY_POSTS_LIMIT = 50
USER_POSTS_LIMIT = 20
POST_LIKES_LIMIT = 100

POST_IMAGE_FOLDER = 'posts'

Listener = Optional[Callable[[LiveSnapshot], None]]


@dataclass
class PostCreationResult:
    """
    이미지 업로드를 포함한 게시글 생성 결과.
    일부 이미지 업로드가 실패해도 게시글은 생성되며 실패 개수만 보고합니다.
    """
    post_id: str
    image_urls: List[str] = field(default_factory=list)
    failed_uploads: int = 0
    upload_errors: List[str] = field(default_factory=list)

    @property
    def summary(self) -> str:
        if self.failed_uploads:
            return f"게시글이 작성되었습니다. 이미지 {self.failed_uploads}개 업로드에 실패했습니다."
        return "게시글이 작성되었습니다."


def validate_post_content(content: Optional[str], image_urls: Optional[List[str]]) -> None:
    """본문이 비어 있으면 이미지가 최소 1개 있어야 합니다."""
    if not (content or '').strip() and not image_urls:
        raise ValidationFailed("내용이나 이미지 중 하나는 반드시 있어야 합니다.")


class PostService:
    """
    게시글 관련 비즈니스 로직을 담당하는 서비스 클래스.
    - 모든 문서는 companies/{company_id}/posts 아래에 저장됩니다.
    - likeCount는 likes 하위 컬렉션과 같은 트랜잭션에서만 바뀝니다.
    - 서비스 인스턴스는 회사별 상태를 갖지 않으며 company_id는 매 호출마다 전달합니다.
    """

    def __init__(self, db=None, relay_base_url: Optional[str] = None,
                 max_attempts: int = DEFAULT_MAX_ATTEMPTS,
                 relay_public_base_url: Optional[str] = None):
        self.db = db or firestore.client()
        self.relay_base_url = relay_base_url
        self.relay_public_base_url = relay_public_base_url
        self.max_attempts = max_attempts
        # 릴레이 HTTP 연결은 회사와 무관하게 하나의 세션으로 재사용합니다.
        self.relay_session = requests.Session()

    def _post_ref(self, company_id: str, post_id: str):
        return posts_collection(self.db, company_id).document(post_id)

    # --- 생성 ---
    def create_post(self, author_id: str, company_id: str, content: str,
                    image_urls: Optional[List[str]] = None,
                    metadata: Optional[Dict[str, Any]] = None) -> str:
        """새로운 게시글을 생성하고 Firestore가 발급한 문서 ID를 반환합니다."""
        image_urls = list(image_urls or [])
        validate_post_content(content, image_urls)

        post_ref = posts_collection(self.db, company_id).document()
        new_post = Post(
            post_id=post_ref.id,
            user_id=author_id,
            company_id=company_id,
            content=content or '',
            image_urls=image_urls,
            metadata=metadata,
        )
        try:
            post_ref.set(new_post.to_firestore())
        except Exception as e:
            logging.error(f"게시글 생성 실패 (author_id: {author_id}, company_id: {company_id}): {e}", exc_info=True)
            raise

        logging.info(f"게시글 생성 완료 (post_id: {post_ref.id}, company_id: {company_id})")
        return post_ref.id

    def relay_for(self, company_id: str) -> Optional[RelayClient]:
        """RELAY_BASE_URL이 없으면 None을 반환합니다."""
        if not self.relay_base_url:
            return None
        return RelayClient(RelayConfig(base_url=self.relay_base_url, company_id=company_id,
                                       public_base_url=self.relay_public_base_url),
                           session=self.relay_session)

    def create_post_with_uploads(self, author_id: str, company_id: str, content: str,
                                 uploads: List[ImageUpload],
                                 metadata: Optional[Dict[str, Any]] = None,
                                 relay_client: Optional[RelayClient] = None) -> PostCreationResult:
        """
        이미지를 릴레이에 순서대로 업로드한 뒤 게시글을 생성합니다.
        업로드에 실패한 이미지는 건너뛰고 실패 개수를 결과에 담습니다.
        릴레이가 설정되지 않았으면 모든 이미지를 업로드 실패로 처리합니다.
        """
        image_urls: List[str] = []
        errors: List[str] = []
        relay = relay_client or self.relay_for(company_id)
        if relay is None:
            error = UploadFailed("릴레이가 설정되지 않아 이미지를 업로드할 수 없습니다.")
            logging.warning(f"{error.message} (이미지 {len(uploads)}개 건너뜀)")
            errors = [error.message for _ in uploads]
            uploads = []
        else:
            relay.initialize()

        for upload in uploads:
            result = relay.upload_file(upload.data, upload.filename,
                                       folder=POST_IMAGE_FOLDER, content_type=upload.content_type)
            if result.success and result.key:
                image_urls.append(result.key)
            else:
                error = result.to_error()
                logging.warning(f"이미지 업로드 실패, 건너뜀 (filename: {upload.filename}): {error.message}")
                errors.append(error.message)

        post_id = self.create_post(author_id, company_id, content, image_urls, metadata)
        return PostCreationResult(post_id=post_id, image_urls=image_urls,
                                  failed_uploads=len(errors), upload_errors=errors)

    # --- 조회 ---
    def get_post(self, post_id: str, company_id: str) -> Optional[Post]:
        doc = self._post_ref(company_id, post_id).get()
        if not doc.exists:
            return None
        return Post.from_snapshot(doc)

    def get_company_posts(self, company_id: str, listener: Listener = None) -> Subscription:
        """회사 피드 라이브 쿼리 (최신순 50개, 삭제된 게시글 제외)"""
        query = (posts_collection(self.db, company_id)
                 .where(filter=FieldFilter('companyId', '==', company_id))
                 .where(filter=FieldFilter('isDeleted', '==', False))
                 .order_by('createdAt', direction=firestore.Query.DESCENDING)
                 .limit(COMPANY_POSTS_LIMIT))
        return Subscription(query, documents_of(Post.from_snapshot), listener,
                            description=f"company posts ({company_id})")

    def get_user_posts(self, user_id: str, company_id: str, listener: Listener = None) -> Subscription:
        """특정 사용자가 회사 안에서 작성한 게시글 라이브 쿼리 (최신순 20개)"""
        query = (posts_collection(self.db, company_id)
                 .where(filter=FieldFilter('userId', '==', user_id))
                 .where(filter=FieldFilter('companyId', '==', company_id))
                 .where(filter=FieldFilter('isDeleted', '==', False))
                 .order_by('createdAt', direction=firestore.Query.DESCENDING)
                 .limit(USER_POSTS_LIMIT))
        return Subscription(query, documents_of(Post.from_snapshot), listener,
                            description=f"user posts ({company_id}/{user_id})")

    def get_post_likes(self, post_id: str, company_id: str, listener: Listener = None) -> Subscription:
        """게시글에 좋아요를 누른 사용자 라이브 쿼리 (먼저 누른 순 100명)"""
        query = (post_likes_collection(self.db, company_id, post_id)
                 .order_by('createdAt', direction=firestore.Query.ASCENDING)
                 .limit(POST_LIKES_LIMIT))
        return Subscription(query, documents_of(Like.from_snapshot), listener,
                            description=f"post likes ({company_id}/{post_id})")

    def is_post_liked(self, post_id: str, user_id: str, company_id: str) -> bool:
        return post_likes_collection(self.db, company_id, post_id).document(user_id).get().exists

    def watch_post_liked(self, post_id: str, user_id: str, company_id: str, listener: Listener = None) -> Subscription:
        like_ref = post_likes_collection(self.db, company_id, post_id).document(user_id)
        return Subscription(like_ref, document_exists, listener,
                            description=f"post liked ({company_id}/{post_id}/{user_id})")

    # --- 좋아요 ---
    def toggle_like(self, post_id: str, user_id: str, company_id: str) -> bool:
        """게시글 좋아요를 누르거나 취소하고 새 좋아요 상태를 반환합니다."""
        post_ref = self._post_ref(company_id, post_id)
        like_ref = post_likes_collection(self.db, company_id, post_id).document(user_id)
        return counted_collection.toggle_like(
            self.db, post_ref, like_ref, user_id,
            not_found_message="게시글을 찾을 수 없습니다.",
            max_attempts=self.max_attempts,
        )

    # --- 수정/삭제 ---
    def update_post(self, post_id: str, company_id: str, content: str,
                    image_urls: Optional[List[str]] = None) -> None:
        """
        게시글 본문(및 이미지 목록)을 수정합니다.
        image_urls가 None이면 기존 이미지를 유지합니다.
        소프트 삭제된 게시글은 조회와 마찬가지로 없는 것으로 보고 NotFound를 던집니다.
        """
        current = self.get_post(post_id, company_id)
        if current is None or current.is_deleted:
            raise NotFound("게시글을 찾을 수 없습니다.")
        validate_post_content(content, current.image_urls if image_urls is None else image_urls)

        update_data: Dict[str, Any] = {'content': content or '', 'updatedAt': DateTimeUtils.now()}
        if image_urls is not None:
            update_data['imageUrls'] = list(image_urls)
        update_document(self._post_ref(company_id, post_id), update_data, "게시글을 찾을 수 없습니다.")

    def delete_post(self, post_id: str, company_id: str) -> None:
        """게시글을 소프트 삭제합니다. (isDeleted=True, 문서는 유지)"""
        update_document(self._post_ref(company_id, post_id),
                        {'isDeleted': True, 'updatedAt': DateTimeUtils.now()},
                        "게시글을 찾을 수 없습니다.")
        logging.info(f"게시글 삭제(soft) 완료 (post_id: {post_id}, company_id: {company_id})")

    def increment_share_count(self, post_id: str, company_id: str) -> None:
        """공유 수를 원자적으로 1 증가시킵니다. 공유는 되돌릴 수 없으며 멤버십 컬렉션이 없습니다."""
        update_document(self._post_ref(company_id, post_id),
                        {'shareCount': firestore.Increment(1), 'updatedAt': DateTimeUtils.now()},
                        "게시글을 찾을 수 없습니다.")
