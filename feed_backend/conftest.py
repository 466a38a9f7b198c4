# conftest.py
"""
공통 pytest 픽스처.

- fake_db: 인메모리 Firestore 대역. firestore.transactional을 대역의 구현으로 교체합니다.
- post_service / comment_service: fake_db를 주입한 서비스
- client: create_app('testing')으로 만든 피드 API 테스트 클라이언트
- relay_client_app: 가짜 Storage 버킷을 주입한 릴레이 테스트 클라이언트
"""

import io
from datetime import datetime, timedelta, timezone

import pytest
from firebase_admin import firestore

from company_feed import create_app, create_relay_app
from company_feed.api.comments.services import CommentService
from company_feed.api.posts.services import PostService
from company_feed.models.post import Post
from company_feed.services.firestore_service import posts_collection
import fake_firestore

COMPANY_ID = 'acme'
BASE_TIME = datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def fake_db(monkeypatch):
    monkeypatch.setattr(firestore, 'transactional', fake_firestore.transactional)
    return fake_firestore.FakeFirestore()


@pytest.fixture
def post_service(fake_db):
    return PostService(db=fake_db, relay_base_url='http://relay.test', max_attempts=10)


@pytest.fixture
def comment_service(fake_db):
    return CommentService(db=fake_db, max_attempts=10)


@pytest.fixture
def seed_post(fake_db):
    """createdAt을 직접 지정해 게시글 문서를 만듭니다. (정렬 테스트용)"""
    def _seed(post_id, user_id='u1', company_id=COMPANY_ID, minutes=0, **overrides):
        post = Post(
            post_id=post_id,
            user_id=user_id,
            company_id=company_id,
            content=overrides.pop('content', f'post {post_id}'),
            created_at=BASE_TIME + timedelta(minutes=minutes),
            **overrides,
        )
        posts_collection(fake_db, company_id).document(post_id).set(post.to_firestore())
        return post_id
    return _seed


@pytest.fixture
def app(fake_db):
    return create_app('testing', db=fake_db)


@pytest.fixture
def client(app):
    return app.test_client()


class FakeBlob:
    def __init__(self, bucket, name):
        self.bucket = bucket
        self.name = name
        self.content_type = None
        self.size = None
        self._data = b''

    def upload_from_string(self, data, content_type=None):
        if self.bucket.fail_uploads:
            raise RuntimeError("bucket is read-only")
        self._data = data
        self.content_type = content_type
        self.size = len(data)
        self.bucket.blobs[self.name] = self

    def open(self, mode='rb', chunk_size=None):
        return io.BytesIO(self._data)


class FakeBucket:
    """google.cloud.storage.Bucket 대역"""

    def __init__(self):
        self.blobs = {}
        self.fail_uploads = False

    def blob(self, name):
        return FakeBlob(self, name)

    def get_blob(self, name):
        return self.blobs.get(name)


@pytest.fixture
def fake_bucket():
    return FakeBucket()


@pytest.fixture
def relay_client_app(fake_bucket):
    app = create_relay_app('testing', bucket=fake_bucket)
    return app.test_client()
