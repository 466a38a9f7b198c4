# company_feed/api/comments/test_comment_service.py
"""
댓글 서비스 테스트

사용법: python -m pytest company_feed/api/comments/test_comment_service.py -v
"""

import threading
from datetime import timedelta

import pytest

from company_feed.api.comments.services import COMMENTS_LIMIT
from company_feed.models.comment import Comment
from company_feed.services.firestore_service import comments_collection
from company_feed.utils.datetime_utils import DateTimeUtils
from company_feed.utils.exceptions import NotFound, ValidationFailed

COMPANY = 'acme'


def _post_doc(fake_db, post_id):
    return fake_db.raw(f'companies/{COMPANY}/posts/{post_id}')


def _comment_doc(fake_db, post_id, comment_id):
    return fake_db.raw(f'companies/{COMPANY}/posts/{post_id}/comments/{comment_id}')


def test_add_comment_increments_comment_count(fake_db, post_service, comment_service):
    post_id = post_service.create_post('u1', COMPANY, 'hello')

    comment_id = comment_service.add_comment(post_id, 'u3', COMPANY, 'hi', metadata={'source': 'web'})

    assert _post_doc(fake_db, post_id)['commentCount'] == 1
    comment = _comment_doc(fake_db, post_id, comment_id)
    assert comment['userId'] == 'u3'
    assert comment['content'] == 'hi'
    assert comment['likeCount'] == 0
    assert comment['isDeleted'] is False
    assert comment['metadata'] == {'source': 'web'}


def test_add_comment_validation_and_missing_post(fake_db, post_service, comment_service):
    post_id = post_service.create_post('u1', COMPANY, 'hello')

    with pytest.raises(ValidationFailed):
        comment_service.add_comment(post_id, 'u3', COMPANY, '  \n ')
    with pytest.raises(NotFound):
        comment_service.add_comment('nope', 'u3', COMPANY, 'hi')

    assert _post_doc(fake_db, post_id)['commentCount'] == 0
    assert fake_db.raw(f'companies/{COMPANY}/posts/nope') is None


def test_comment_on_soft_deleted_post_is_accepted(fake_db, post_service, comment_service):
    """숨겨진 게시글이라도 문서가 있으면 댓글을 작성할 수 있음"""
    post_id = post_service.create_post('u1', COMPANY, 'hello')
    post_service.delete_post(post_id, COMPANY)

    comment_service.add_comment(post_id, 'u3', COMPANY, 'still here')

    assert _post_doc(fake_db, post_id)['commentCount'] == 1


def test_delete_comment_keeps_comment_count(fake_db, post_service, comment_service):
    """commentCount는 작성 횟수이므로 소프트 삭제 후에도 줄지 않음"""
    post_id = post_service.create_post('u1', COMPANY, 'hello')
    comment_id = comment_service.add_comment(post_id, 'u3', COMPANY, 'hi')

    comment_service.delete_comment(post_id, comment_id, COMPANY)

    assert _post_doc(fake_db, post_id)['commentCount'] == 1
    assert _comment_doc(fake_db, post_id, comment_id)['isDeleted'] is True
    with comment_service.get_comments(post_id, COMPANY) as sub:
        assert sub.next_snapshot(timeout=1).data == []
    with pytest.raises(NotFound):
        comment_service.delete_comment(post_id, 'nope', COMPANY)


def test_update_comment(fake_db, post_service, comment_service):
    post_id = post_service.create_post('u1', COMPANY, 'hello')
    comment_id = comment_service.add_comment(post_id, 'u3', COMPANY, 'hi')

    comment_service.update_comment(post_id, comment_id, COMPANY, 'edited')

    updated = comment_service.get_comment(post_id, comment_id, COMPANY)
    assert updated.content == 'edited'
    assert updated.updated_at is not None
    with pytest.raises(ValidationFailed):
        comment_service.update_comment(post_id, comment_id, COMPANY, ' ')
    with pytest.raises(NotFound):
        comment_service.update_comment(post_id, 'nope', COMPANY, 'edited')


def test_comments_are_oldest_first_and_limited(fake_db, post_service, comment_service):
    post_id = post_service.create_post('u1', COMPANY, 'hello')
    base = DateTimeUtils.now()
    collection = comments_collection(fake_db, COMPANY, post_id)
    for i in reversed(range(COMMENTS_LIMIT + 2)):
        comment = Comment(comment_id=f'c{i:03d}', user_id='u2', content=f'#{i}',
                          created_at=base + timedelta(seconds=i))
        collection.document(comment.comment_id).set(comment.to_firestore())

    with comment_service.get_comments(post_id, COMPANY) as sub:
        comments = sub.next_snapshot(timeout=1).data

    assert len(comments) == COMMENTS_LIMIT
    assert comments[0].comment_id == 'c000'
    assert comments[-1].comment_id == f'c{COMMENTS_LIMIT - 1:03d}'


def test_toggle_comment_like(fake_db, post_service, comment_service):
    post_id = post_service.create_post('u1', COMPANY, 'hello')
    comment_id = comment_service.add_comment(post_id, 'u3', COMPANY, 'hi')

    assert comment_service.toggle_comment_like(post_id, comment_id, 'u1', COMPANY) is True
    assert comment_service.toggle_comment_like(post_id, comment_id, 'u2', COMPANY) is True
    assert _comment_doc(fake_db, post_id, comment_id)['likeCount'] == 2
    assert comment_service.is_comment_liked(post_id, comment_id, 'u1', COMPANY) is True

    assert comment_service.toggle_comment_like(post_id, comment_id, 'u1', COMPANY) is False
    assert _comment_doc(fake_db, post_id, comment_id)['likeCount'] == 1
    # 댓글 좋아요는 게시글 likeCount와 무관
    assert _post_doc(fake_db, post_id)['likeCount'] == 0

    with comment_service.get_comment_likes(post_id, comment_id, COMPANY) as sub:
        assert [like.user_id for like in sub.next_snapshot(timeout=1).data] == ['u2']

    with pytest.raises(NotFound):
        comment_service.toggle_comment_like(post_id, 'nope', 'u1', COMPANY)


def _comment_like_ids(fake_db, post_id, comment_id):
    prefix = ('companies', COMPANY, 'posts', post_id, 'comments', comment_id, 'likes')
    return sorted(path[-1] for path in fake_db._docs if path[:-1] == prefix)


def test_concurrent_comment_likers_are_all_counted(fake_db, post_service, comment_service):
    """서로 다른 사용자 N명이 동시에 댓글 좋아요를 누르면 likeCount == N"""
    post_id = post_service.create_post('u1', COMPANY, 'hello')
    comment_id = comment_service.add_comment(post_id, 'u3', COMPANY, 'hi')
    users = [f'user{i}' for i in range(8)]
    barrier = threading.Barrier(len(users))
    results, errors = [], []

    def like(user_id):
        barrier.wait()
        try:
            results.append(comment_service.toggle_comment_like(post_id, comment_id, user_id, COMPANY))
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=like, args=(u,)) for u in users]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    assert errors == []
    assert results == [True] * len(users)
    assert _comment_doc(fake_db, post_id, comment_id)['likeCount'] == len(users)
    assert _comment_like_ids(fake_db, post_id, comment_id) == sorted(users)


def test_same_user_comment_like_race_applies_single_delta(fake_db, post_service, comment_service):
    post_id = post_service.create_post('u1', COMPANY, 'hello')
    comment_id = comment_service.add_comment(post_id, 'u3', COMPANY, 'hi')
    concurrent = []
    fake_db.on_before_commit(
        lambda: concurrent.append(comment_service.toggle_comment_like(post_id, comment_id, 'u2', COMPANY))
    )

    assert comment_service.toggle_comment_like(post_id, comment_id, 'u2', COMPANY) is True
    assert concurrent == [True]
    assert _comment_doc(fake_db, post_id, comment_id)['likeCount'] == 1
    assert _comment_like_ids(fake_db, post_id, comment_id) == ['u2']


def test_watch_comment_liked(post_service, comment_service):
    post_id = post_service.create_post('u1', COMPANY, 'hello')
    comment_id = comment_service.add_comment(post_id, 'u3', COMPANY, 'hi')

    with comment_service.watch_comment_liked(post_id, comment_id, 'u1', COMPANY) as sub:
        assert sub.next_snapshot(timeout=1).data is False
        comment_service.toggle_comment_like(post_id, comment_id, 'u1', COMPANY)
        assert sub.next_snapshot(timeout=1).data is True


def test_end_to_end_post_like_comment_scenario(fake_db, post_service, comment_service):
    p1 = post_service.create_post('u1', 'c1', 'hello', [])

    assert post_service.toggle_like(p1, 'u2', 'c1') is True
    assert fake_db.raw(f'companies/c1/posts/{p1}')['likeCount'] == 1
    assert post_service.toggle_like(p1, 'u2', 'c1') is False
    assert fake_db.raw(f'companies/c1/posts/{p1}')['likeCount'] == 0

    c1 = comment_service.add_comment(p1, 'u3', 'c1', 'hi')
    assert fake_db.raw(f'companies/c1/posts/{p1}')['commentCount'] == 1

    assert comment_service.toggle_comment_like(p1, c1, 'u1', 'c1') is True
    assert fake_db.raw(f'companies/c1/posts/{p1}/comments/{c1}')['likeCount'] == 1
