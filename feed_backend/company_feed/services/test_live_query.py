# company_feed/services/test_live_query.py
"""라이브 쿼리 구독(Subscription) 테스트"""

from company_feed.models.post import Post
from company_feed.services.live_query import Subscription, documents_of, document_exists
from company_feed.utils.exceptions import SubscriptionClosed


def _posts(fake_db):
    return fake_db.collection('companies').document('acme').collection('posts')


def _valid_post(post_id):
    return Post(post_id=post_id, user_id='u1', company_id='acme', content='hi').to_firestore()


def test_malformed_document_is_delivered_as_error(fake_db):
    """변환 실패는 구독을 끝내지 않고 error 스냅샷으로 전달되어야 함"""
    _posts(fake_db).document('bad').set({'content': 'no author'})
    sub = Subscription(_posts(fake_db), documents_of(Post.from_snapshot), description='posts')

    first = sub.next_snapshot(timeout=1)
    assert first.ok is False
    assert isinstance(first.error, KeyError)

    _posts(fake_db).document('bad').set(_valid_post('bad'))
    second = sub.next_snapshot(timeout=1)
    assert second.ok
    assert [p.post_id for p in second.data] == ['bad']
    assert sub.latest is second
    sub.unsubscribe()


def test_listener_failure_becomes_error_snapshot(fake_db):
    _posts(fake_db).document('p1').set(_valid_post('p1'))

    def broken_listener(snapshot):
        raise RuntimeError("render failed")

    sub = Subscription(_posts(fake_db), documents_of(Post.from_snapshot), listener=broken_listener)

    assert sub.latest.ok is False
    assert str(sub.latest.error) == "render failed"
    assert sub.active
    sub.unsubscribe()


def test_listener_mode_does_not_buffer_snapshots(fake_db):
    """리스너 방식 구독은 스냅샷을 큐에 쌓지 않아야 함"""
    received = []
    sub = Subscription(_posts(fake_db), documents_of(Post.from_snapshot), listener=received.append)

    for i in range(50):
        _posts(fake_db).document(f'p{i:02d}').set(_valid_post(f'p{i:02d}'))

    assert len(received) == 51
    assert len(received[-1].data) == 50
    assert sub._queue.qsize() == 0
    sub.unsubscribe()


class _DyingWatch:
    """저장소 오류로 스스로 닫히는 Firestore Watch 흉내"""

    def __init__(self):
        self.is_active = True
        self.unsubscribed = False

    def unsubscribe(self):
        self.unsubscribed = True
        self.is_active = False


class _DyingSource:
    def __init__(self):
        self.watches = []

    def on_snapshot(self, callback):
        watch = _DyingWatch()
        self.watches.append(watch)
        callback([], [], None)
        return watch


def test_closed_watch_is_reported_as_error_snapshot():
    source = _DyingSource()
    sub = Subscription(source, len, poll_seconds=0.01)
    assert sub.next_snapshot(timeout=1).data == 0

    source.watches[0].is_active = False

    failure = sub.next_snapshot(timeout=1)
    assert failure.ok is False
    assert isinstance(failure.error, SubscriptionClosed)
    assert sub.active is False
    assert sub.next_snapshot(timeout=0.01) is None

    # 오류 뒤에는 다시 구독할 수 있음
    sub.restart()
    assert sub.active
    assert len(source.watches) == 2
    assert sub.next_snapshot(timeout=1).ok
    sub.unsubscribe()


def test_closed_watch_ends_iteration():
    source = _DyingSource()
    sub = Subscription(source, len, poll_seconds=0.01)
    source.watches[0].is_active = False

    snapshots = list(sub)

    assert [s.ok for s in snapshots] == [True, False]
    assert sub.active is False


def test_closed_watch_reaches_listener():
    source = _DyingSource()
    received = []
    sub = Subscription(source, len, listener=received.append)

    source.watches[0].is_active = False

    assert sub.active is False
    assert [s.ok for s in received] == [True, False]
    assert isinstance(sub.latest.error, SubscriptionClosed)


def test_unsubscribe_ends_iteration(fake_db):
    _posts(fake_db).document('p1').set(_valid_post('p1'))
    sub = Subscription(_posts(fake_db), documents_of(Post.from_snapshot))
    sub.unsubscribe()

    snapshots = list(sub)
    assert len(snapshots) == 1
    assert sub.next_snapshot(timeout=0.01) is None

    # 해제 후의 변경은 전달되지 않음
    _posts(fake_db).document('p2').set(_valid_post('p2'))
    assert sub.next_snapshot(timeout=0.01) is None
    assert sub.active is False


def test_restart_redelivers_current_result(fake_db):
    _posts(fake_db).document('p1').set(_valid_post('p1'))
    sub = Subscription(_posts(fake_db), documents_of(Post.from_snapshot))
    sub.next_snapshot(timeout=1)

    sub.restart()

    assert sub.active
    again = sub.next_snapshot(timeout=1)
    assert [p.post_id for p in again.data] == ['p1']
    sub.unsubscribe()


def test_document_subscription_reports_existence(fake_db):
    like_ref = _posts(fake_db).document('p1').collection('likes').document('u2')

    with Subscription(like_ref, document_exists) as sub:
        assert sub.next_snapshot(timeout=1).data is False
        like_ref.set({'userId': 'u2'})
        assert sub.next_snapshot(timeout=1).data is True
        like_ref.delete()
        assert sub.next_snapshot(timeout=1).data is False
