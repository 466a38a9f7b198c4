# company_feed/services/live_query.py
"""
Firestore on_snapshot 감시를 UI 프레임워크와 무관한 구독(Subscription) 객체로 감쌉니다.

- 쿼리 결과가 바뀔 때마다 필터/정렬/limit이 적용된 "전체 결과 집합"을 LiveSnapshot으로 전달합니다.
- 변환(projection) 중 오류가 나면 구독을 끝내지 않고 error가 담긴 LiveSnapshot을 전달합니다.
- 저장소 오류로 감시가 스스로 닫히면 SubscriptionClosed가 담긴 LiveSnapshot을 한 번 전달하고 구독을 끝냅니다.
- 리스너 콜백 방식과 이터레이터 방식 중 하나로 소비합니다. 리스너가 있으면 큐에 쌓지 않습니다.
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Iterator, List, Optional

from company_feed.utils.exceptions import SubscriptionClosed

logger = logging.getLogger(__name__)

_CLOSED = object()
_EMPTY = object()

# 감시 종료 여부를 확인하는 간격(초)
WATCH_POLL_SECONDS = 1.0


@dataclass
class LiveSnapshot:
    """구독이 한 번 전달하는 결과. data 또는 error 중 하나만 채워집니다."""
    data: Any = None
    error: Optional[Exception] = None
    read_time: Optional[datetime] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Subscription:
    """
    라이브 쿼리 구독.

    사용 예:
        with post_service.get_company_posts(company_id) as sub:
            for snapshot in sub:
                if snapshot.ok:
                    render(snapshot.data)

    :param source: on_snapshot을 지원하는 Firestore Query 또는 DocumentReference
    :param projection: 스냅샷 문서 리스트 -> 전달할 값
    :param listener: 스냅샷마다 호출할 콜백 (선택). 지정하면 이터레이터로는 받을 수 없습니다.
    :param description: 로그용 이름
    :param poll_seconds: 이터레이터 대기 중 감시 종료를 확인하는 간격
    """

    def __init__(self, source, projection: Callable[[List[Any]], Any],
                 listener: Optional[Callable[[LiveSnapshot], None]] = None,
                 description: str = "live query",
                 poll_seconds: float = WATCH_POLL_SECONDS):
        self._source = source
        self._projection = projection
        self._listener = listener
        self._description = description
        self._poll_seconds = poll_seconds
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._lock = threading.Lock()
        self._watch = None
        self.latest: Optional[LiveSnapshot] = None
        self.start()

    @property
    def active(self) -> bool:
        """감시가 살아 있는지 여부. 조회할 때 감시 종료도 확인합니다."""
        self._check_watch()
        return self._watch is not None

    def start(self) -> None:
        with self._lock:
            if self._watch is None:
                self._watch = self._source.on_snapshot(self._on_snapshot)
                logger.info(f"구독 시작: {self._description}")

    def unsubscribe(self) -> None:
        with self._lock:
            watch, self._watch = self._watch, None
        if watch is not None:
            watch.unsubscribe()
            self._queue.put(_CLOSED)
            logger.info(f"구독 해제: {self._description}")

    def restart(self) -> None:
        """오류 후 재구독. 새 감시가 첫 스냅샷을 다시 전달합니다."""
        self.unsubscribe()
        self._queue = queue.Queue()
        self.start()

    def _check_watch(self) -> None:
        # Firestore Watch는 복구할 수 없는 오류가 나면 콜백 없이 스스로 닫힙니다.
        with self._lock:
            watch = self._watch
            if watch is None or getattr(watch, 'is_active', True):
                return
            self._watch = None
        logger.error(f"감시가 종료되어 구독을 끝냅니다: {self._description}")
        self._deliver(LiveSnapshot(error=SubscriptionClosed(f"라이브 쿼리 연결이 끊어졌습니다 ({self._description}).")))
        self._queue.put(_CLOSED)

    def _on_snapshot(self, docs, changes, read_time) -> None:
        try:
            snapshot = LiveSnapshot(data=self._projection(list(docs)), read_time=read_time)
        except Exception as e:
            logger.warning(f"스냅샷 변환 실패 ({self._description}): {e}")
            snapshot = LiveSnapshot(error=e, read_time=read_time)
        self._deliver(snapshot)

    def _deliver(self, snapshot: LiveSnapshot) -> None:
        self.latest = snapshot
        if self._listener is None:
            self._queue.put(snapshot)
            return
        try:
            self._listener(snapshot)
        except Exception as e:
            logger.error(f"구독 리스너 오류 ({self._description}): {e}", exc_info=True)
            self.latest = LiveSnapshot(error=e, read_time=snapshot.read_time)

    def _next_item(self, timeout: Optional[float]) -> Any:
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            wait = self._poll_seconds
            if deadline is not None:
                wait = max(0.0, min(wait, deadline - time.monotonic()))
            try:
                return self._queue.get(timeout=wait)
            except queue.Empty:
                self._check_watch()
                if not self._queue.empty():
                    continue
                if deadline is not None and time.monotonic() >= deadline:
                    return _EMPTY

    def next_snapshot(self, timeout: Optional[float] = None) -> Optional[LiveSnapshot]:
        """다음 스냅샷을 기다립니다. 시간 초과나 구독 해제 시 None을 반환합니다."""
        item = self._next_item(timeout)
        return None if item is _CLOSED or item is _EMPTY else item

    def __iter__(self) -> Iterator[LiveSnapshot]:
        while True:
            item = self._next_item(None)
            if item is _CLOSED:
                return
            yield item

    def __enter__(self) -> 'Subscription':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.unsubscribe()


def documents_of(model_factory: Callable[[Any], Any]) -> Callable[[List[Any]], List[Any]]:
    """문서 리스트를 모델 리스트로 바꾸는 projection을 만듭니다."""
    def _project(docs: List[Any]) -> List[Any]:
        return [model_factory(doc) for doc in docs]
    return _project


def document_exists(docs: List[Any]) -> bool:
    return any(doc.exists for doc in docs)
