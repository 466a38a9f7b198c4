# fake_firestore.py
"""
테스트용 인메모리 Firestore 대역(test double).

서비스 계층이 사용하는 firestore.Client 인터페이스의 부분집합만 구현합니다.
- collection / document 참조, 하위 컬렉션
- get / set / update / delete, Increment 변환
- FieldFilter where, order_by, limit, stream
- 트랜잭션: 읽은 문서의 버전을 기록해 두었다가 커밋 시 비교하는 낙관적 동시성.
  버전이 바뀌었으면 google.api_core.exceptions.Aborted를 던지고 transactional이 재시도합니다.
- on_snapshot: 커밋마다 쿼리를 다시 평가해 결과가 바뀌면 콜백을 호출합니다.
- batch: 여러 쓰기를 원자적으로 커밋

실제 클라이언트 대신 서비스 생성자에 주입하고, firestore.transactional을
이 모듈의 transactional로 교체해서 사용합니다. (conftest.py 참고)
"""

import copy
import threading
import uuid
from typing import Any, Callable, Dict, List, Optional, Tuple

from google.api_core import exceptions as gcp_exceptions
from google.cloud.firestore_v1.transforms import Increment

from company_feed.utils.datetime_utils import DateTimeUtils

ASCENDING = "ASCENDING"
DESCENDING = "DESCENDING"

_MISSING = object()


def _auto_id() -> str:
    return uuid.uuid4().hex[:20]


def _get_field(data: Dict[str, Any], field_path: str) -> Any:
    value: Any = data
    for part in field_path.split('.'):
        if not isinstance(value, dict) or part not in value:
            return _MISSING
        value = value[part]
    return value


def _matches(value: Any, op: str, expected: Any) -> bool:
    if value is _MISSING:
        return False
    if op == '==':
        return value == expected
    if op == '!=':
        return value != expected
    if op == '<':
        return value < expected
    if op == '<=':
        return value <= expected
    if op == '>':
        return value > expected
    if op == '>=':
        return value >= expected
    if op == 'in':
        return value in expected
    if op == 'not-in':
        return value not in expected
    if op == 'array_contains':
        return isinstance(value, list) and expected in value
    raise ValueError(f"지원하지 않는 연산자입니다: {op}")


class FakeDocumentSnapshot:
    def __init__(self, reference: 'FakeDocumentReference', data: Optional[Dict[str, Any]], read_time):
        self.reference = reference
        self._data = data
        self.read_time = read_time

    @property
    def id(self) -> str:
        return self.reference.id

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self) -> Optional[Dict[str, Any]]:
        return copy.deepcopy(self._data) if self._data is not None else None

    def get(self, field_path: str) -> Any:
        if self._data is None:
            return None
        value = _get_field(self._data, field_path)
        if value is _MISSING:
            raise KeyError(field_path)
        return copy.deepcopy(value)


class FakeWatch:
    """on_snapshot이 반환하는 구독 핸들"""

    def __init__(self, client: 'FakeFirestore', listener: '_Listener'):
        self._client = client
        self._listener = listener

    @property
    def is_active(self) -> bool:
        return self._listener in self._client._listeners

    def unsubscribe(self) -> None:
        self._client._remove_listener(self._listener)


class _Listener:
    def __init__(self, evaluate: Callable[[], list], callback: Callable):
        self.evaluate = evaluate
        self.callback = callback
        self.last_signature = _MISSING

    def fire_if_changed(self, read_time) -> None:
        snapshots = self.evaluate()
        signature = [(snap.reference.path, snap.to_dict()) for snap in snapshots]
        if signature == self.last_signature:
            return
        self.last_signature = signature
        self.callback(snapshots, [], read_time)


class FakeQuery:
    def __init__(self, client: 'FakeFirestore', path: Tuple[str, ...],
                 filters: Tuple = (), orders: Tuple = (), limit_count: Optional[int] = None):
        self._client = client
        self._path = path
        self._filters = filters
        self._orders = orders
        self._limit = limit_count

    def _copy(self, **overrides) -> 'FakeQuery':
        params = dict(filters=self._filters, orders=self._orders, limit_count=self._limit)
        params.update(overrides)
        return FakeQuery(self._client, self._path, **params)

    def where(self, field_path: Optional[str] = None, op_string: Optional[str] = None,
              value: Any = None, *, filter=None) -> 'FakeQuery':
        if filter is not None:
            field_path, op_string, value = filter.field_path, filter.op_string, filter.value
        return self._copy(filters=self._filters + ((field_path, op_string, value),))

    def order_by(self, field_path: str, direction: str = ASCENDING) -> 'FakeQuery':
        return self._copy(orders=self._orders + ((field_path, direction),))

    def limit(self, count: int) -> 'FakeQuery':
        return self._copy(limit_count=count)

    def _evaluate(self) -> List[FakeDocumentSnapshot]:
        with self._client._lock:
            read_time = DateTimeUtils.now()
            rows = []
            for doc_path, data in self._client._docs.items():
                if len(doc_path) != len(self._path) + 1 or doc_path[:-1] != self._path:
                    continue
                if not all(_matches(_get_field(data, f), op, v) for f, op, v in self._filters):
                    continue
                if any(_get_field(data, f) is _MISSING for f, _ in self._orders):
                    continue
                rows.append((doc_path, data))

            for field_path, direction in reversed(self._orders):
                rows.sort(key=lambda row: _get_field(row[1], field_path), reverse=(direction == DESCENDING))
            if not self._orders:
                rows.sort(key=lambda row: row[0][-1])
            if self._limit is not None:
                rows = rows[:self._limit]

            return [
                FakeDocumentSnapshot(FakeDocumentReference(self._client, doc_path), copy.deepcopy(data), read_time)
                for doc_path, data in rows
            ]

    def stream(self, transaction=None):
        return iter(self._evaluate())

    def get(self, transaction=None) -> List[FakeDocumentSnapshot]:
        return self._evaluate()

    def on_snapshot(self, callback: Callable) -> FakeWatch:
        return self._client._add_listener(_Listener(self._evaluate, callback))


class FakeCollectionReference(FakeQuery):
    def __init__(self, client: 'FakeFirestore', path: Tuple[str, ...]):
        super().__init__(client, path)

    @property
    def id(self) -> str:
        return self._path[-1]

    def document(self, document_id: Optional[str] = None) -> 'FakeDocumentReference':
        return FakeDocumentReference(self._client, self._path + (document_id or _auto_id(),))

    def add(self, document_data: Dict[str, Any], document_id: Optional[str] = None):
        ref = self.document(document_id)
        ref.set(document_data)
        return DateTimeUtils.now(), ref


class FakeDocumentReference:
    def __init__(self, client: 'FakeFirestore', path: Tuple[str, ...]):
        self._client = client
        self._path = path

    @property
    def id(self) -> str:
        return self._path[-1]

    @property
    def path(self) -> str:
        return "/".join(self._path)

    @property
    def parent(self) -> FakeCollectionReference:
        return FakeCollectionReference(self._client, self._path[:-1])

    def collection(self, collection_id: str) -> FakeCollectionReference:
        return FakeCollectionReference(self._client, self._path + (collection_id,))

    def get(self, transaction: Optional['FakeTransaction'] = None) -> FakeDocumentSnapshot:
        data, version = self._client._read(self._path)
        if transaction is not None:
            transaction._record_read(self._path, version)
        return FakeDocumentSnapshot(self, data, DateTimeUtils.now())

    def set(self, document_data: Dict[str, Any], merge: bool = False) -> None:
        self._client._commit([('set', self._path, document_data, merge)])

    def update(self, field_updates: Dict[str, Any]) -> None:
        self._client._commit([('update', self._path, field_updates, False)])

    def delete(self) -> None:
        self._client._commit([('delete', self._path, None, False)])

    def on_snapshot(self, callback: Callable) -> FakeWatch:
        return self._client._add_listener(_Listener(lambda: [self.get()], callback))

    def __eq__(self, other) -> bool:
        return isinstance(other, FakeDocumentReference) and other._path == self._path

    def __hash__(self) -> int:
        return hash(self._path)


class _WriteBuffer:
    def __init__(self):
        self._writes: List[tuple] = []

    def set(self, reference: FakeDocumentReference, document_data: Dict[str, Any], merge: bool = False):
        self._writes.append(('set', reference._path, document_data, merge))

    def update(self, reference: FakeDocumentReference, field_updates: Dict[str, Any]):
        self._writes.append(('update', reference._path, field_updates, False))

    def delete(self, reference: FakeDocumentReference):
        self._writes.append(('delete', reference._path, None, False))


class FakeWriteBatch(_WriteBuffer):
    def __init__(self, client: 'FakeFirestore'):
        super().__init__()
        self._client = client

    def __len__(self) -> int:
        return len(self._writes)

    def commit(self) -> None:
        writes, self._writes = self._writes, []
        self._client._commit(writes)


class FakeTransaction(_WriteBuffer):
    def __init__(self, client: 'FakeFirestore', max_attempts: int = 5, read_only: bool = False):
        super().__init__()
        self._client = client
        self._max_attempts = max_attempts
        self._read_only = read_only
        self._read_versions: Dict[Tuple[str, ...], int] = {}
        self.in_progress = False

    def _begin(self) -> None:
        self._writes = []
        self._read_versions = {}
        self.in_progress = True

    def _record_read(self, path: Tuple[str, ...], version: int) -> None:
        self._read_versions.setdefault(path, version)

    def _commit(self) -> None:
        writes, self._writes = self._writes, []
        try:
            self._client._commit(writes, read_versions=self._read_versions)
        finally:
            self.in_progress = False

    def _rollback(self) -> None:
        self._writes = []
        self._read_versions = {}
        self.in_progress = False


def transactional(to_wrap: Callable) -> Callable:
    """
    firestore.transactional과 같은 계약의 데코레이터.
    Aborted(충돌) 시 함수 본문 전체를 다시 실행하고, 한도를 넘기면 ValueError를 던집니다.
    """
    def wrapper(transaction: FakeTransaction, *args, **kwargs):
        last_exc = None
        for _ in range(transaction._max_attempts):
            transaction._begin()
            try:
                result = to_wrap(transaction, *args, **kwargs)
                transaction._commit()
                return result
            except gcp_exceptions.Aborted as exc:
                last_exc = exc
            except BaseException:
                transaction._rollback()
                raise
        transaction._rollback()
        raise ValueError(f"Failed to commit transaction in {transaction._max_attempts} attempts.") from last_exc

    return wrapper


class FakeFirestore:
    """firestore.Client 대역"""

    def __init__(self):
        self._lock = threading.RLock()
        self._docs: Dict[Tuple[str, ...], Dict[str, Any]] = {}
        self._versions: Dict[Tuple[str, ...], int] = {}
        self._listeners: List[_Listener] = []
        self._before_commit: List[Callable[[], None]] = []
        self.commit_count = 0

    # --- firestore.Client 인터페이스 ---
    def collection(self, collection_id: str) -> FakeCollectionReference:
        return FakeCollectionReference(self, (collection_id,))

    def document(self, document_path: str) -> FakeDocumentReference:
        return FakeDocumentReference(self, tuple(document_path.split('/')))

    def transaction(self, max_attempts: int = 5, read_only: bool = False) -> FakeTransaction:
        return FakeTransaction(self, max_attempts=max_attempts, read_only=read_only)

    def batch(self) -> FakeWriteBatch:
        return FakeWriteBatch(self)

    # --- 테스트 보조 ---
    def on_before_commit(self, hook: Callable[[], None]) -> None:
        """다음 커밋 직전에 한 번 실행할 훅을 등록합니다. (동시 쓰기 경합 재현용)"""
        self._before_commit.append(hook)

    def raw(self, path: str) -> Optional[Dict[str, Any]]:
        data, _ = self._read(tuple(path.split('/')))
        return data

    # --- 내부 구현 ---
    def _read(self, path: Tuple[str, ...]):
        with self._lock:
            return copy.deepcopy(self._docs.get(path)), self._versions.get(path, 0)

    def _add_listener(self, listener: _Listener) -> FakeWatch:
        with self._lock:
            self._listeners.append(listener)
            listener.fire_if_changed(DateTimeUtils.now())
        return FakeWatch(self, listener)

    def _remove_listener(self, listener: _Listener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    @staticmethod
    def _apply_fields(base: Dict[str, Any], fields: Dict[str, Any]) -> Dict[str, Any]:
        result = copy.deepcopy(base)
        for key, value in fields.items():
            if isinstance(value, Increment):
                current = result.get(key)
                result[key] = (current if isinstance(current, (int, float)) else 0) + value.value
            else:
                result[key] = copy.deepcopy(value)
        return result

    def _commit(self, writes: List[tuple], read_versions: Optional[Dict[Tuple[str, ...], int]] = None) -> None:
        hooks, self._before_commit = self._before_commit, []
        for hook in hooks:
            hook()

        with self._lock:
            for path, version in (read_versions or {}).items():
                if self._versions.get(path, 0) != version:
                    raise gcp_exceptions.Aborted(f"Transaction lock timeout: {'/'.join(path)} changed")

            staged: Dict[Tuple[str, ...], Optional[Dict[str, Any]]] = {}
            for op, path, data, merge in writes:
                current = staged[path] if path in staged else self._docs.get(path)
                if op == 'set':
                    staged[path] = self._apply_fields(current if (merge and current) else {}, data)
                elif op == 'update':
                    if current is None:
                        raise gcp_exceptions.NotFound(f"No document to update: {'/'.join(path)}")
                    staged[path] = self._apply_fields(current, data)
                elif op == 'delete':
                    staged[path] = None

            for path, data in staged.items():
                if data is None:
                    self._docs.pop(path, None)
                else:
                    self._docs[path] = data
                self._versions[path] = self._versions.get(path, 0) + 1
            self.commit_count += 1

            read_time = DateTimeUtils.now()
            for listener in list(self._listeners):
                listener.fire_if_changed(read_time)
