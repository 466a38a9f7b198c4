# company_feed/services/test_firestore_service.py
"""run_transaction 예외 변환 테스트"""

import pytest

from company_feed.services.firestore_service import run_transaction
from company_feed.utils.exceptions import Conflicted, NotFound


def test_value_error_from_body_is_not_a_conflict(fake_db):
    def body(transaction):
        raise ValueError("잘못된 필드 값")

    with pytest.raises(ValueError, match="잘못된 필드 값"):
        run_transaction(fake_db, body, description="body error")


def test_exhausted_retries_become_conflicted(fake_db):
    ref = fake_db.document('counters/c1')
    ref.set({'value': 0})

    def body(transaction):
        ref.get(transaction=transaction)
        # 매 시도마다 다른 쓰기가 먼저 커밋되도록 합니다.
        fake_db.on_before_commit(lambda: ref.update({'value': 1}))
        transaction.update(ref, {'value': 2})

    with pytest.raises(Conflicted) as exc_info:
        run_transaction(fake_db, body, max_attempts=2, description="counter")
    assert isinstance(exc_info.value.original_error, ValueError)


def test_missing_document_becomes_not_found(fake_db):
    def body(transaction):
        transaction.update(fake_db.document('counters/missing'), {'value': 1})

    with pytest.raises(NotFound):
        run_transaction(fake_db, body)
