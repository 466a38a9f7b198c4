# company_feed/api/streaming.py
import json
import logging
from typing import Callable, Any

from flask import Response, stream_with_context, current_app

from company_feed.services.live_query import Subscription


def _event(name: str, payload: Any) -> str:
    return f"event: {name}\ndata: {json.dumps(payload, ensure_ascii=False)}\n\n"


def sse_response(subscription: Subscription, serialize: Callable[[Any], Any]) -> Response:
    """
    라이브 쿼리 구독을 Server-Sent Events 스트림으로 내보냅니다.

    - 결과 집합이 바뀔 때마다 'snapshot' 이벤트로 전체 결과를 보냅니다.
    - 스냅샷 오류는 'error' 이벤트로 보내고 스트림은 유지합니다.
    - 감시가 닫히면(SUBSCRIPTION_CLOSED) 'error' 이벤트를 보낸 뒤 스트림을 끝냅니다.
    - 클라이언트 연결이 끊기면 구독을 해제합니다.
    """
    heartbeat = current_app.config.get('STREAM_HEARTBEAT_SECONDS', 15)

    def generate():
        try:
            while True:
                snapshot = subscription.next_snapshot(timeout=heartbeat)
                if snapshot is None:
                    if not subscription.active:
                        break
                    yield ": keep-alive\n\n"
                    continue
                if snapshot.ok:
                    yield _event('snapshot', serialize(snapshot.data))
                else:
                    error_code = getattr(snapshot.error, 'code', "SNAPSHOT_FAILED")
                    yield _event('error', {"error_code": error_code, "message": str(snapshot.error)})
        finally:
            subscription.unsubscribe()
            logging.info("SSE 스트림 종료, 구독 해제")

    response = Response(stream_with_context(generate()), mimetype='text/event-stream')
    response.headers['Cache-Control'] = 'no-cache'
    response.headers['X-Accel-Buffering'] = 'no'
    return response
