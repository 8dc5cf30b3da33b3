"""
Protocol Event Interpreter

StreamFrame을 정규화 이벤트(TextDelta / ActionRequest / StreamError)로 변환

액션 감지는 event 라벨과 무관하게 data.type 으로 판단하며,
라벨 분기보다 먼저 검사합니다.
"""

from typing import AsyncIterable, AsyncIterator, Iterable, Iterator, Optional, Any
import json
import logging

from .types import ActionRequest, NormalizedEvent, StreamError, StreamFrame, TextDelta

logger = logging.getLogger(__name__)

SIGN_TRANSACTION = "sign_transaction"
ACTION_KINDS = frozenset({SIGN_TRANSACTION})


def build_action(data: Any) -> Optional[ActionRequest]:
    """
    액션 페이로드 추출

    Args:
        data: 파싱된 data 객체 ({"type": ..., "data": ...})

    Returns:
        알려진 액션이면 ActionRequest, 아니면 None
    """
    if not isinstance(data, dict):
        return None

    kind = data.get("type")
    if kind not in ACTION_KINDS:
        return None

    payload = data.get("data")
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except ValueError as e:
            logger.error(f"Invalid {kind} payload, skipping action: {e}")
            return None

    return ActionRequest(kind=kind, payload=payload)


def classify_frame(frame: StreamFrame) -> Optional[NormalizedEvent]:
    """단일 프레임 분류"""
    data = frame.data

    if isinstance(data, dict) and data.get("type") in ACTION_KINDS:
        return build_action(data)

    if frame.event == "delta":
        text = data.get("v") if isinstance(data, dict) else None
        if text:
            return TextDelta(text=str(text))
        return None

    if frame.event == "error":
        message = data.get("error") if isinstance(data, dict) else None
        logger.error(f"Stream error: {data}")
        return StreamError(message=str(message) if message else "Unknown stream error")

    if frame.event == "init":
        logger.info(f"Stream initialized: {data}")
    elif frame.event == "presence":
        logger.debug(f"Backend status: {data}")
    else:
        logger.debug(f"Unhandled event type: {frame.event}")
    return None


def iter_events(frames: Iterable[StreamFrame]) -> Iterator[NormalizedEvent]:
    """동기 프레임 → 이벤트 (StreamError 이후 중단)"""
    for frame in frames:
        event = classify_frame(frame)
        if event is None:
            continue
        yield event
        if isinstance(event, StreamError):
            return


async def aiter_events(frames: AsyncIterable[StreamFrame]) -> AsyncIterator[NormalizedEvent]:
    """비동기 프레임 → 이벤트 (StreamError 이후 중단)"""
    async for frame in frames:
        event = classify_frame(frame)
        if event is None:
            continue
        yield event
        if isinstance(event, StreamError):
            return
