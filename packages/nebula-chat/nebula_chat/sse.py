"""
SSE Frame Decoder

원시 바이트 스트림을 StreamFrame 시퀀스로 변환
- 청크 경계에 독립적 (라인/멀티바이트 문자가 잘려도 동일한 결과)
- data 라인 하나 = 프레임 하나 (빈 줄 종료자를 기다리지 않음)
- event 라벨은 변경될 때까지 유지
"""

from typing import AsyncIterable, AsyncIterator, Iterable, Iterator, List, Optional, Union, Any
import codecs
import json
import logging

from .errors import MalformedFrameError
from .types import StreamFrame

logger = logging.getLogger(__name__)

DEFAULT_EVENT = "message"
DONE_SIGNAL = "[DONE]"


def parse_data(payload: str) -> Any:
    """data 페이로드 JSON 파싱"""
    try:
        return json.loads(payload)
    except ValueError as e:
        raise MalformedFrameError(payload, str(e))


class SSEDecoder:
    """
    증분 SSE 디코더

    사용 예시:
        decoder = SSEDecoder()
        for chunk in chunks:
            for frame in decoder.feed(chunk):
                ...
        decoder.close()
    """

    def __init__(self):
        self._text_decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._event = DEFAULT_EVENT
        self._done = False
        self.malformed_count = 0

    @property
    def event(self) -> str:
        """현재 event 라벨"""
        return self._event

    @property
    def done(self) -> bool:
        """[DONE] 신호 수신 여부"""
        return self._done

    def feed(self, chunk: Union[bytes, str]) -> List[StreamFrame]:
        """
        청크 입력

        Args:
            chunk: 원시 바이트 (또는 이미 디코딩된 문자열)

        Returns:
            이번 청크로 완성된 프레임 목록
        """
        if self._done:
            return []

        if isinstance(chunk, str):
            chunk = chunk.encode("utf-8")
        self._buffer += self._text_decoder.decode(chunk)

        # 마지막 조각은 개행이 올 때까지 보관
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()

        frames = []
        for line in lines:
            frame = self._process_line(line)
            if frame is not None:
                frames.append(frame)
            if self._done:
                self._buffer = ""
                break
        return frames

    def close(self):
        """스트림 종료 처리 (잘린 라인은 버림)"""
        self._buffer += self._text_decoder.decode(b"", final=True)
        if self._buffer.strip() and not self._done:
            logger.warning(f"SSE stream truncated, dropping partial line: {self._buffer[:200]}")
        self._buffer = ""

    def _process_line(self, line: str) -> Optional[StreamFrame]:
        """단일 라인 처리"""
        if line.endswith("\r"):
            line = line[:-1]

        # 빈 줄 = 프레임 경계
        if not line.strip():
            return None

        if line.startswith(":"):
            logger.debug(f"SSE comment: {line[:200]}")
            return None

        if line.startswith("event:"):
            self._event = line[6:].strip()
            return None

        if not line.startswith("data:"):
            logger.warning(f"Unexpected SSE line format: {line[:200]}")
            return None

        payload = line[5:]
        if payload.startswith(" "):
            payload = payload[1:]

        if payload.strip() == DONE_SIGNAL:
            self._done = True
            return None

        try:
            data = parse_data(payload)
        except MalformedFrameError as e:
            self.malformed_count += 1
            logger.warning(f"Skipping SSE frame: {e}")
            return None

        logger.debug(f"SSE frame: event={self._event}")
        return StreamFrame(event=self._event, data=data)


def iter_frames(chunks: Iterable[Union[bytes, str]]) -> Iterator[StreamFrame]:
    """동기 청크 이터러블 → 프레임"""
    decoder = SSEDecoder()
    for chunk in chunks:
        yield from decoder.feed(chunk)
        if decoder.done:
            break
    decoder.close()


async def aiter_frames(chunks: AsyncIterable[Union[bytes, str]]) -> AsyncIterator[StreamFrame]:
    """비동기 청크 이터러블 → 프레임"""
    decoder = SSEDecoder()
    async for chunk in chunks:
        for frame in decoder.feed(chunk):
            yield frame
        if decoder.done:
            break
    decoder.close()
