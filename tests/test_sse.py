"""
Tests for nebula_chat.sse -- incremental SSE decoding.

The decoder must produce the same frames no matter where the transport
splits the byte stream, including inside multi-byte UTF-8 characters.
"""

import logging

import pytest

from nebula_chat.errors import MalformedFrameError
from nebula_chat.sse import DEFAULT_EVENT, SSEDecoder, aiter_frames, iter_frames, parse_data
from nebula_chat.types import StreamFrame

from .conftest import TX_PAYLOAD, delta, sign_transaction, sse

SAMPLE = (
    sse("init", {"session_id": "s1", "request_id": "r1"})
    + sse("presence", {"data": "Thinking"})
    + delta("Hello")
    + delta(", wörld ✓")
    + sign_transaction(TX_PAYLOAD, event="delta")
    + delta(" 🚀 done")
)


def _decode_whole(data):
    return list(iter_frames([data]))


# ========================================================================
# Chunk boundary independence
# ========================================================================

class TestChunkBoundaries:

    def test_whole_stream_frames(self):
        frames = _decode_whole(SAMPLE)

        assert [f.event for f in frames] == ["init", "presence", "delta", "delta", "delta", "delta"]
        assert frames[3].data == {"v": ", wörld ✓"}
        assert frames[5].data == {"v": " 🚀 done"}

    def test_every_two_way_split(self):
        expected = _decode_whole(SAMPLE)

        for offset in range(len(SAMPLE) + 1):
            frames = list(iter_frames([SAMPLE[:offset], SAMPLE[offset:]]))
            assert frames == expected, f"split at byte {offset}"

    def test_single_byte_chunks(self):
        expected = _decode_whole(SAMPLE)
        chunks = [SAMPLE[i:i + 1] for i in range(len(SAMPLE))]

        assert list(iter_frames(chunks)) == expected

    def test_split_inside_multibyte_character(self):
        data = delta("✓")
        cut = data.index("✓".encode("utf-8")) + 1

        frames = list(iter_frames([data[:cut], data[cut:]]))

        assert frames == [StreamFrame(event="delta", data={"v": "✓"})]

    def test_str_chunks_accepted(self):
        frames = list(iter_frames([SAMPLE.decode("utf-8")]))
        assert frames == _decode_whole(SAMPLE)

    @pytest.mark.asyncio
    async def test_async_frames_match_sync(self):
        async def chunks():
            for i in range(0, len(SAMPLE), 7):
                yield SAMPLE[i:i + 7]

        frames = [frame async for frame in aiter_frames(chunks())]

        assert frames == _decode_whole(SAMPLE)


# ========================================================================
# Line handling
# ========================================================================

class TestLineHandling:

    def test_data_line_emits_without_blank_terminator(self):
        decoder = SSEDecoder()
        frames = decoder.feed(b'event: delta\ndata: {"v": "a"}\n')

        assert frames == [StreamFrame(event="delta", data={"v": "a"})]

    def test_event_label_is_sticky(self):
        decoder = SSEDecoder()
        frames = decoder.feed(b'event: delta\ndata: {"v": "a"}\n\ndata: {"v": "b"}\n\n')

        assert [f.event for f in frames] == ["delta", "delta"]
        assert decoder.event == "delta"

    def test_default_event_label(self):
        frames = SSEDecoder().feed(b'data: {"v": "a"}\n')
        assert frames[0].event == DEFAULT_EVENT

    def test_crlf_line_endings(self):
        frames = SSEDecoder().feed(b'event: delta\r\ndata: {"v": "x"}\r\n\r\n')
        assert frames == [StreamFrame(event="delta", data={"v": "x"})]

    def test_data_without_space_after_colon(self):
        frames = SSEDecoder().feed(b'data:{"v": "x"}\n')
        assert frames[0].data == {"v": "x"}

    def test_comment_and_unknown_lines_skipped(self, caplog):
        caplog.set_level(logging.WARNING, logger="nebula_chat.sse")
        frames = SSEDecoder().feed(b': keep-alive\nid: 5\nretry: 100\ndata: {"v": "x"}\n')

        assert len(frames) == 1
        assert "Unexpected SSE line format" in caplog.text

    def test_malformed_data_skipped(self, caplog):
        caplog.set_level(logging.WARNING, logger="nebula_chat.sse")
        decoder = SSEDecoder()
        frames = decoder.feed(b'data: {not json\ndata: {"v": "ok"}\n')

        assert frames == [StreamFrame(event=DEFAULT_EVENT, data={"v": "ok"})]
        assert decoder.malformed_count == 1
        assert "Skipping SSE frame" in caplog.text

    def test_parse_data_raises_malformed(self):
        with pytest.raises(MalformedFrameError) as exc_info:
            parse_data("{oops")
        assert exc_info.value.line == "{oops"


# ========================================================================
# End of stream
# ========================================================================

class TestEndOfStream:

    def test_truncated_line_dropped(self, caplog):
        caplog.set_level(logging.WARNING, logger="nebula_chat.sse")
        decoder = SSEDecoder()

        frames = decoder.feed(b'data: {"v": "complete"}\ndata: {"v": "par')
        decoder.close()

        assert len(frames) == 1
        assert "truncated" in caplog.text

    def test_done_signal_stops_decoding(self):
        data = b'data: {"v": 1}\ndata: [DONE]\ndata: {"v": 2}\n'
        decoder = SSEDecoder()

        frames = decoder.feed(data)

        assert [f.data for f in frames] == [{"v": 1}]
        assert decoder.done
        assert decoder.feed(b'data: {"v": 3}\n') == []

    def test_iter_frames_stops_at_done(self):
        chunks = [b'data: {"v": 1}\n', b"data: [DONE]\n", b'data: {"v": 2}\n']
        assert [f.data for f in iter_frames(chunks)] == [{"v": 1}]

    def test_empty_stream(self):
        assert list(iter_frames([])) == []
