"""Tests for Anthropic SSE -> generic partial response conversion"""

import json
import logging

import pytest

from gemini_compat.stream_converter import AnthropicStreamParser, StreamEventType, convert_anthropic_stream_to_gemini


def sse(event: str, payload: dict) -> str:
    return f"event: {event}\ndata: {json.dumps(payload, ensure_ascii=False)}\n\n"


STREAM = "".join([
    sse("message_start", {"type": "message_start", "message": {"id": "msg_1", "usage": {"input_tokens": 12, "output_tokens": 1}}}),
    sse("content_block_start", {"type": "content_block_start", "index": 0, "content_block": {"type": "text", "text": ""}}),
    ": keep-alive comment\n",
    sse("ping", {"type": "ping"}),
    sse("content_block_delta", {"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": "Hello"}}),
    sse("content_block_delta", {"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": " wörld 👋"}}),
    sse("content_block_delta", {"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": ""}}),
    sse("message_delta", {"type": "message_delta", "delta": {"stop_reason": "end_turn"}, "usage": {"output_tokens": 7}}),
    sse("content_block_delta", {"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": "!"}}),
    sse("message_stop", {"type": "message_stop"}),
    sse("content_block_delta", {"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": "never"}}),
])

EXPECTED = [("Hello", 12, 0), (" wörld 👋", 12, 0), ("!", 12, 7)]


def summarize(items):
    return [
        (item.text, item.usage_metadata.prompt_token_count, item.usage_metadata.candidates_token_count)
        for item in items
    ]


def parse_chunks(chunks):
    parser = AnthropicStreamParser("test")
    items = []
    for chunk in chunks:
        items.extend(parser.feed(chunk))
    items.extend(parser.flush())
    return items


class TestAnthropicStreamParser:

    def test_whole_stream(self):
        items = parse_chunks([STREAM.encode()])
        assert summarize(items) == EXPECTED

    def test_partial_items_shape(self):
        item = parse_chunks([STREAM])[0]
        candidate = item.candidates[0]
        assert candidate.content.role == "model"
        assert candidate.finish_reason is None
        assert item.usage_metadata.total_token_count == 12

    def test_byte_at_a_time_matches_whole(self):
        data = STREAM.encode()
        chunks = [data[i:i + 1] for i in range(len(data))]
        assert summarize(parse_chunks(chunks)) == EXPECTED

    def test_arbitrary_split_points(self):
        data = STREAM.encode()
        for size in (3, 7, 50):
            chunks = [data[i:i + size] for i in range(0, len(data), size)]
            assert summarize(parse_chunks(chunks)) == EXPECTED

    def test_json_split_across_chunks(self):
        line = 'data: {"type": "content_block_delta", "delta": {"text": "split"}}\n'
        parser = AnthropicStreamParser()

        assert parser.feed(line[:20]) == []
        items = parser.feed(line[20:])

        assert [item.text for item in items] == ["split"]

    def test_done_sentinel_terminates(self):
        stream = (
            'data: {"type": "content_block_delta", "delta": {"text": "a"}}\n'
            "data: [DONE]\n"
            'data: {"type": "content_block_delta", "delta": {"text": "b"}}\n'
        )
        parser = AnthropicStreamParser()
        items = parser.feed(stream)

        assert [item.text for item in items] == ["a"]
        assert parser.finished
        assert parser.feed('data: {"type": "content_block_delta", "delta": {"text": "c"}}\n') == []

    def test_malformed_json_skipped(self, caplog):
        stream = (
            "data: {not json\n"
            'data: {"type": "content_block_delta", "delta": {"text": "ok"}}\n'
        )
        with caplog.at_level(logging.WARNING):
            items = AnthropicStreamParser("req-1").feed(stream)

        assert [item.text for item in items] == ["ok"]
        assert "Failed to decode SSE data" in caplog.text

    def test_crlf_line_endings(self):
        stream = 'data: {"type": "content_block_delta", "delta": {"text": "win"}}\r\n\r\n'
        assert [item.text for item in AnthropicStreamParser().feed(stream)] == ["win"]

    def test_multibyte_character_split_between_chunks(self):
        data = 'data: {"type": "content_block_delta", "delta": {"text": "👋"}}\n'.encode()
        cut = data.index("👋".encode()) + 2
        parser = AnthropicStreamParser()

        assert parser.feed(data[:cut]) == []
        items = parser.feed(data[cut:])

        assert [item.text for item in items] == ["👋"]

    def test_mixed_bytes_and_str_chunks(self):
        data = 'data: {"type": "content_block_delta", "delta": {"text": "wörld"}}\n'
        cut = data.index("ö") + 1
        parser = AnthropicStreamParser()

        # Split inside the two-byte "ö", then continue with text chunks
        encoded = data.encode()
        byte_cut = len(data[:cut].encode()) - 1
        assert parser.feed(encoded[:byte_cut]) == []
        items = parser.feed(encoded[byte_cut:byte_cut + 1]) + parser.feed(data[cut:])

        assert [item.text for item in items] == ["wörld"]

    def test_str_chunk_after_truncated_bytes_keeps_order(self):
        head = 'data: {"type": "content_block_delta", "delta": {"text": "a'.encode() + "👋".encode()[:2]
        parser = AnthropicStreamParser()

        assert parser.feed(head) == []
        items = parser.feed('b"}}\n')

        text = items[0].text
        assert text[0] == "a"
        assert text[-1] == "b"
        assert "\ufffd" in text

    def test_flush_processes_unterminated_last_line(self):
        parser = AnthropicStreamParser()
        assert parser.feed('data: {"type": "content_block_delta", "delta": {"text": "tail"}}') == []
        assert [item.text for item in parser.flush()] == ["tail"]

    def test_message_start_usage_at_top_level(self):
        stream = (
            'data: {"type": "message_start", "usage": {"input_tokens": 5}}\n'
            'data: {"type": "content_block_delta", "delta": {"text": "x"}}\n'
        )
        items = AnthropicStreamParser().feed(stream)
        assert items[0].usage_metadata.prompt_token_count == 5

    def test_message_delta_without_output_tokens_keeps_count(self):
        stream = (
            'data: {"type": "message_delta", "usage": {"output_tokens": 3}}\n'
            'data: {"type": "message_delta", "delta": {}}\n'
            'data: {"type": "content_block_delta", "delta": {"text": "x"}}\n'
        )
        items = AnthropicStreamParser().feed(stream)
        assert items[0].usage_metadata.candidates_token_count == 3


def test_event_classification():
    assert StreamEventType.classify({"type": "message_stop"}) is StreamEventType.MESSAGE_STOP
    assert StreamEventType.classify({"type": "content_block_start"}) is StreamEventType.UNKNOWN
    assert StreamEventType.classify({}) is StreamEventType.UNKNOWN


class ChunkSource:
    """Async iterable over fixed chunks that records whether it was closed"""

    def __init__(self, chunks):
        self.chunks = list(chunks)
        self.closed = False

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self.chunks:
            raise StopAsyncIteration
        return self.chunks.pop(0)

    async def aclose(self):
        self.closed = True


@pytest.mark.asyncio
async def test_async_conversion_stops_at_message_stop():
    source = ChunkSource([STREAM.encode()])
    items = [item async for item in convert_anthropic_stream_to_gemini(source, "req-1")]

    assert summarize(items) == EXPECTED
    assert source.closed


@pytest.mark.asyncio
async def test_async_conversion_flushes_at_exhaustion():
    source = ChunkSource([b'data: {"type": "content_block_delta", "delta": {"text": "end"}}'])
    items = [item async for item in convert_anthropic_stream_to_gemini(source)]

    assert [item.text for item in items] == ["end"]
    assert source.closed


@pytest.mark.asyncio
async def test_early_close_closes_source():
    source = ChunkSource([STREAM.encode()])
    stream = convert_anthropic_stream_to_gemini(source)

    first = await stream.__anext__()
    await stream.aclose()

    assert first.text == "Hello"
    assert source.closed
