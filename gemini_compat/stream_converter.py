"""
Stream conversion from Anthropic SSE format to generic partial responses.
"""
import codecs
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterable, AsyncIterator, Dict, List, Union

from .models import GenerateContentResponse
from .response_converter import build_text_response

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


class StreamEventType(str, Enum):
    """Anthropic stream events this parser acts on; everything else is UNKNOWN"""
    MESSAGE_START = "message_start"
    CONTENT_BLOCK_DELTA = "content_block_delta"
    MESSAGE_DELTA = "message_delta"
    MESSAGE_STOP = "message_stop"
    UNKNOWN = "unknown"

    @classmethod
    def classify(cls, payload: Dict[str, Any]) -> "StreamEventType":
        try:
            return cls(payload.get("type"))
        except ValueError:
            return cls.UNKNOWN


@dataclass
class StreamState:
    """Per-stream parser state; never shared between streams"""
    buffer: str = ""
    input_tokens: int = 0
    output_tokens: int = 0
    finished: bool = False


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


class AnthropicStreamParser:
    """Incremental parser turning raw Anthropic SSE chunks into partial responses.

    Only newline-terminated lines are processed; the unterminated tail stays
    in the buffer until a later chunk completes it. Every chunk goes through
    one incremental UTF-8 decoder so multi-byte characters may be split
    anywhere, even when bytes and str chunks are mixed.
    """

    def __init__(self, request_id: str = "") -> None:
        self.request_id = request_id
        self.state = StreamState()
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    @property
    def finished(self) -> bool:
        return self.state.finished

    def feed(self, chunk: Union[str, bytes]) -> List[GenerateContentResponse]:
        """Consume one raw chunk and return the partial responses it completed."""
        if self.state.finished or not chunk:
            return []

        # str chunks share the decoder path so pending partial bytes stay in order
        raw = chunk.encode("utf-8") if isinstance(chunk, str) else chunk
        text = self._decoder.decode(raw)
        self.state.buffer += text

        results: List[GenerateContentResponse] = []
        while not self.state.finished:
            newline_idx = self.state.buffer.find("\n")
            if newline_idx == -1:
                break

            line = self.state.buffer[:newline_idx]
            self.state.buffer = self.state.buffer[newline_idx + 1:]
            results.extend(self._process_line(line))

        return results

    def flush(self) -> List[GenerateContentResponse]:
        """Process a final line that arrived without a trailing newline."""
        if self.state.finished:
            return []

        self.state.buffer += self._decoder.decode(b"", final=True)
        line, self.state.buffer = self.state.buffer, ""
        return self._process_line(line)

    def _process_line(self, line: str) -> List[GenerateContentResponse]:
        # Trim CR from Windows-style endings
        if line.endswith("\r"):
            line = line[:-1]

        if not line.strip() or not line.startswith(DATA_PREFIX):
            # Blank lines, "event:" names and ":" comments carry nothing we need
            return []

        data = line[len(DATA_PREFIX):]
        if data.startswith(" "):
            data = data[1:]

        if data.strip() == DONE_SENTINEL:
            self.state.finished = True
            return []

        try:
            payload = json.loads(data)
        except json.JSONDecodeError:
            logger.warning(f"[{self.request_id}] Failed to decode SSE data: {data}")
            return []

        if not isinstance(payload, dict):
            logger.warning(f"[{self.request_id}] Ignoring non-object SSE payload: {data}")
            return []

        return self._dispatch(StreamEventType.classify(payload), payload)

    def _dispatch(self, event_type: StreamEventType, payload: Dict[str, Any]) -> List[GenerateContentResponse]:
        state = self.state

        if event_type is StreamEventType.MESSAGE_START:
            message = _as_dict(payload.get("message"))
            usage = _as_dict(message.get("usage") or payload.get("usage"))
            state.input_tokens = usage.get("input_tokens") or 0
            return []

        if event_type is StreamEventType.CONTENT_BLOCK_DELTA:
            text = _as_dict(payload.get("delta")).get("text")
            if not text:
                return []
            return [build_text_response(text, state.input_tokens, state.output_tokens)]

        if event_type is StreamEventType.MESSAGE_DELTA:
            usage = _as_dict(payload.get("usage"))
            if usage.get("output_tokens") is not None:
                state.output_tokens = usage["output_tokens"]
            return []

        if event_type is StreamEventType.MESSAGE_STOP:
            state.finished = True
            return []

        logger.debug(f"[{self.request_id}] Ignoring stream event type: {payload.get('type')}")
        return []


async def convert_anthropic_stream_to_gemini(
    anthropic_stream: AsyncIterable[Union[str, bytes]],
    request_id: str = "",
) -> AsyncIterator[GenerateContentResponse]:
    """
    Convert an Anthropic SSE stream into generic partial responses.

    Ends at ``[DONE]``, ``message_stop`` or when the source is exhausted.
    No final aggregate is emitted; each item carries the token counters
    known at the time it was produced.

    Args:
        anthropic_stream: Raw SSE chunks as received
        request_id: Request ID for logging

    Yields:
        One partial response per non-empty text delta
    """
    parser = AnthropicStreamParser(request_id)
    try:
        async for chunk in anthropic_stream:
            for item in parser.feed(chunk):
                yield item
            if parser.finished:
                logger.debug(f"[{request_id}] Stream finished")
                return

        for item in parser.flush():
            yield item
    finally:
        aclose = getattr(anthropic_stream, "aclose", None)
        if aclose is not None:
            await aclose()
