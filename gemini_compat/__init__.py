"""
Generic contents format to Anthropic API compatibility layer.
Converts between generate-content requests/responses and Anthropic messages.
"""

from .models import (
    Candidate,
    Content,
    CountTokensRequest,
    CountTokensResponse,
    EmbedContentRequest,
    FinishReason,
    GenerateContentConfig,
    GenerateContentRequest,
    GenerateContentResponse,
    Part,
    UsageMetadata,
)
from .request_converter import (
    convert_gemini_request_to_anthropic,
    estimate_token_count,
    map_role,
    normalize_contents,
)
from .response_converter import (
    convert_anthropic_response_to_gemini,
    map_stop_reason_to_finish_reason,
)
from .stream_converter import (
    AnthropicStreamParser,
    StreamEventType,
    StreamState,
    convert_anthropic_stream_to_gemini,
)

__all__ = [
    # Models
    "Candidate",
    "Content",
    "CountTokensRequest",
    "CountTokensResponse",
    "EmbedContentRequest",
    "FinishReason",
    "GenerateContentConfig",
    "GenerateContentRequest",
    "GenerateContentResponse",
    "Part",
    "UsageMetadata",

    # Request conversion
    "convert_gemini_request_to_anthropic",
    "estimate_token_count",
    "map_role",
    "normalize_contents",

    # Response conversion
    "convert_anthropic_response_to_gemini",
    "map_stop_reason_to_finish_reason",

    # Stream conversion
    "AnthropicStreamParser",
    "StreamEventType",
    "StreamState",
    "convert_anthropic_stream_to_gemini",
]
