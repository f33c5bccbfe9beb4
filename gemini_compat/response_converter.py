"""
Response conversion from Anthropic to the generic contents format.
"""
import logging
from typing import Optional

from anthropic_api.models import AnthropicMessageResponse
from .models import (
    Candidate,
    Content,
    FinishReason,
    GenerateContentResponse,
    Part,
    UsageMetadata,
)

logger = logging.getLogger(__name__)

STOP_REASON_MAP = {
    "end_turn": FinishReason.STOP,
    "stop_sequence": FinishReason.STOP,
    "max_tokens": FinishReason.MAX_TOKENS,
}


def map_stop_reason_to_finish_reason(stop_reason: Optional[str]) -> FinishReason:
    """Map Anthropic stop_reason to a generic finish reason; unknown values are OTHER."""
    return STOP_REASON_MAP.get(stop_reason, FinishReason.OTHER)


def build_usage_metadata(input_tokens: int, output_tokens: int) -> UsageMetadata:
    return UsageMetadata(
        prompt_token_count=input_tokens,
        candidates_token_count=output_tokens,
        total_token_count=input_tokens + output_tokens,
    )


def build_text_response(
    text: str,
    input_tokens: int,
    output_tokens: int,
    finish_reason: Optional[FinishReason] = None,
) -> GenerateContentResponse:
    """Single-candidate generic response carrying ``text``."""
    return GenerateContentResponse(
        candidates=[
            Candidate(
                content=Content(role="model", parts=[Part(text=text)]),
                finish_reason=finish_reason,
                index=0,
            )
        ],
        usage_metadata=build_usage_metadata(input_tokens, output_tokens),
    )


def convert_anthropic_response_to_gemini(anthropic_response: AnthropicMessageResponse) -> GenerateContentResponse:
    """
    Convert an Anthropic message response to the generic response format.

    All text blocks are joined into one candidate; other block types are
    not represented.

    Args:
        anthropic_response: Anthropic API response

    Returns:
        Generic response with one candidate
    """
    text = "".join(
        block.text or ""
        for block in anthropic_response.content
        if block.type == "text"
    )
    finish_reason = map_stop_reason_to_finish_reason(anthropic_response.stop_reason)
    usage = anthropic_response.usage

    logger.debug(
        f"[RESPONSE_CONVERSION] stop_reason={anthropic_response.stop_reason} -> {finish_reason.value}, "
        f"input_tokens={usage.input_tokens}, output_tokens={usage.output_tokens}"
    )

    return build_text_response(text, usage.input_tokens, usage.output_tokens, finish_reason)
