"""
Request conversion from the generic contents format to Anthropic format.
"""
import json
import logging
import math
from typing import List, Optional

from settings import DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE, TOKEN_ESTIMATE_DIVISOR
from anthropic_api.models import AnthropicMessage, AnthropicMessageRequest
from .models import Content, ContentsInput, GenerateContentRequest, Part

logger = logging.getLogger(__name__)


def normalize_contents(contents: ContentsInput) -> List[Content]:
    """Turn every accepted contents shape into an ordered list of turns.

    A prompt string becomes one user turn. A list of parts or strings
    (without any Content in it) is one user turn holding all of them.
    """
    if isinstance(contents, str):
        return [Content(role="user", parts=[Part(text=contents)])]
    if isinstance(contents, Content):
        return [contents]

    items = list(contents)
    if not any(isinstance(item, Content) for item in items):
        parts = [_as_part(item) for item in items]
        return [Content(role="user", parts=parts)] if parts else []

    # Mixed list: each stray part or string is its own user turn, kept in place
    return [
        item if isinstance(item, Content) else Content(role="user", parts=[_as_part(item)])
        for item in items
    ]


def _as_part(item) -> Part:
    return item if isinstance(item, Part) else Part(text=item)


def map_role(role: Optional[str]) -> str:
    """Generic 'model' becomes 'assistant'; every other role is 'user'."""
    return "assistant" if role == "model" else "user"


def convert_gemini_request_to_anthropic(request: GenerateContentRequest, model: str) -> AnthropicMessageRequest:
    """
    Convert a generic generate-content request to an Anthropic Messages request.

    Each turn becomes one message whose content is the concatenated text of
    its parts. Parts without text (images, files...) have no Anthropic
    representation here and are dropped. Turns left empty are skipped.

    Args:
        request: Generic request
        model: Anthropic model id to target

    Returns:
        Anthropic Messages API request
    """
    messages: List[AnthropicMessage] = []

    for turn in normalize_contents(request.contents):
        text = "".join(part.text for part in turn.parts if part.text)
        dropped = sum(1 for part in turn.parts if not part.text)
        if dropped:
            logger.debug(f"[REQUEST_CONVERSION] Dropped {dropped} non-text part(s) from {turn.role} turn")
        if not text:
            continue
        messages.append(AnthropicMessage(role=map_role(turn.role), content=text))

    config = request.config
    max_tokens = config.max_output_tokens if config and config.max_output_tokens is not None else DEFAULT_MAX_TOKENS
    temperature = config.temperature if config and config.temperature is not None else DEFAULT_TEMPERATURE

    logger.debug(f"[REQUEST_CONVERSION] Converted {len(messages)} message(s), max_tokens={max_tokens}, temperature={temperature}")

    return AnthropicMessageRequest(
        model=model,
        max_tokens=max_tokens,
        temperature=temperature,
        messages=messages,
    )


def estimate_token_count(contents: ContentsInput) -> int:
    """Rough token estimate: serialized length divided by a fixed divisor.

    Approximate only; Anthropic exposes no token counter for this path.
    """
    turns = normalize_contents(contents)
    serialized = json.dumps(
        [turn.model_dump(by_alias=True, exclude_none=True) for turn in turns],
        separators=(",", ":"),
    )
    return math.ceil(len(serialized) / TOKEN_ESTIMATE_DIVISOR)
