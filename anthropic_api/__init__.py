"""Anthropic API integration package"""

from .models import (
    AnthropicContentBlock,
    AnthropicMessage,
    AnthropicMessageRequest,
    AnthropicMessageResponse,
    AnthropicUsage,
)
from .auth_headers import AUTH_API_KEY, AUTH_OAUTH, ResolvedAuth, build_request_headers
from .api_client import make_anthropic_request, messages_url, stream_anthropic_response

__all__ = [
    "AnthropicContentBlock",
    "AnthropicMessage",
    "AnthropicMessageRequest",
    "AnthropicMessageResponse",
    "AnthropicUsage",
    "AUTH_API_KEY",
    "AUTH_OAUTH",
    "ResolvedAuth",
    "build_request_headers",
    "make_anthropic_request",
    "messages_url",
    "stream_anthropic_response",
]
