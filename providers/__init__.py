"""
Content generator implementations.
"""
from .base_provider import ContentGenerator
from .anthropic_provider import (
    AnthropicConfig,
    AnthropicContentGenerator,
    OAUTH_REQUIRED,
    create_content_generator,
)

__all__ = [
    "ContentGenerator",
    "AnthropicConfig",
    "AnthropicContentGenerator",
    "OAUTH_REQUIRED",
    "create_content_generator",
]
