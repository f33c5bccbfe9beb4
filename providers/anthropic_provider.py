"""
Anthropic Claude content generator.

Serves generic generate-content calls through the Anthropic Messages API,
authenticating with an API key or an OAuth Bearer token.
"""
import logging
import os
import uuid
from dataclasses import dataclass
from typing import AsyncIterator, Optional

import httpx

from anthropic_api.api_client import make_anthropic_request, stream_anthropic_response
from anthropic_api.auth_headers import AUTH_API_KEY, AUTH_OAUTH, ResolvedAuth, build_request_headers
from anthropic_api.models import AnthropicMessageRequest, AnthropicMessageResponse
from errors import NoAuthenticationError, ProviderError, UnsupportedOperationError
from gemini_compat.models import (
    CountTokensRequest,
    CountTokensResponse,
    EmbedContentRequest,
    GenerateContentRequest,
    GenerateContentResponse,
)
from gemini_compat.request_converter import convert_gemini_request_to_anthropic, estimate_token_count
from gemini_compat.response_converter import convert_anthropic_response_to_gemini
from gemini_compat.stream_converter import convert_anthropic_stream_to_gemini
from oauth.session import OAuthSessionManager
from settings import API_BASE, DEFAULT_MODEL
from utils.credentials import ApiKeyCredential
from .base_provider import ContentGenerator

logger = logging.getLogger(__name__)

API_KEY_ENV_VAR = "ANTHROPIC_API_KEY"
OAUTH_REQUIRED = "anthropic_oauth_required"


@dataclass
class AnthropicConfig:
    model: str = DEFAULT_MODEL
    api_key: Optional[str] = None
    base_url: Optional[str] = None


class AnthropicContentGenerator(ContentGenerator):
    """Content generator backed by Anthropic Claude"""

    def __init__(
        self,
        config: Optional[AnthropicConfig] = None,
        session_manager: Optional[OAuthSessionManager] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or AnthropicConfig()
        self.base_url = self.config.base_url or API_BASE
        self.session_manager = session_manager or OAuthSessionManager()
        self.transport = transport

    async def resolve_auth(self) -> Optional[ResolvedAuth]:
        """Pick the credential for one call, or None

        Order: configured key, ANTHROPIC_API_KEY, OAuth token (refreshed if
        needed), then a stored API key record.
        """
        if self.config.api_key:
            return ResolvedAuth(AUTH_API_KEY, self.config.api_key, source="config")

        env_key = os.getenv(API_KEY_ENV_VAR)
        if env_key:
            return ResolvedAuth(AUTH_API_KEY, env_key, source="environment")

        token = await self.session_manager.get_access_token()
        if token:
            return ResolvedAuth(AUTH_OAUTH, token, source="oauth")

        stored = self.session_manager.storage.get(self.session_manager.provider)
        if isinstance(stored, ApiKeyCredential):
            return ResolvedAuth(AUTH_API_KEY, stored.key, source="store")

        return None

    async def _require_auth(self) -> ResolvedAuth:
        auth = await self.resolve_auth()
        if auth is None:
            raise NoAuthenticationError()
        logger.debug(f"Using {auth.kind} authentication for Anthropic (source: {auth.source})")
        return auth

    async def validate_auth_method(self) -> Optional[str]:
        """None when some credential is usable, else OAUTH_REQUIRED"""
        return None if await self.resolve_auth() is not None else OAUTH_REQUIRED

    def _build_request(self, request: GenerateContentRequest) -> AnthropicMessageRequest:
        return convert_gemini_request_to_anthropic(request, request.model or self.config.model)

    async def generate_content(self, request: GenerateContentRequest) -> GenerateContentResponse:
        """Generate content using Anthropic Claude API

        Raises:
            NoAuthenticationError: If no credential is available
            ProviderError: If the API call fails
        """
        auth = await self._require_auth()
        anthropic_request = self._build_request(request)

        body = await make_anthropic_request(
            anthropic_request.to_payload(),
            build_request_headers(auth),
            base_url=self.base_url,
            transport=self.transport,
        )

        try:
            anthropic_response = AnthropicMessageResponse.model_validate(body)
        except ValueError as e:
            raise ProviderError(200, str(body)) from e

        return convert_anthropic_response_to_gemini(anthropic_response)

    async def generate_content_stream(
        self,
        request: GenerateContentRequest,
    ) -> AsyncIterator[GenerateContentResponse]:
        """Generate content stream using Anthropic Claude API

        Authentication and request conversion happen before this returns.
        The HTTP request is sent on first iteration; a non-2xx status raises
        ProviderError from the iterator. Closing the iterator early closes
        the connection.

        Raises:
            NoAuthenticationError: If no credential is available
        """
        auth = await self._require_auth()
        anthropic_request = self._build_request(request)
        anthropic_request.stream = True

        request_id = uuid.uuid4().hex[:8]
        logger.debug(f"[{request_id}] Starting Anthropic stream: model={anthropic_request.model}")

        raw_stream = stream_anthropic_response(
            request_id,
            anthropic_request.to_payload(),
            build_request_headers(auth),
            base_url=self.base_url,
            transport=self.transport,
        )
        return convert_anthropic_stream_to_gemini(raw_stream, request_id=request_id)

    async def count_tokens(self, request: CountTokensRequest) -> CountTokensResponse:
        """Approximate token count from the serialized contents; no API call"""
        return CountTokensResponse(total_tokens=estimate_token_count(request.contents))

    async def embed_content(self, request: EmbedContentRequest):
        raise UnsupportedOperationError("Embedding is not supported by Anthropic Claude")


def create_content_generator(
    config: Optional[AnthropicConfig] = None,
    session_manager: Optional[OAuthSessionManager] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ContentGenerator:
    """Create an Anthropic content generator"""
    return AnthropicContentGenerator(config, session_manager=session_manager, transport=transport)
