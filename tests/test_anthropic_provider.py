"""Tests for the Anthropic content generator"""

import json

import httpx
import pytest

from conftest import PROVIDER, RecordingTransport, expired_oauth_credential, valid_oauth_credential
from errors import NoAuthenticationError, ProviderError, UnsupportedOperationError
from gemini_compat.models import (
    CountTokensRequest,
    EmbedContentRequest,
    FinishReason,
    GenerateContentRequest,
)
from oauth import OAuthSessionManager
from providers import AnthropicConfig, AnthropicContentGenerator, create_content_generator
from providers.anthropic_provider import OAUTH_REQUIRED
from utils.credentials import ApiKeyCredential

MODEL = "claude-sonnet-4-20250514"

MESSAGE_RESPONSE = {
    "id": "msg_01",
    "type": "message",
    "role": "assistant",
    "model": MODEL,
    "content": [{"type": "text", "text": "Hello there"}],
    "stop_reason": "end_turn",
    "usage": {"input_tokens": 12, "output_tokens": 5},
}

SSE_BODY = (
    'event: message_start\ndata: {"type": "message_start", "message": {"usage": {"input_tokens": 9}}}\n\n'
    'event: content_block_delta\ndata: {"type": "content_block_delta", "delta": {"type": "text_delta", "text": "Hel"}}\n\n'
    'event: content_block_delta\ndata: {"type": "content_block_delta", "delta": {"type": "text_delta", "text": "lo"}}\n\n'
    'event: message_delta\ndata: {"type": "message_delta", "usage": {"output_tokens": 2}}\n\n'
    'event: message_stop\ndata: {"type": "message_stop"}\n\n'
).encode()


def hello_request(**config) -> GenerateContentRequest:
    return GenerateContentRequest.model_validate({
        "contents": [{"role": "user", "parts": [{"text": "Hi"}]}],
        "config": config or None,
    })


def message_ok(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json=MESSAGE_RESPONSE)


def make_generator(manager, transport, api_key=None) -> AnthropicContentGenerator:
    return AnthropicContentGenerator(
        AnthropicConfig(model=MODEL, api_key=api_key, base_url="https://api.test"),
        session_manager=manager,
        transport=transport,
    )


class TestGenerateContent:

    @pytest.mark.asyncio
    async def test_api_key_request(self, manager):
        transport = RecordingTransport(message_ok)
        generator = make_generator(manager, transport, api_key="sk-ant-api03-test")

        response = await generator.generate_content(hello_request())

        assert response.text == "Hello there"
        assert response.candidates[0].finish_reason is FinishReason.STOP
        assert response.usage_metadata.total_token_count == 17

        request = transport.requests[0]
        assert str(request.url) == "https://api.test/v1/messages"
        assert request.headers["x-api-key"] == "sk-ant-api03-test"
        assert request.headers["anthropic-version"] == "2023-06-01"
        assert "authorization" not in request.headers
        assert "anthropic-beta" not in request.headers
        assert json.loads(request.content) == {
            "model": MODEL,
            "max_tokens": 4096,
            "temperature": 0.7,
            "messages": [{"role": "user", "content": "Hi"}],
        }

    @pytest.mark.asyncio
    async def test_oauth_request(self, manager, store):
        store.set(PROVIDER, valid_oauth_credential("sk-ant-oat01-live"))
        transport = RecordingTransport(message_ok)
        generator = make_generator(manager, transport)

        await generator.generate_content(hello_request())

        headers = transport.requests[0].headers
        assert headers["authorization"] == "Bearer sk-ant-oat01-live"
        assert headers["anthropic-beta"] == "oauth-2025-04-20"
        assert "x-api-key" not in headers

    @pytest.mark.asyncio
    async def test_expired_oauth_token_refreshed_before_call(self, store, browser):
        def handler(request):
            if request.url.path == "/v1/oauth/token":
                return httpx.Response(200, json={"access_token": "sk-ant-oat01-fresh", "refresh_token": "r2", "expires_in": 60})
            return httpx.Response(200, json=MESSAGE_RESPONSE)

        transport = RecordingTransport(handler)
        manager = OAuthSessionManager(storage=store, provider=PROVIDER, transport=transport, browser_opener=browser)
        store.set(PROVIDER, expired_oauth_credential())

        await make_generator(manager, transport).generate_content(hello_request())

        assert transport.requests[-1].headers["authorization"] == "Bearer sk-ant-oat01-fresh"

    @pytest.mark.asyncio
    async def test_environment_key_fallback(self, manager, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-api03-env")
        transport = RecordingTransport(message_ok)

        await make_generator(manager, transport).generate_content(hello_request())

        assert transport.requests[0].headers["x-api-key"] == "sk-ant-api03-env"

    @pytest.mark.asyncio
    async def test_configured_key_wins_over_environment(self, manager, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-api03-env")
        transport = RecordingTransport(message_ok)

        await make_generator(manager, transport, api_key="sk-ant-api03-config").generate_content(hello_request())

        assert transport.requests[0].headers["x-api-key"] == "sk-ant-api03-config"

    @pytest.mark.asyncio
    async def test_stored_api_key_fallback(self, manager, store):
        store.set(PROVIDER, ApiKeyCredential(key="sk-ant-api03-stored"))
        transport = RecordingTransport(message_ok)

        await make_generator(manager, transport).generate_content(hello_request())

        assert transport.requests[0].headers["x-api-key"] == "sk-ant-api03-stored"

    @pytest.mark.asyncio
    async def test_no_authentication(self, manager):
        transport = RecordingTransport(message_ok)

        with pytest.raises(NoAuthenticationError):
            await make_generator(manager, transport).generate_content(hello_request())

        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_error_status_raises_without_retry(self, manager):
        transport = RecordingTransport(lambda request: httpx.Response(401, text='{"error": "invalid x-api-key"}'))
        generator = make_generator(manager, transport, api_key="bad")

        with pytest.raises(ProviderError) as exc_info:
            await generator.generate_content(hello_request())

        assert exc_info.value.status_code == 401
        assert "invalid x-api-key" in exc_info.value.body
        assert len(transport.requests) == 1

    @pytest.mark.asyncio
    async def test_connection_error(self, manager):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        generator = make_generator(manager, RecordingTransport(refuse), api_key="k")

        with pytest.raises(ProviderError) as exc_info:
            await generator.generate_content(hello_request())

        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_model_from_request_overrides_config(self, manager):
        transport = RecordingTransport(message_ok)
        request = GenerateContentRequest(model="claude-3-5-haiku-20241022", contents="Hi")

        await make_generator(manager, transport, api_key="k").generate_content(request)

        assert transport.json_bodies()[0]["model"] == "claude-3-5-haiku-20241022"


class RecordingByteStream(httpx.AsyncByteStream):
    def __init__(self, data: bytes, chunk_size: int = 16):
        self.data = data
        self.chunk_size = chunk_size
        self.closed = False

    async def __aiter__(self):
        for i in range(0, len(self.data), self.chunk_size):
            yield self.data[i:i + self.chunk_size]

    async def aclose(self):
        self.closed = True


class TestGenerateContentStream:

    @pytest.mark.asyncio
    async def test_stream_yields_partials(self, manager):
        transport = RecordingTransport(lambda request: httpx.Response(200, content=SSE_BODY))
        generator = make_generator(manager, transport, api_key="k")

        stream = await generator.generate_content_stream(hello_request())
        items = [item async for item in stream]

        assert [item.text for item in items] == ["Hel", "lo"]
        assert items[0].usage_metadata.prompt_token_count == 9
        assert transport.json_bodies()[0]["stream"] is True

    @pytest.mark.asyncio
    async def test_connection_opened_on_first_iteration(self, manager):
        transport = RecordingTransport(lambda request: httpx.Response(200, content=SSE_BODY))
        generator = make_generator(manager, transport, api_key="k")

        stream = await generator.generate_content_stream(hello_request())
        assert transport.requests == []

        await stream.__anext__()
        assert len(transport.requests) == 1
        await stream.aclose()

    @pytest.mark.asyncio
    async def test_missing_auth_raises_before_iteration(self, manager):
        generator = make_generator(manager, RecordingTransport(message_ok))

        with pytest.raises(NoAuthenticationError):
            await generator.generate_content_stream(hello_request())

    @pytest.mark.asyncio
    async def test_error_status_raised_from_iterator(self, manager):
        transport = RecordingTransport(lambda request: httpx.Response(500, text="overloaded"))
        stream = await make_generator(manager, transport, api_key="k").generate_content_stream(hello_request())

        with pytest.raises(ProviderError) as exc_info:
            async for _ in stream:
                pass

        assert exc_info.value.status_code == 500
        assert exc_info.value.body == "overloaded"

    @pytest.mark.asyncio
    async def test_early_close_releases_response(self, manager):
        body = RecordingByteStream(SSE_BODY)
        transport = RecordingTransport(lambda request: httpx.Response(200, stream=body))
        stream = await make_generator(manager, transport, api_key="k").generate_content_stream(hello_request())

        first = await stream.__anext__()
        await stream.aclose()

        assert first.text == "Hel"
        assert body.closed


class TestOtherOperations:

    @pytest.mark.asyncio
    async def test_count_tokens_is_local(self, manager):
        transport = RecordingTransport(message_ok)
        generator = make_generator(manager, transport, api_key="k")

        response = await generator.count_tokens(CountTokensRequest(contents="Hi"))

        assert response.total_tokens == 11
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_embed_content_unsupported(self, manager):
        generator = make_generator(manager, RecordingTransport(message_ok), api_key="k")

        with pytest.raises(UnsupportedOperationError):
            await generator.embed_content(EmbedContentRequest(contents="Hi"))

    @pytest.mark.asyncio
    async def test_validate_auth_method(self, manager, store):
        generator = make_generator(manager, RecordingTransport(message_ok))
        assert await generator.validate_auth_method() == OAUTH_REQUIRED

        store.set(PROVIDER, valid_oauth_credential())
        assert await generator.validate_auth_method() is None

    def test_factory(self, manager):
        generator = create_content_generator(AnthropicConfig(model=MODEL), session_manager=manager)
        assert isinstance(generator, AnthropicContentGenerator)
        assert generator.config.model == MODEL
