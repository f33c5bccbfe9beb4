"""Anthropic API HTTP client for making requests"""

import logging
from typing import Any, AsyncIterator, Dict, Optional

import httpx

from errors import ProviderError
from settings import API_BASE, CONNECT_TIMEOUT, READ_TIMEOUT, REQUEST_TIMEOUT, STREAM_TIMEOUT

logger = logging.getLogger(__name__)

MESSAGES_PATH = "/v1/messages"


def messages_url(base_url: Optional[str] = None) -> str:
    return f"{(base_url or API_BASE).rstrip('/')}{MESSAGES_PATH}"


async def make_anthropic_request(
    anthropic_request: Dict[str, Any],
    headers: Dict[str, str],
    base_url: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[str, Any]:
    """Make a non-streaming request to Anthropic API

    Args:
        anthropic_request: The Anthropic API request body
        headers: Request headers including authentication
        base_url: API base URL, defaults to settings.API_BASE
        transport: Optional httpx transport

    Returns:
        Decoded JSON response body

    Raises:
        ProviderError: On a non-2xx status, a transport error or a non-JSON body
    """
    url = messages_url(base_url)
    logger.debug(f"POST {url} model={anthropic_request.get('model')} messages={len(anthropic_request.get('messages', []))}")

    try:
        async with httpx.AsyncClient(
            transport=transport,
            timeout=httpx.Timeout(REQUEST_TIMEOUT, connect=CONNECT_TIMEOUT),
        ) as client:
            response = await client.post(url, json=anthropic_request, headers=headers)
    except httpx.HTTPError as e:
        logger.error(f"Anthropic request failed: {e}")
        raise ProviderError(None, str(e)) from e

    if not response.is_success:
        logger.error(f"Anthropic API error {response.status_code}: {response.text}")
        raise ProviderError(response.status_code, response.text)

    try:
        return response.json()
    except ValueError as e:
        raise ProviderError(response.status_code, response.text) from e


async def stream_anthropic_response(
    request_id: str,
    anthropic_request: Dict[str, Any],
    headers: Dict[str, str],
    base_url: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AsyncIterator[bytes]:
    """Stream the raw response body from Anthropic API

    The connection is opened on first iteration and closed when the
    iterator is exhausted or closed early.

    Args:
        request_id: Unique request identifier for logging
        anthropic_request: The Anthropic API request body (with stream=True)
        headers: Request headers including authentication
        base_url: API base URL, defaults to settings.API_BASE
        transport: Optional httpx transport

    Yields:
        Raw body chunks as received

    Raises:
        ProviderError: On a non-2xx status or a transport error
    """
    url = messages_url(base_url)

    # Use STREAM_TIMEOUT for streaming requests with READ_TIMEOUT between chunks
    try:
        async with httpx.AsyncClient(
            transport=transport,
            timeout=httpx.Timeout(STREAM_TIMEOUT, connect=CONNECT_TIMEOUT, read=READ_TIMEOUT),
        ) as client:
            async with client.stream("POST", url, json=anthropic_request, headers=headers) as response:
                logger.debug(f"[{request_id}] Anthropic responded with status={response.status_code}")

                if not response.is_success:
                    error_text = (await response.aread()).decode(errors="replace")
                    logger.error(f"[{request_id}] Anthropic API error {response.status_code}: {error_text}")
                    raise ProviderError(response.status_code, error_text)

                chunk_index = 0
                async for chunk in response.aiter_bytes():
                    chunk_index += 1
                    yield chunk
                logger.debug(f"[{request_id}] Anthropic stream closed after {chunk_index} chunk(s)")
    except httpx.HTTPError as e:
        logger.error(f"[{request_id}] Anthropic stream failed: {e}")
        raise ProviderError(None, str(e)) from e
