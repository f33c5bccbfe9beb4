"""OAuth token exchange functionality"""

import logging
from typing import Optional

import httpx

from errors import TokenExchangeFailedError
from settings import AUTH_BASE_TOKEN, CLIENT_ID, CONNECT_TIMEOUT, REDIRECT_URI, REQUEST_TIMEOUT
from utils.credentials import OAuthCredential

logger = logging.getLogger(__name__)

TOKEN_URL = f"{AUTH_BASE_TOKEN}/v1/oauth/token"


async def exchange_code(
    code: str,
    state: str,
    code_verifier: str,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> OAuthCredential:
    """Exchange authorization code for tokens

    Args:
        code: Authorization code from the callback page
        state: State to send with the exchange
        code_verifier: PKCE verifier of the session that produced the code
        transport: Optional httpx transport

    Returns:
        New OAuth credential with an absolute expiry

    Raises:
        TokenExchangeFailedError: On a non-200 response, a transport error,
            or a response body without the expected tokens
    """
    payload = {
        "code": code,
        "state": state,
        "grant_type": "authorization_code",
        "client_id": CLIENT_ID,
        "redirect_uri": REDIRECT_URI,
        "code_verifier": code_verifier,
    }

    logger.info("Exchanging authorization code for tokens...")
    try:
        async with httpx.AsyncClient(
            transport=transport,
            timeout=httpx.Timeout(REQUEST_TIMEOUT, connect=CONNECT_TIMEOUT),
        ) as client:
            response = await client.post(
                TOKEN_URL,
                json=payload,
                headers={"Content-Type": "application/json"},
            )
    except httpx.HTTPError as e:
        logger.error(f"Token exchange request failed: {e}")
        raise TokenExchangeFailedError(None, str(e)) from e

    if response.status_code != 200:
        logger.error(f"Token exchange failed with status {response.status_code}: {response.text}")
        raise TokenExchangeFailedError(response.status_code, response.text)

    try:
        credential = OAuthCredential.from_token_response(response.json())
    except (ValueError, KeyError, TypeError) as e:
        logger.error(f"Token endpoint returned an unusable body: {e}")
        raise TokenExchangeFailedError(response.status_code, response.text) from e

    logger.info("OAuth tokens obtained")
    return credential
