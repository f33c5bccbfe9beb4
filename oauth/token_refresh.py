"""OAuth token refresh functionality"""

import logging
from typing import Optional

import httpx

from errors import StorageError
from settings import CLIENT_ID, CONNECT_TIMEOUT, REQUEST_TIMEOUT
from utils.credentials import OAuthCredential
from utils.storage import CredentialStore
from .token_exchange import TOKEN_URL

logger = logging.getLogger(__name__)


async def refresh_tokens(
    storage: CredentialStore,
    provider: str,
    credential: OAuthCredential,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Optional[OAuthCredential]:
    """Refresh an expired OAuth credential and store the result

    Failures are logged and reported as None so callers can fall back to
    another credential source.

    Args:
        storage: Credential store to update
        provider: Provider key of the credential
        credential: The expired credential holding the refresh token
        transport: Optional httpx transport

    Returns:
        The refreshed credential, or None if refresh failed
    """
    if not credential.refresh:
        logger.warning("No refresh token available for refresh")
        return None

    logger.info("Attempting to refresh OAuth tokens...")
    try:
        async with httpx.AsyncClient(
            transport=transport,
            timeout=httpx.Timeout(REQUEST_TIMEOUT, connect=CONNECT_TIMEOUT),
        ) as client:
            response = await client.post(
                TOKEN_URL,
                json={
                    "grant_type": "refresh_token",
                    "refresh_token": credential.refresh,
                    "client_id": CLIENT_ID,
                },
                headers={"Content-Type": "application/json"},
            )
    except httpx.HTTPError as e:
        logger.error(f"Token refresh failed with exception: {e}")
        return None

    if response.status_code != 200:
        logger.error(f"Token refresh failed with status {response.status_code}: {response.text}")
        return None

    try:
        refreshed = OAuthCredential.from_token_response(response.json())
    except (ValueError, KeyError, TypeError) as e:
        logger.error(f"Token refresh returned an unusable body: {e}")
        return None

    try:
        storage.set(provider, refreshed)
    except StorageError as e:
        logger.error(f"Refreshed tokens could not be stored: {e}")
        return None

    logger.info("Successfully refreshed OAuth tokens")
    return refreshed
