"""OAuth token manager for retrieving valid tokens"""

import logging
from typing import Optional

import httpx

from utils.credentials import OAuthCredential
from utils.storage import CredentialStore
from .token_refresh import refresh_tokens

logger = logging.getLogger(__name__)


async def get_valid_token(
    storage: CredentialStore,
    provider: str,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Optional[str]:
    """Get a valid OAuth access token, refreshing it if expired

    Args:
        storage: Credential store holding the provider's record
        provider: Provider key
        transport: Optional httpx transport used for the refresh call

    Returns:
        Valid access token, or None if there is no OAuth credential or the
        refresh failed
    """
    credential = storage.get(provider)
    if not isinstance(credential, OAuthCredential):
        return None

    if credential.access and not credential.is_expired():
        return credential.access

    logger.info("Token expired, attempting automatic refresh...")
    refreshed = await refresh_tokens(storage, provider, credential, transport=transport)
    if refreshed is None:
        logger.error("Failed to refresh token automatically")
        return None

    return refreshed.access
