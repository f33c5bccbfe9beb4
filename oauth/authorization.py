"""OAuth authorization URL construction and browser launch"""

import logging
import webbrowser
from urllib.parse import urlencode

from settings import AUTH_BASE_AUTHORIZE, CLIENT_ID, REDIRECT_URI, SCOPES

logger = logging.getLogger(__name__)


def build_authorize_url(code_challenge: str, state: str, scopes: str = SCOPES) -> str:
    """Construct OAuth authorize URL with PKCE

    Args:
        code_challenge: S256 challenge derived from the session verifier
        state: CSRF state token echoed back on the callback page
        scopes: Space separated OAuth scopes

    Returns:
        Full authorization URL
    """
    params = {
        "code": "true",  # Makes the callback page display the code for pasting
        "client_id": CLIENT_ID,
        "response_type": "code",
        "redirect_uri": REDIRECT_URI,
        "scope": scopes,
        "code_challenge": code_challenge,
        "code_challenge_method": "S256",
        "state": state,
    }

    # Use claude.ai for authorization (Claude Pro/Max)
    return f"{AUTH_BASE_AUTHORIZE}/oauth/authorize?{urlencode(params)}"


def open_in_browser(url: str) -> bool:
    """Try to open a URL in the local browser

    Never raises; the caller must still show the URL for manual use.

    Returns:
        True if a browser reported success
    """
    try:
        opened = webbrowser.open(url)
    except (webbrowser.Error, OSError) as e:
        logger.warning(f"Failed to open browser automatically: {e}")
        return False

    if not opened:
        logger.warning("No browser available, the authorization URL must be opened manually")
    return opened
