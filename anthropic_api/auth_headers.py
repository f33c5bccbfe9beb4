"""Request headers for the two Anthropic authentication modes"""

from dataclasses import dataclass
from typing import Dict

from settings import ANTHROPIC_BETA, ANTHROPIC_VERSION

AUTH_OAUTH = "oauth"
AUTH_API_KEY = "api_key"


@dataclass
class ResolvedAuth:
    """Credential chosen for one request

    Attributes:
        kind: AUTH_OAUTH (Bearer token) or AUTH_API_KEY (x-api-key)
        secret: The token or key
        source: Where it came from, for logging only
    """
    kind: str
    secret: str
    source: str = ""

    def __repr__(self) -> str:
        return f"ResolvedAuth(kind={self.kind!r}, source={self.source!r})"


def build_request_headers(auth: ResolvedAuth) -> Dict[str, str]:
    """Headers for POST /v1/messages

    OAuth tokens go in a Bearer header and need the oauth beta flag;
    API keys go in x-api-key.
    """
    headers = {
        "Content-Type": "application/json",
        "anthropic-version": ANTHROPIC_VERSION,
    }

    if auth.kind == AUTH_OAUTH:
        headers["Authorization"] = f"Bearer {auth.secret}"
        headers["anthropic-beta"] = ANTHROPIC_BETA
    else:
        headers["x-api-key"] = auth.secret

    return headers
