"""OAuth authentication package for the Anthropic API"""

from .authorization import build_authorize_url, open_in_browser
from .code_input import AuthorizationInput, parse_authorization_input, strip_paste_artifacts
from .pkce import PkceCodes, generate_pkce, generate_state
from .session import FlowStart, FlowState, OAuthSession, OAuthSessionManager
from .token_exchange import exchange_code
from .token_manager import get_valid_token
from .token_refresh import refresh_tokens

__all__ = [
    "AuthorizationInput",
    "FlowStart",
    "FlowState",
    "OAuthSession",
    "OAuthSessionManager",
    "PkceCodes",
    "build_authorize_url",
    "exchange_code",
    "generate_pkce",
    "generate_state",
    "get_valid_token",
    "open_in_browser",
    "parse_authorization_input",
    "refresh_tokens",
    "strip_paste_artifacts",
]
