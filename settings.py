from pathlib import Path
from config.loader import get_config_loader

# Get the config loader instance
config = get_config_loader()

LOG_LEVEL = config.get("LOG_LEVEL", "info")

# Model configuration
DEFAULT_MODEL = config.get("DEFAULT_MODEL", "claude-sonnet-4-20250514")
DEFAULT_MAX_TOKENS = config.get("DEFAULT_MAX_TOKENS", 4096)
DEFAULT_TEMPERATURE = config.get("DEFAULT_TEMPERATURE", 0.7)

# Anthropic API configuration
ANTHROPIC_VERSION = "2023-06-01"
# Required for Bearer token auth
ANTHROPIC_BETA = "oauth-2025-04-20"
API_BASE = config.get("ANTHROPIC_BASE_URL", "https://api.anthropic.com")

# Timeout configuration
CONNECT_TIMEOUT = config.get("CONNECT_TIMEOUT", 10.0)
# Time between received chunks, detects stalled streams
READ_TIMEOUT = config.get("READ_TIMEOUT", 60.0)
REQUEST_TIMEOUT = config.get("REQUEST_TIMEOUT", 120.0)
STREAM_TIMEOUT = config.get("STREAM_TIMEOUT", 600.0)

# Anthropic has no token counting endpoint for OAuth users; estimate chars / divisor
TOKEN_ESTIMATE_DIVISOR = 4

# OAuth configuration (hardcoded - not user configurable)
# Max/Pro OAuth: claude.ai for authorization, console.anthropic.com for token exchange
AUTH_BASE_AUTHORIZE = "https://claude.ai"
AUTH_BASE_TOKEN = "https://console.anthropic.com"
CLIENT_ID = "9d1c250a-e61b-44d9-88ed-5944d1962f5e"
REDIRECT_URI = "https://console.anthropic.com/oauth/code/callback"
SCOPES = "org:create_api_key user:profile user:inference"

# Shortest pasted authorization code we accept as plausible
MIN_CODE_LENGTH = 10
# How long a racing start_flow caller waits before re-checking for a session
OAUTH_LOCK_WAIT_SECONDS = config.get("OAUTH_LOCK_WAIT_SECONDS", 0.1)

# Credential storage
AUTH_PROVIDER = "anthropic"
AUTH_DIR = config.get("AUTH_DIR", str(Path.home() / ".config" / "claude-bridge"))
