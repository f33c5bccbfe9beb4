"""Typed errors surfaced by the auth flow and the content generator"""

from typing import Optional

# Longest body excerpt rendered into an error message
BODY_EXCERPT_LENGTH = 500


def _excerpt(body: str) -> str:
    if len(body) <= BODY_EXCERPT_LENGTH:
        return body
    return body[:BODY_EXCERPT_LENGTH] + "..."


class BridgeError(Exception):
    """Base class for all errors raised by this package"""


class NoAuthenticationError(BridgeError):
    """No API key or OAuth credential is available for the provider"""

    def __init__(self, message: Optional[str] = None):
        super().__init__(
            message
            or "No Anthropic authentication found. Please authenticate using OAuth "
            "or set the ANTHROPIC_API_KEY environment variable."
        )


class NoActiveSessionError(BridgeError):
    """complete_flow was called without a preceding start_flow"""

    def __init__(self):
        super().__init__("No active OAuth session. Please start the OAuth flow first.")


class CompletionAlreadyInProgressError(BridgeError):
    """Another complete_flow call is still exchanging its code"""

    def __init__(self):
        super().__init__("OAuth completion already in progress. Please wait...")


class InvalidCodeError(BridgeError):
    """The pasted authorization code could not be used"""


class HTTPStatusBridgeError(BridgeError):
    """Error carrying an upstream HTTP status and response body

    ``status_code`` is None when the request never produced a response
    (connection refused, timeout, protocol error).
    """

    label = "Request failed"

    def __init__(self, status_code: Optional[int], body: str):
        self.status_code = status_code
        self.body = body
        status = status_code if status_code is not None else "no response"
        super().__init__(f"{self.label}: {status} - {_excerpt(body)}")


class TokenExchangeFailedError(HTTPStatusBridgeError):
    label = "Token exchange failed"


class ProviderError(HTTPStatusBridgeError):
    label = "Anthropic API error"


class UnsupportedOperationError(BridgeError):
    """The provider has no equivalent of the requested operation"""


class StorageError(BridgeError):
    """The credential store could not persist a record"""
