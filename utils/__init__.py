"""Shared utilities package for the Claude content bridge"""

from .credentials import (
    ApiKeyCredential,
    Credential,
    OAuthCredential,
    credential_adapter,
    now_millis,
)
from .storage import CredentialStore

__all__ = [
    "ApiKeyCredential",
    "Credential",
    "OAuthCredential",
    "credential_adapter",
    "now_millis",
    "CredentialStore",
]
