"""PKCE (Proof Key for Code Exchange) and CSRF state generation"""

import base64
import hashlib
import secrets
from dataclasses import dataclass


@dataclass
class PkceCodes:
    """PKCE codes for one OAuth flow

    Attributes:
        code_verifier: Random string kept locally until the code exchange
        code_challenge: SHA256 hash of code_verifier, sent in auth request
    """
    code_verifier: str
    code_challenge: str


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode('utf-8').rstrip('=')


def generate_pkce() -> PkceCodes:
    """Generate PKCE code verifier and S256 challenge

    Returns:
        PkceCodes with a 43 character verifier
    """
    code_verifier = _b64url(secrets.token_bytes(32))
    code_challenge = _b64url(hashlib.sha256(code_verifier.encode('utf-8')).digest())
    return PkceCodes(code_verifier=code_verifier, code_challenge=code_challenge)


def generate_state() -> str:
    """Generate an opaque CSRF state token, independent of the verifier"""
    return _b64url(secrets.token_bytes(16))
