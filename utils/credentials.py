"""Credential records persisted per provider

The JSON shape (``type``/``access``/``refresh``/``expires``) matches the
OpenCode auth files so existing logins can be reused.
"""

import time
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter


def now_millis() -> int:
    """Current wall-clock time in epoch milliseconds"""
    return int(time.time() * 1000)


class OAuthCredential(BaseModel):
    """OAuth token pair with an absolute expiry (epoch milliseconds)"""
    type: Literal["oauth"] = "oauth"
    access: str
    refresh: str
    expires: int

    def is_expired(self, now_ms: Optional[int] = None) -> bool:
        current = now_millis() if now_ms is None else now_ms
        return self.expires <= current

    @classmethod
    def from_token_response(cls, token_data: dict, now_ms: Optional[int] = None) -> "OAuthCredential":
        """Build a credential from a token endpoint JSON body

        Raises:
            KeyError: If access_token or refresh_token is missing
        """
        current = now_millis() if now_ms is None else now_ms
        expires_in = token_data.get("expires_in", 3600)
        return cls(
            access=token_data["access_token"],
            refresh=token_data["refresh_token"],
            expires=current + int(expires_in) * 1000,
        )


class ApiKeyCredential(BaseModel):
    """Static API key"""
    type: Literal["api"] = "api"
    key: str


Credential = Annotated[Union[OAuthCredential, ApiKeyCredential], Field(discriminator="type")]

credential_adapter: TypeAdapter = TypeAdapter(Credential)
