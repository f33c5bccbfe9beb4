"""Pydantic models for Anthropic API"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class AnthropicMessage(BaseModel):
    """Single flat message; role is 'user' or 'assistant'"""
    role: str
    content: str


class AnthropicMessageRequest(BaseModel):
    """Anthropic Messages API request model"""
    model: str
    max_tokens: int
    temperature: float
    messages: List[AnthropicMessage]
    stream: Optional[bool] = None

    def to_payload(self) -> dict:
        """JSON body for /v1/messages; ``stream`` only when set"""
        return self.model_dump(exclude_none=True)


class AnthropicContentBlock(BaseModel):
    """Response content block; non-text blocks keep their extra fields"""
    model_config = ConfigDict(extra="allow")

    type: str
    text: Optional[str] = None


class AnthropicUsage(BaseModel):
    model_config = ConfigDict(extra="allow")

    input_tokens: int = 0
    output_tokens: int = 0


class AnthropicMessageResponse(BaseModel):
    """Anthropic Messages API response model"""
    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    model: Optional[str] = None
    role: Optional[str] = None
    content: List[AnthropicContentBlock] = Field(default_factory=list)
    stop_reason: Optional[str] = None
    usage: AnthropicUsage = Field(default_factory=AnthropicUsage)
