"""Pydantic models for the generic generate-content API shape

Field names are snake_case in Python and accept the camelCase names used on
the wire (``maxOutputTokens``, ``usageMetadata``...).
"""

from enum import Enum
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class GenericModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Part(GenericModel):
    """One piece of a turn; only text is translated, other modalities are kept as extras"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    text: Optional[str] = None


class Content(GenericModel):
    """A single conversation turn"""
    role: Optional[str] = "user"
    parts: List[Part]


# A request's contents may be a prompt string, one turn, a list of turns, or a list of parts
ContentsInput = Union[str, Content, List[Union[Content, Part, str]]]


class GenerateContentConfig(GenericModel):
    max_output_tokens: Optional[int] = None
    temperature: Optional[float] = None


class GenerateContentRequest(GenericModel):
    model: Optional[str] = None
    contents: ContentsInput
    config: Optional[GenerateContentConfig] = None


class FinishReason(str, Enum):
    STOP = "STOP"
    MAX_TOKENS = "MAX_TOKENS"
    OTHER = "OTHER"


class Candidate(GenericModel):
    content: Content
    finish_reason: Optional[FinishReason] = None
    index: int = 0


class UsageMetadata(GenericModel):
    prompt_token_count: int = 0
    candidates_token_count: int = 0
    total_token_count: int = 0


class GenerateContentResponse(GenericModel):
    candidates: List[Candidate] = []
    usage_metadata: Optional[UsageMetadata] = None

    @property
    def text(self) -> str:
        """Concatenated text of the first candidate"""
        if not self.candidates:
            return ""
        return "".join(part.text or "" for part in self.candidates[0].content.parts)


class CountTokensRequest(GenericModel):
    model: Optional[str] = None
    contents: ContentsInput


class CountTokensResponse(GenericModel):
    total_tokens: int


class EmbedContentRequest(GenericModel):
    model: Optional[str] = None
    contents: Any = None
