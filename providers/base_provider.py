"""
Base content generator interface.
Defines the contract that every model backend must follow.
"""
from abc import ABC, abstractmethod
from typing import AsyncIterator

from gemini_compat.models import (
    CountTokensRequest,
    CountTokensResponse,
    EmbedContentRequest,
    GenerateContentRequest,
    GenerateContentResponse,
)


class ContentGenerator(ABC):
    """Abstract base class for content generators"""

    @abstractmethod
    async def generate_content(self, request: GenerateContentRequest) -> GenerateContentResponse:
        """Generate a complete response

        Args:
            request: Generic generate-content request

        Returns:
            Generic response
        """
        pass

    @abstractmethod
    async def generate_content_stream(
        self,
        request: GenerateContentRequest,
    ) -> AsyncIterator[GenerateContentResponse]:
        """Generate a response incrementally

        Args:
            request: Generic generate-content request

        Returns:
            Async iterator of partial responses
        """
        pass

    @abstractmethod
    async def count_tokens(self, request: CountTokensRequest) -> CountTokensResponse:
        pass

    @abstractmethod
    async def embed_content(self, request: EmbedContentRequest):
        pass
