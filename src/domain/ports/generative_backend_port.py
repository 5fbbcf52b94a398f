"""
Port (interface) for generative text backends.
Infrastructure adapters (e.g. BedrockGenerativeBackend) must implement this interface.

Adapters translate their transport errors into GenerativeBackendError. Closing the
async iterator returned by stream() must abort the in-flight request.
"""

from abc import ABC, abstractmethod
from typing import AsyncGenerator

from src.domain.entities.chat import GenerationRequest


class IGenerativeBackend(ABC):
    @abstractmethod
    async def generate(self, request: GenerationRequest) -> str:
        """Return the complete generated text for *request*."""
        ...

    @abstractmethod
    def stream(self, request: GenerationRequest) -> AsyncGenerator[str, None]:
        """Yield incremental text chunks for *request* until the end marker."""
        ...
