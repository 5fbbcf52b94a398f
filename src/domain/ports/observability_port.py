"""
Port for tracing one question through the query graph and the generative backend.

The use case attaches as_callback() and run_metadata() to every graph run; the
composition root calls flush() on shutdown. No tracing SDK is imported outside
the adapter.
"""

from abc import ABC, abstractmethod
from typing import Any


class IObservabilityHandler(ABC):
    @abstractmethod
    def as_callback(self) -> Any:
        """LangChain-compatible callback passed in the graph run config."""
        ...

    @abstractmethod
    def run_metadata(self, question: str) -> dict:
        ...

    @abstractmethod
    def flush(self) -> None:
        """Send buffered traces; called once when the process stops serving."""
        ...
