"""
Infrastructure adapter: Langfuse -> IObservabilityHandler.

Built only when Settings.langfuse_enabled is true; credentials come from the
LANGFUSE_PUBLIC_KEY / LANGFUSE_SECRET_KEY / LANGFUSE_HOST environment variables
read by the Langfuse client itself. Every question becomes one trace tagged with
the service name and deployment environment.
"""

from typing import Any, Optional

from langfuse import get_client
from langfuse.langchain import CallbackHandler

from src.domain.ports.observability_port import IObservabilityHandler

SERVICE_TAG = "metal-price-assistant"


class LangfuseObservabilityHandler(IObservabilityHandler):
    def __init__(self, environment: str = "development", extra_tags: Optional[list[str]] = None) -> None:
        self._client = get_client()
        self._handler = CallbackHandler()
        self._tags = [SERVICE_TAG, environment, *(extra_tags or [])]

    def as_callback(self) -> Any:
        return self._handler

    def run_metadata(self, question: str) -> dict:
        """Trace tags plus question size; the question text itself travels in the trace input."""
        return {
            "langfuse_tags": list(self._tags),
            "question_length": len(question),
            "question_words": len(question.split()),
        }

    def flush(self) -> None:
        self._client.flush()
