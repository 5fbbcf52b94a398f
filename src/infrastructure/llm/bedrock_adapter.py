"""
Infrastructure adapter: Amazon Bedrock (ChatBedrock) -> IGenerativeBackend.

All ChatBedrock / langchain_aws / botocore details are confined here. The grounding
system prompt goes in a SystemMessage; evidence and question go in one HumanMessage.
"""

import os
from typing import Any, AsyncGenerator, Optional

from botocore.exceptions import BotoCoreError, ClientError
from langchain_aws import ChatBedrock
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

from src.domain.entities.chat import GenerationRequest
from src.domain.errors import GenerativeBackendError
from src.domain.ports.generative_backend_port import IGenerativeBackend


def _text(content: Any) -> str:
    """Flatten a LangChain message content (str or list of content blocks)."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text", ""))
        return "".join(parts)
    raise GenerativeBackendError(f"Unexpected message content type: {type(content).__name__}")


class BedrockGenerativeBackend(IGenerativeBackend):
    """Wraps ChatBedrock and exposes the IGenerativeBackend interface."""

    MODEL_ID = "us.amazon.nova-pro-v1:0"

    def __init__(
        self,
        model_id: str = MODEL_ID,
        region: Optional[str] = None,
        temperature: float = 0.1,
        max_tokens: int = 512,
        callbacks: Optional[list] = None,
        _runnable: Any = None,
    ) -> None:
        """
        Args:
            callbacks: LangChain callbacks (e.g. the Langfuse handler) attached to
                       every call.
            _runnable: Optional pre-configured Runnable used in tests in place of
                       ChatBedrock. Pass nothing for normal instantiation.
        """
        if _runnable is not None:
            self._llm = _runnable
        else:
            self._llm = ChatBedrock(
                model=model_id,
                model_kwargs={"temperature": temperature, "max_tokens": max_tokens},
                region_name=region or os.environ.get("AWS_DEFAULT_REGION", "us-east-1"),
            )
        self._config = {"callbacks": callbacks} if callbacks else {}

    async def generate(self, request: GenerationRequest) -> str:
        try:
            response = await self._llm.ainvoke(self._messages(request), config=self._config)
        except (BotoCoreError, ClientError) as exc:
            raise GenerativeBackendError(f"Bedrock call failed: {exc}") from exc
        return _text(getattr(response, "content", None))

    async def stream(self, request: GenerationRequest) -> AsyncGenerator[str, None]:
        chunks = self._llm.astream(self._messages(request), config=self._config)
        try:
            async for chunk in chunks:
                text = _text(getattr(chunk, "content", ""))
                if text:
                    yield text
        except (BotoCoreError, ClientError) as exc:
            raise GenerativeBackendError(f"Bedrock stream failed: {exc}") from exc
        finally:
            await chunks.aclose()

    @staticmethod
    def _messages(request: GenerationRequest) -> list[BaseMessage]:
        return [
            SystemMessage(content=request.system_prompt),
            HumanMessage(content=request.user_prompt),
        ]
