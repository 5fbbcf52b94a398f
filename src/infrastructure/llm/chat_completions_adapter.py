"""
Infrastructure adapter: OpenAI-compatible /v1/chat/completions endpoint -> IGenerativeBackend.

Non-streaming responses are read from choices[0].message.content. Streaming uses
Server-Sent Events: each `data: {...}` line carries choices[0].delta.content and
`data: [DONE]` ends the stream. Closing the stream generator closes the HTTP
response, which aborts the request.
"""

import json
import logging
from typing import AsyncGenerator, Optional

import httpx

from src.domain.entities.chat import GenerationRequest
from src.domain.errors import GenerativeBackendError
from src.domain.ports.generative_backend_port import IGenerativeBackend

logger = logging.getLogger(__name__)

DONE_MARKER = "[DONE]"


def parse_sse_line(line: str) -> Optional[str]:
    """Return the delta text carried by one SSE line, "" for non-content lines.

    Returns None for the end marker. Unparseable payloads are skipped.
    """
    line = line.strip()
    if not line.startswith("data:"):
        return ""
    payload = line[len("data:"):].strip()
    if payload == DONE_MARKER:
        return None
    try:
        event = json.loads(payload)
        return event["choices"][0].get("delta", {}).get("content") or ""
    except (ValueError, KeyError, IndexError, TypeError, AttributeError):
        logger.debug("Skipping malformed stream event: %r", payload[:80])
        return ""


class ChatCompletionsBackend(IGenerativeBackend):
    """Talks to a hosted OpenAI-compatible chat completions endpoint."""

    def __init__(
        self,
        api_url: str,
        model: str = "auric-ai",
        api_key: Optional[str] = None,
        max_tokens: int = 512,
        temperature: float = 0.1,
        timeout_seconds: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._api_url = api_url
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)
        self._headers = headers

    async def generate(self, request: GenerationRequest) -> str:
        try:
            response = await self._client.post(
                self._api_url, json=self._payload(request, stream=False), headers=self._headers
            )
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise GenerativeBackendError(f"Chat completions call failed: {exc}") from exc
        try:
            content = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise GenerativeBackendError("Malformed chat completions response") from exc
        if not isinstance(content, str):
            raise GenerativeBackendError("Malformed chat completions response")
        return content

    async def stream(self, request: GenerationRequest) -> AsyncGenerator[str, None]:
        try:
            async with self._client.stream(
                "POST",
                self._api_url,
                json=self._payload(request, stream=True),
                headers=self._headers,
            ) as response:
                response.raise_for_status()
                async for line in response.aiter_lines():
                    text = parse_sse_line(line)
                    if text is None:
                        return
                    if text:
                        yield text
        except httpx.HTTPError as exc:
            raise GenerativeBackendError(f"Chat completions stream failed: {exc}") from exc

    async def aclose(self) -> None:
        await self._client.aclose()

    def _payload(self, request: GenerationRequest, stream: bool) -> dict:
        return {
            "model": self._model,
            "stream": stream,
            "messages": [
                {"role": "system", "content": request.system_prompt},
                {"role": "user", "content": request.user_prompt},
            ],
            "max_tokens": self._max_tokens,
            "temperature": self._temperature,
        }
