"""
Grounded answer synthesizer.

Decision rule:
  - A suggested answer exists and the question asks for no elaboration
    ("explain", "why", "tell me more"): return the suggested answer verbatim,
    the generative backend is not called.
  - Otherwise ask the backend, bounded by a timeout. Timeouts, transport errors and
    empty or malformed payloads fall back to the suggested answer, else to the raw
    context block. Upstream errors never reach the caller.

Task cancellation (asyncio.CancelledError) is never swallowed: it propagates and
closes the backend stream, which aborts the outbound request.
"""

import asyncio
import logging
import re
from typing import AsyncIterator, Optional

from src.application.agent.prompts import (
    FALLBACK_PREFIX,
    SYSTEM_PROMPT,
    UNAVAILABLE_ANSWER,
    build_evidence_text,
)
from src.domain.entities.chat import GenerationRequest, GroundedContext
from src.domain.errors import GenerativeBackendError
from src.domain.ports.generative_backend_port import IGenerativeBackend

logger = logging.getLogger(__name__)

ELABORATION_CUES = re.compile(r"\b(?:explain\w*|why|tell\s+me\s+more)\b", re.IGNORECASE)


def wants_elaboration(question: str) -> bool:
    return bool(ELABORATION_CUES.search(question))


class GroundedAnswerSynthesizer:
    DEFAULT_TIMEOUT_SECONDS: float = 30.0

    def __init__(
        self,
        backend: Optional[IGenerativeBackend],
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        """
        Args:
            backend:         IGenerativeBackend implementation, or None to always
                             answer deterministically.
            timeout_seconds: Upper bound for one backend call (whole stream included).
        """
        self._backend = backend
        self._timeout = timeout_seconds

    def answers_directly(self, question: str, context: GroundedContext) -> bool:
        """True when the suggested answer is returned without a backend call."""
        if self._backend is None:
            return True
        return bool(context.suggested_answer) and not wants_elaboration(question)

    async def answer(self, question: str, context: GroundedContext) -> str:
        if self.answers_directly(question, context):
            return self.fallback(context)

        request = self._request(question, context, streaming=False)
        try:
            async with asyncio.timeout(self._timeout):
                text = await self._backend.generate(request)
        except TimeoutError:
            logger.warning("Generative backend timed out after %.1fs", self._timeout)
            return self.fallback(context)
        except GenerativeBackendError as exc:
            logger.warning("Generative backend failed: %s", exc)
            return self.fallback(context)
        except Exception:
            logger.exception("Unexpected generative backend error")
            return self.fallback(context)

        if not text or not text.strip():
            logger.warning("Generative backend returned an empty answer")
            return self.fallback(context)
        return text.strip()

    async def stream(self, question: str, context: GroundedContext) -> AsyncIterator[str]:
        """Yield answer chunks.

        The deterministic path yields the whole answer as one chunk. On backend
        failure before any chunk was produced the fallback text is yielded; after a
        partial answer the stream simply ends. Closing this generator closes the
        backend stream.
        """
        if self.answers_directly(question, context):
            yield self.fallback(context)
            return

        deadline = asyncio.get_running_loop().time() + self._timeout
        chunks = self._backend.stream(self._request(question, context, streaming=True))
        emitted = False
        try:
            while True:
                try:
                    async with asyncio.timeout_at(deadline):
                        chunk = await anext(chunks)
                except StopAsyncIteration:
                    break
                if chunk:
                    emitted = True
                    yield chunk
        except TimeoutError:
            logger.warning("Generative stream timed out after %.1fs", self._timeout)
            if not emitted:
                yield self.fallback(context)
        except GenerativeBackendError as exc:
            logger.warning("Generative stream failed: %s", exc)
            if not emitted:
                yield self.fallback(context)
        except Exception:
            logger.exception("Unexpected generative stream error")
            if not emitted:
                yield self.fallback(context)
        else:
            if not emitted:
                logger.warning("Generative stream ended without content")
                yield self.fallback(context)
        finally:
            await chunks.aclose()

    @staticmethod
    def fallback(context: GroundedContext) -> str:
        """The deterministic answer: suggested answer, else the raw evidence."""
        if context.suggested_answer:
            return context.suggested_answer
        if context.evidence_text:
            return f"{FALLBACK_PREFIX}\n\n{context.evidence_text}"
        return UNAVAILABLE_ANSWER

    @staticmethod
    def _request(question: str, context: GroundedContext, streaming: bool) -> GenerationRequest:
        return GenerationRequest(
            system_prompt=SYSTEM_PROMPT,
            evidence_text=build_evidence_text(
                context.site_info, context.evidence_text, context.suggested_answer
            ),
            user_question=question,
            streaming=streaming,
        )
