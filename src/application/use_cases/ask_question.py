"""
Use-case: answer one natural-language price question.

execute() returns the full answer; stream() yields incremental events for chat UIs
and bot integrations. Both run the same query graph and synthesizer.
Only StoreUnavailableError escapes to the caller.
"""

from datetime import date
from typing import Any, AsyncGenerator, Callable, Optional

from src.application.services.answer_synthesizer import GroundedAnswerSynthesizer
from src.domain.entities.chat import ChatAnswer, GroundedContext
from src.domain.ports.observability_port import IObservabilityHandler

EXCERPT_LENGTH = 200


def evidence_excerpt(context: GroundedContext) -> str:
    text = context.evidence_text
    if len(text) <= EXCERPT_LENGTH:
        return text
    return text[:EXCERPT_LENGTH] + "..."


class AskQuestionUseCase:
    def __init__(
        self,
        graph: Any,
        synthesizer: GroundedAnswerSynthesizer,
        observability: Optional[IObservabilityHandler] = None,
        clock: Callable[[], date] = date.today,
    ) -> None:
        """
        Args:
            graph:         Compiled graph returned by build_query_graph().
            synthesizer:   GroundedAnswerSynthesizer wired to a generative backend.
            observability: Optional IObservabilityHandler (e.g. Langfuse adapter).
            clock:         Returns "today" for relative date phrases.
        """
        self._graph = graph
        self._synthesizer = synthesizer
        self._observability = observability
        self._clock = clock

    async def resolve(self, question: str) -> GroundedContext:
        """Run the query graph and return the grounded context.

        Raises:
            StoreUnavailableError: if the price store cannot be read.
        """
        config: dict = {"recursion_limit": 10}
        if self._observability is not None:
            config["callbacks"] = [self._observability.as_callback()]
            config["metadata"] = self._observability.run_metadata(question)
        state = await self._graph.ainvoke(
            {"question": question, "today": self._clock()},
            config=config,
        )
        return state["context"]

    async def execute(self, question: str) -> ChatAnswer:
        context = await self.resolve(question)
        direct = self._synthesizer.answers_directly(question, context)
        answer = await self._synthesizer.answer(question, context)
        return ChatAnswer(
            answer_text=answer,
            evidence_excerpt=evidence_excerpt(context),
            intent=context.intent,
            used_generative_backend=not direct,
        )

    async def stream(self, question: str) -> AsyncGenerator[dict, None]:
        """Stream answer events for *question*.

        Yields dicts of shape:
            {"type": "meta", "intent": str, "evidence": str}   (once, first)
            {"type": "token", "content": str}                  (one or more)
        """
        context = await self.resolve(question)
        yield {
            "type": "meta",
            "intent": context.intent.value,
            "evidence": evidence_excerpt(context),
        }
        chunks = self._synthesizer.stream(question, context)
        try:
            async for chunk in chunks:
                yield {"type": "token", "content": chunk}
        finally:
            await chunks.aclose()
