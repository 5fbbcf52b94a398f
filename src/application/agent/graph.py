"""
LangGraph query-resolution graph factory.

    START -> understand -> (evidence_node | knowledge_node) -> END

understand runs the date parser and the metal/intent detectors. Questions whose
intent needs price data go to evidence_node (resolver + statistics); carats and
help questions go straight to knowledge_node. The synthesizer is not part of the
graph so that it can stream to the caller.

Dependency-injection contract:
  - Receives a StatisticsContextBuilder; never imports supabase, httpx or any
    generative SDK directly.
"""

import logging

from langgraph.graph import END, START, StateGraph

from src.application.agent.state import QueryState
from src.application.query.date_parser import parse_date_query
from src.application.query.detectors import detect_intent, detect_metals
from src.application.services.context_builder import StatisticsContextBuilder
from src.domain.entities.chat import Intent

logger = logging.getLogger(__name__)

INFORMATIONAL_INTENTS = frozenset({Intent.CARATS, Intent.HELP})


def build_query_graph(builder: StatisticsContextBuilder):
    """Build and compile the question-resolution graph.

    Args:
        builder: StatisticsContextBuilder wired to a price store.

    Returns:
        Compiled LangGraph graph ready for ainvoke() calls with
        {"question": str, "today": date}.
    """

    def understand(state: QueryState) -> dict:
        """Parse the date expression and detect metals and intent."""
        question = state["question"]
        date_query = parse_date_query(question, state["today"])
        metals = detect_metals(question)
        intent = detect_intent(question)
        logger.info(
            "Question %r -> intent=%s date=%s metals=%s",
            question,
            intent.value,
            date_query.describe(),
            ",".join(sorted(metals.codes)) or "all",
        )
        return {"date_query": date_query, "metals": metals, "intent": intent}

    async def evidence_node(state: QueryState) -> dict:
        """Resolve store rows and compute statistics for the intent."""
        context = await builder.build(state["intent"], state["date_query"], state["metals"])
        return {"context": context}

    def knowledge_node(state: QueryState) -> dict:
        """Fixed informational answers, no store access."""
        return {"context": builder.informational(state["intent"])}

    def route_by_intent(state: QueryState) -> str:
        if state["intent"] in INFORMATIONAL_INTENTS:
            return "knowledge_node"
        return "evidence_node"

    workflow = StateGraph(QueryState)
    workflow.add_node("understand", understand)
    workflow.add_node("evidence_node", evidence_node)
    workflow.add_node("knowledge_node", knowledge_node)
    workflow.add_edge(START, "understand")
    workflow.add_conditional_edges(
        "understand", route_by_intent, ["evidence_node", "knowledge_node"]
    )
    workflow.add_edge("evidence_node", END)
    workflow.add_edge("knowledge_node", END)
    return workflow.compile()
