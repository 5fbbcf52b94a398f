"""
Composition Root: wires infrastructure adapters into the application layer.

Shared by the FastAPI app and the CLI so both answer questions through exactly
the same pipeline.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from src.application.agent.graph import build_query_graph
from src.application.services.answer_synthesizer import GroundedAnswerSynthesizer
from src.application.services.context_builder import StatisticsContextBuilder
from src.application.services.price_resolver import NearestDataResolver
from src.application.services.ttl_cache import TTLCache
from src.application.use_cases.ask_question import AskQuestionUseCase
from src.domain.ports.generative_backend_port import IGenerativeBackend
from src.domain.ports.metal_catalog_port import IMetalCatalog
from src.domain.ports.observability_port import IObservabilityHandler
from src.domain.ports.price_store_port import IPriceStore
from src.infrastructure.config.settings import Settings
from src.infrastructure.price_store.in_memory_store import InMemoryPriceStore

logger = logging.getLogger(__name__)


@dataclass
class Components:
    use_case: AskQuestionUseCase
    store: IPriceStore
    backend: Optional[IGenerativeBackend]
    observability: Optional[IObservabilityHandler]

    async def aclose(self) -> None:
        aclose = getattr(self.backend, "aclose", None)
        if aclose is not None:
            await aclose()
        if self.observability is not None:
            self.observability.flush()


def build_price_store(settings: Settings) -> IPriceStore:
    if settings.supabase_url and settings.supabase_service_key:
        from src.infrastructure.price_store.supabase_store import SupabasePriceStore

        return SupabasePriceStore.from_credentials(
            settings.supabase_url, settings.supabase_service_key, table=settings.price_table
        )
    logger.warning("SUPABASE_URL / SUPABASE_SERVICE_KEY not set, using an empty in-memory store")
    return InMemoryPriceStore()


def build_observability(settings: Settings) -> Optional[IObservabilityHandler]:
    if not settings.langfuse_enabled:
        return None
    from src.infrastructure.observability.langfuse_adapter import LangfuseObservabilityHandler

    return LangfuseObservabilityHandler(environment=settings.environment)


def build_backend(
    settings: Settings, observability: Optional[IObservabilityHandler]
) -> Optional[IGenerativeBackend]:
    if settings.generative_provider == "none":
        return None
    if settings.generative_provider == "chat_completions":
        from src.infrastructure.llm.chat_completions_adapter import ChatCompletionsBackend

        return ChatCompletionsBackend(
            api_url=settings.llm_api_url,
            model=settings.llm_model,
            api_key=settings.llm_api_key,
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature,
            timeout_seconds=settings.llm_timeout_seconds,
        )
    from src.infrastructure.llm.bedrock_adapter import BedrockGenerativeBackend

    callbacks = [observability.as_callback()] if observability is not None else None
    return BedrockGenerativeBackend(
        model_id=settings.bedrock_model_id,
        region=settings.aws_default_region,
        temperature=settings.llm_temperature,
        max_tokens=settings.llm_max_tokens,
        callbacks=callbacks,
    )


def build_components(
    settings: Settings,
    store: Optional[IPriceStore] = None,
    backend: Optional[IGenerativeBackend] = None,
) -> Components:
    """Wire every dependency once. *store* / *backend* override the configured adapters."""
    observability = build_observability(settings)
    store = store if store is not None else build_price_store(settings)
    if backend is None:
        backend = build_backend(settings, observability)

    catalog = store if isinstance(store, IMetalCatalog) else None
    resolver = NearestDataResolver(
        store,
        catalog=catalog,
        metal_cache=TTLCache(settings.metal_catalog_ttl_seconds),
    )
    graph = build_query_graph(StatisticsContextBuilder(resolver))
    synthesizer = GroundedAnswerSynthesizer(backend, timeout_seconds=settings.llm_timeout_seconds)
    use_case = AskQuestionUseCase(graph, synthesizer, observability)
    return Components(
        use_case=use_case, store=store, backend=backend, observability=observability
    )
