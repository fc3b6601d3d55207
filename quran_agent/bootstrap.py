"""Wire the agent stack from configuration."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from quran_agent.backends.base import QuranBackend
from quran_agent.backends.memory import MemoryQuranBackend
from quran_agent.config import AgentSettings
from quran_agent.llm.client import ChatCompletionClient
from quran_agent.llm.embeddings import EmbeddingClient, HashingEmbedder
from quran_agent.llm.limits import OutputTokenLimits
from quran_agent.llm.providers.base import Provider
from quran_agent.llm.providers.openrouter import OpenRouterProvider
from quran_agent.llm.token_counter import TokenCounter
from quran_agent.orchestrator.core import Orchestrator
from quran_agent.prompts.system import build_system_prompt
from quran_agent.session.store import MemoryRequestStore, RequestStore, SqlRequestStore
from quran_agent.tools.executor import ToolExecutor
from quran_agent.tools.quran import Embedder, build_quran_tools
from quran_agent.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


@dataclass
class AgentStack:
    settings: AgentSettings
    backend: QuranBackend
    embedder: Embedder
    client: ChatCompletionClient
    executor: ToolExecutor
    orchestrator: Orchestrator
    store: RequestStore

    async def aclose(self) -> None:
        await self.store.close()
        await self.backend.aclose()
        await self.client.aclose()


def build_provider(settings: AgentSettings) -> Provider:
    llm = settings.llm
    api_key = os.environ.get(llm.api_key_env, "")
    if not api_key:
        logger.warning("%s is not set; completion requests will be unauthenticated", llm.api_key_env)
    return OpenRouterProvider(
        url=llm.api_base,
        api_key=api_key,
        app_url=llm.app_url,
        app_title=llm.app_title,
        timeout=llm.timeout_seconds,
        max_retries=llm.max_retries,
    )


def build_orchestrator(
    settings: AgentSettings,
    client: ChatCompletionClient,
    executor: ToolExecutor,
) -> Orchestrator:
    agent = settings.agent
    prompt = build_system_prompt(
        executor.registry.list(), default_text_type_id=agent.default_text_type_id
    )
    return Orchestrator(
        client,
        executor,
        prompt,
        max_iterations=agent.max_iterations,
        max_tool_results=agent.max_tool_results,
        parallel_tools=agent.parallel_tools,
        max_prompt_tokens=agent.max_prompt_tokens,
        token_counter=TokenCounter(settings.llm.model) if agent.max_prompt_tokens else None,
    )


async def build_stack(
    settings: AgentSettings,
    *,
    demo: bool = False,
    provider: Provider | None = None,
    backend: QuranBackend | None = None,
    embedder: Embedder | None = None,
    store: RequestStore | None = None,
) -> AgentStack:
    """
    Construct every collaborator explicitly; nothing is a module global.

    With ``demo=True`` the in-memory backend, an offline embedder and an
    in-memory request store replace the database and the embedding API.
    Any collaborator passed in wins over the configured one.
    """
    if embedder is None:
        if demo:
            embedder = HashingEmbedder()
        else:
            emb = settings.embeddings
            embedder = EmbeddingClient(
                url=emb.api_base,
                api_key=os.environ.get(emb.api_key_env, ""),
                model=emb.model,
                dimensions=emb.dimensions,
                timeout=emb.timeout_seconds,
            )

    if backend is None:
        if demo:
            vectorize = embedder.vector if isinstance(embedder, HashingEmbedder) else None
            backend = MemoryQuranBackend(vectorize=vectorize)
        else:
            from quran_agent.backends.postgres import PostgresQuranBackend

            backend = PostgresQuranBackend(
                url=settings.database.url,
                pool_size=settings.database.pool_size,
                echo=settings.database.echo,
            )

    if store is None:
        if demo:
            store = MemoryRequestStore()
        else:
            store = SqlRequestStore(url=settings.database.url)
    await store.init()

    registry = ToolRegistry()
    for tool in build_quran_tools(backend, embedder).values():
        registry.register(tool)
    executor = ToolExecutor(registry, timeout=settings.agent.tool_timeout_seconds)

    client = ChatCompletionClient(
        provider or build_provider(settings),
        default_model=settings.llm.model,
        limits=OutputTokenLimits(
            settings.llm.output_token_limits, default=settings.llm.max_output_tokens
        ),
        temperature=settings.llm.temperature,
    )

    orchestrator = build_orchestrator(settings, client, executor)
    logger.info(
        "Agent stack ready: backend=%s tools=%d model=%s",
        type(backend).__name__, len(registry), settings.llm.model,
    )
    return AgentStack(
        settings=settings,
        backend=backend,
        embedder=embedder,
        client=client,
        executor=executor,
        orchestrator=orchestrator,
        store=store,
    )
