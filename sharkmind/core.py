"""Core SharkMind — the response orchestration pipeline.

    message
      → extract_keywords
      → KnowledgeRetriever.search      (degrades to no knowledge)
      → build_context                  (pure)
      → select_provider                (pure, deterministic)
      → ProviderDispatcher.dispatch    (degrades to the mode's canned answer)
      → UsageMeter.meter               (best-effort)
      → DispatchResult

Every request runs as one task with no shared mutable state; AdvisorCore only holds
the immutable AdvisorConfig and references to the external stores.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping, Sequence
from pathlib import Path

from nfo.decorators import log_call

from sharkmind.config import load_advisor_config
from sharkmind.context_builder import build_context
from sharkmind.env_config import EnvConfig, get_env_config
from sharkmind.keywords import extract_keywords
from sharkmind.knowledge import KnowledgeRetriever
from sharkmind.metering import UsageMeter
from sharkmind.models import AdvisorConfig, ConversationTurn, DispatchResult, Mode
from sharkmind.providers import ProviderDispatcher
from sharkmind.router import select_provider
from sharkmind.storage import AccountStore, AuditSink, KnowledgeStore, SQLiteAdvisorStore

logger = logging.getLogger("sharkmind")


class AdvisorCore:
    """Routes a chat message to one provider and returns a uniform answer.

    Usage:
        core = AdvisorCore(config, knowledge_store=store, account_store=store, audit_sink=store)
        result = await core.generate_response("Qual a tendência do WINFUT hoje?", Mode.DAYTRADE, user_id=7)
        print(result.provider_id, result.content)
    """

    def __init__(
        self,
        config: AdvisorConfig,
        knowledge_store: KnowledgeStore,
        account_store: AccountStore | None = None,
        audit_sink: AuditSink | None = None,
        dispatcher: ProviderDispatcher | None = None,
        api_keys: Mapping[str, str] | None = None,
    ):
        self.config = config
        self.retriever = KnowledgeRetriever(knowledge_store, limit=config.knowledge_limit)
        self.dispatcher = dispatcher or ProviderDispatcher(config, api_keys=api_keys)
        self.meter = (
            UsageMeter(account_store, audit_sink, config)
            if account_store is not None and audit_sink is not None
            else None
        )

    def select_provider(self, message: str, mode: Mode | str) -> str:
        return select_provider(message, mode, self.config.routing)

    def build_context(
        self,
        message: str,
        mode: Mode | str,
        knowledge: Sequence = (),
        history: Sequence[ConversationTurn] = (),
    ) -> str:
        return build_context(
            message,
            self.config.modes[Mode(mode)],
            knowledge,
            history,
            history_window=self.config.history_window,
        )

    @log_call
    async def generate_response(
        self,
        message: str,
        mode: Mode | str,
        user_id: int | None = None,
        history: Sequence[ConversationTurn] = (),
    ) -> DispatchResult:
        """Full pipeline for one chat message.

        Args:
            message: Validated user message.
            mode: One of the four advisory modes; invalid values raise ValueError.
            user_id: Account to meter; anonymous requests are not metered.
            history: Conversation so far, oldest first (only the last turns are used).

        Returns:
            DispatchResult from the provider, or the mode's fallback answer.
        """
        mode = Mode(mode)
        _t0 = time.time()

        keywords = extract_keywords(message)
        knowledge = await self.retriever.search(keywords, mode)
        context = self.build_context(message, mode, knowledge, history)
        provider_id = self.select_provider(message, mode)

        result = await self.dispatcher.dispatch(provider_id, context, mode)

        if user_id is not None and self.meter is not None:
            await self.meter.meter(user_id, result.provider_id, result.tokens_used, result.model_name)

        duration_ms = (time.time() - _t0) * 1000
        logger.info(
            f"mode={mode.value} provider={result.provider_id} model={result.model_name} "
            f"tokens={result.tokens_used} knowledge={len(knowledge)} ({duration_ms:.0f} ms)"
        )
        return result


def build_advisor(
    env: EnvConfig | None = None,
    config_path: str | Path | None = None,
    db_path: str | Path | None = None,
    seed: bool = True,
) -> tuple[AdvisorCore, SQLiteAdvisorStore]:
    """Wire an AdvisorCore to the SQLite reference store.

    CLI args (``config_path``, ``db_path``) override env values.
    """
    env = env or get_env_config()
    config = load_advisor_config(config_path or env.config_path, timeout=env.timeout)
    store = SQLiteAdvisorStore(db_path or env.db_path)
    if seed:
        store.seed_knowledge()
    core = AdvisorCore(config, knowledge_store=store, account_store=store, audit_sink=store)
    return core, store
