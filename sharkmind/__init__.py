"""SharkMind — financial-advisory chat routed across multiple LLM providers.

Usage:
    from sharkmind import build_advisor, Mode

    core, store = build_advisor()
    result = await core.generate_response("Analise o WINFUT para day trade hoje", Mode.DAYTRADE)
    print(result.provider_id, result.content)
"""

__version__ = "0.1.0"

from sharkmind.core import AdvisorCore, build_advisor
from sharkmind.config import ConfigError, load_advisor_config
from sharkmind.context_builder import build_context
from sharkmind.keywords import FINANCIAL_TERMS, extract_keywords
from sharkmind.knowledge import KnowledgeRetriever
from sharkmind.metering import UsageMeter
from sharkmind.providers import ProviderDispatcher, ProviderError, ProviderResponseError
from sharkmind.router import select_provider
from sharkmind.storage import SQLiteAdvisorStore
from sharkmind.models import (
    AdvisorConfig,
    ConversationTurn,
    CreditAccount,
    DispatchOutcome,
    DispatchResult,
    DispatchStatus,
    KnowledgeSnippet,
    Mode,
    ModeProfile,
    Plan,
    ProviderProfile,
    Role,
    RoutingPolicy,
    UsageRecord,
)

# Logging
from sharkmind.logging_setup import setup_logging, setup_logging_from_env

__all__ = [
    # Core
    "AdvisorCore",
    "build_advisor",
    # Components
    "extract_keywords",
    "FINANCIAL_TERMS",
    "KnowledgeRetriever",
    "build_context",
    "select_provider",
    "ProviderDispatcher",
    "ProviderError",
    "ProviderResponseError",
    "UsageMeter",
    "SQLiteAdvisorStore",
    # Config
    "load_advisor_config",
    "ConfigError",
    # Models
    "AdvisorConfig",
    "ConversationTurn",
    "CreditAccount",
    "DispatchOutcome",
    "DispatchResult",
    "DispatchStatus",
    "KnowledgeSnippet",
    "Mode",
    "ModeProfile",
    "Plan",
    "ProviderProfile",
    "Role",
    "RoutingPolicy",
    "UsageRecord",
    # Logging
    "setup_logging",
    "setup_logging_from_env",
]
