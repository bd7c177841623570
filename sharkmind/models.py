"""Data models for SharkMind — all inputs/outputs of the orchestration core are Pydantic v2 validated.

Configuration models (ProviderProfile, ModeProfile, AdvisorConfig) are frozen: they are
built once at startup and injected into AdvisorCore. Per-request models (DispatchResult,
UsageRecord) are created fresh for every chat message.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


# ============================================================
# Enums
# ============================================================

class Mode(str, enum.Enum):
    """Advisory persona selected by the user."""
    CONSULTA = "consulta"
    DAYTRADE = "daytrade"
    PORTFOLIO = "portfolio"
    ROBOT = "robot"


class Role(str, enum.Enum):
    USER = "user"
    ASSISTANT = "assistant"


class Plan(str, enum.Enum):
    FREE = "free"
    BASIC = "basic"
    PREMIUM = "premium"
    UNLIMITED = "unlimited"


METERED_PLANS = frozenset({Plan.FREE, Plan.BASIC})
CREDITS_PER_MESSAGE = 1


class DispatchStatus(str, enum.Enum):
    OK = "ok"
    DEGRADED = "degraded"


# ============================================================
# Conversation + knowledge (sourced from external stores)
# ============================================================

class ConversationTurn(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str


class KnowledgeSnippet(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    content: str
    category: str = ""
    subcategory: str = ""
    relevance_score: float = 1.0


# ============================================================
# Static configuration
# ============================================================

class ProviderProfile(BaseModel):
    """One configured LLM provider endpoint."""
    model_config = ConfigDict(frozen=True)

    id: str
    endpoint_url: str
    model_name: str
    max_tokens: int = 4000
    wire_format: Literal["chat_completions", "messages"] = "chat_completions"
    api_key_var: str = ""
    temperature: float | None = None
    timeout: float = 30.0


class ModeProfile(BaseModel):
    """Instruction template and canned fallback answer for a mode."""
    model_config = ConfigDict(frozen=True)

    mode: Mode
    instruction: str
    fallback_content: str
    fallback_tokens: int = Field(default=50, ge=0)


class RoutingPolicy(BaseModel):
    """Provider ids used by the selector for each kind of request."""
    model_config = ConfigDict(frozen=True)

    code_provider: str = "openai"
    analysis_provider: str = "claude"
    reasoning_provider: str = "deepseek"
    default_provider: str = "openai"

    def provider_ids(self) -> set[str]:
        return {self.code_provider, self.analysis_provider, self.reasoning_provider, self.default_provider}


class AdvisorConfig(BaseModel):
    """Immutable provider/prompt table injected into AdvisorCore."""
    model_config = ConfigDict(frozen=True)

    providers: dict[str, ProviderProfile]
    modes: dict[Mode, ModeProfile]
    routing: RoutingPolicy = Field(default_factory=RoutingPolicy)
    suggestions: dict[Mode, list[str]] = Field(default_factory=dict)
    history_window: int = Field(default=5, ge=0)
    knowledge_limit: int = Field(default=5, ge=0)
    default_token_estimate: int = Field(default=100, ge=0)


# ============================================================
# Per-request results
# ============================================================

FALLBACK_PROVIDER_ID = "fallback"


class DispatchResult(BaseModel):
    """Uniform answer returned to the caller, from a provider or from the fallback path."""
    model_config = ConfigDict(frozen=True)

    content: str
    provider_id: str
    tokens_used: int = Field(default=0, ge=0)
    model_name: str

    @property
    def is_fallback(self) -> bool:
        return self.provider_id == FALLBACK_PROVIDER_ID


class DispatchOutcome(BaseModel):
    """Result of a single provider call: ``ok`` carries a result, ``degraded`` an error."""
    model_config = ConfigDict(frozen=True)

    status: DispatchStatus
    provider_id: str
    result: DispatchResult | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == DispatchStatus.OK

    @classmethod
    def success(cls, result: DispatchResult) -> "DispatchOutcome":
        return cls(status=DispatchStatus.OK, provider_id=result.provider_id, result=result)

    @classmethod
    def degraded(cls, provider_id: str, error: str) -> "DispatchOutcome":
        return cls(status=DispatchStatus.DEGRADED, provider_id=provider_id, error=error)


# ============================================================
# Metering
# ============================================================

class CreditAccount(BaseModel):
    user_id: int
    plan: Plan = Plan.FREE
    credits: int = 0

    @property
    def is_metered(self) -> bool:
        return self.plan in METERED_PLANS


class UsageRecord(BaseModel):
    """Single audit entry written after each metered chat message."""
    model_config = ConfigDict(frozen=True)

    user_id: int
    provider_id: str
    model_name: str = ""
    tokens_used: int = 0
    estimated_cost: float = 0.0
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ConversationStats(BaseModel):
    """Per-user totals behind the chat stats endpoint."""
    total_messages: int = 0
    total_conversations: int = 0
    credits_used: int = 0
    favorite_mode: Mode = Mode.CONSULTA
