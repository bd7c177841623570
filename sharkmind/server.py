"""SharkMind API server — chat endpoint in front of the orchestration core.

Usage:
    uvicorn --factory sharkmind.server:create_app --host 0.0.0.0 --port 8080
    # or
    sharkmind serve --port 8080

Curl:
    curl http://localhost:8080/v1/chat/message \
        -H 'Content-Type: application/json' \
        -d '{"message": "Analise o WINFUT para day trade hoje", "mode": "daytrade", "user_id": 1}'

Input validation (mode, message length) and the credit check happen here, before the core
is called. Provider failures never surface as errors: the core answers with a canned
fallback instead.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.middleware.base import BaseHTTPMiddleware

from sharkmind.core import AdvisorCore, build_advisor
from sharkmind.env_config import check_providers, get_env_config
from sharkmind.logging_setup import setup_logging_from_env
from sharkmind.models import ConversationStats, Mode, Role
from sharkmind.storage import SQLiteAdvisorStore

logger = logging.getLogger("sharkmind.server")

MAX_MESSAGE_LENGTH = 2000
TITLE_LENGTH = 50


# ============================================================
# Request / Response models
# ============================================================

class ChatMessageRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    message: str = Field(..., min_length=1, max_length=MAX_MESSAGE_LENGTH)
    mode: Mode = Mode.CONSULTA
    user_id: int | None = None
    conversation_id: int | None = None


class ChatMessageResponse(BaseModel):
    message: str = "Resposta gerada com sucesso"
    response: str
    conversation_id: int | None = None
    credits: int | None = None
    tokens_used: int = 0
    model: str = ""
    provider: str = ""


class StoredMessage(BaseModel):
    id: int
    role: Role
    content: str
    tokens_used: int = 0
    model_used: str | None = None
    created_at: str = ""


class ConversationMessagesResponse(BaseModel):
    conversation: dict[str, Any]
    messages: list[StoredMessage] = Field(default_factory=list)


class ConversationSummary(BaseModel):
    id: int
    title: str
    mode: Mode
    created_at: str = ""
    updated_at: str = ""
    message_count: int = 0


class ConversationListResponse(BaseModel):
    conversations: list[ConversationSummary] = Field(default_factory=list)


class StatsResponse(BaseModel):
    stats: ConversationStats = Field(default_factory=ConversationStats)


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = ""
    providers: list[str] = Field(default_factory=list)


# ============================================================
# Auth middleware (SHARKMIND_MASTER_KEY)
# ============================================================

class AuthMiddleware(BaseHTTPMiddleware):
    """Bearer token auth using SHARKMIND_MASTER_KEY. Skips auth if the key is not set."""

    OPEN_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}

    async def dispatch(self, request: Request, call_next):
        master_key = getattr(request.app.state, "master_key", None)
        if not master_key or request.url.path in self.OPEN_PATHS:
            return await call_next(request)

        auth = request.headers.get("Authorization", "")
        if auth.startswith("Bearer "):
            token = auth[7:].strip()
        else:
            token = request.headers.get("x-api-key", "")

        if token != master_key:
            return JSONResponse(
                status_code=401,
                content={"error": {"message": "Invalid API key", "type": "authentication_error"}},
            )

        return await call_next(request)


# ============================================================
# App factory
# ============================================================

def _conversation_title(message: str) -> str:
    return message[:TITLE_LENGTH] + "..." if len(message) > TITLE_LENGTH else message


def create_app(
    config_path: str | Path | None = None,
    db_path: str | Path | None = None,
    master_key: str | None = None,
    dotenv_path: str | None = None,
    advisor: AdvisorCore | None = None,
    store: SQLiteAdvisorStore | None = None,
) -> FastAPI:
    """Create a configured SharkMind API server.

    Reads the .env file first, then overrides with explicit args. Pass ``advisor`` and
    ``store`` to reuse already-built components (tests do this); otherwise logging is
    configured from the environment and the advisor is built here.
    """
    env = get_env_config(dotenv_path)
    if advisor is None or store is None:
        setup_logging_from_env(env)
        advisor, store = build_advisor(env, config_path=config_path, db_path=db_path)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        store.close()

    app = FastAPI(
        title="SharkMind API",
        description="Financial-advisory chat backed by multiple LLM providers.",
        version=_version(),
        lifespan=lifespan,
    )
    app.state.advisor = advisor
    app.state.store = store
    app.state.env = env
    app.state.master_key = master_key if master_key is not None else env.master_key

    app.add_middleware(AuthMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health() -> HealthResponse:
        return HealthResponse(version=_version(), providers=sorted(advisor.config.providers))

    @app.get("/v1/providers")
    async def providers() -> dict[str, Any]:
        return {"object": "list", "data": check_providers(app.state.env)}

    @app.get("/v1/chat/suggestions/{mode}")
    async def suggestions(mode: str) -> dict[str, list[str]]:
        try:
            selected = Mode(mode)
        except ValueError:
            selected = Mode.CONSULTA
        return {"suggestions": advisor.config.suggestions.get(selected, [])}

    @app.post("/v1/chat/message")
    async def chat_message(req: ChatMessageRequest) -> ChatMessageResponse:
        account = None
        if req.user_id is not None:
            account = await store.get_account(req.user_id)
            if account is None:
                raise HTTPException(status_code=404, detail="Usuário não encontrado")
            if account.is_metered and account.credits <= 0:
                raise HTTPException(status_code=402, detail={"error": "Créditos insuficientes", "credits": 0})

        conversation_id: int | None = None
        history = []
        if account is not None:
            if req.conversation_id is not None and store.get_conversation(req.conversation_id, account.user_id):
                conversation_id = req.conversation_id
                history = await store.get_recent_turns(conversation_id, advisor.config.history_window)
            else:
                conversation_id = store.create_conversation(
                    account.user_id, _conversation_title(req.message), req.mode
                )
            store.append_turn(conversation_id, Role.USER, req.message)

        result = await advisor.generate_response(
            req.message,
            req.mode,
            user_id=account.user_id if account else None,
            history=history,
        )

        credits = None
        if conversation_id is not None:
            store.append_turn(
                conversation_id,
                Role.ASSISTANT,
                result.content,
                tokens_used=result.tokens_used,
                model_used=result.model_name,
            )
        if account is not None:
            refreshed = await store.get_account(account.user_id)
            credits = refreshed.credits if refreshed else None

        return ChatMessageResponse(
            response=result.content,
            conversation_id=conversation_id,
            credits=credits,
            tokens_used=result.tokens_used,
            model=result.model_name,
            provider=result.provider_id,
        )

    async def _require_user(user_id: int) -> None:
        if await store.get_account(user_id) is None:
            raise HTTPException(status_code=404, detail="Usuário não encontrado")

    @app.get("/v1/chat/conversations")
    async def list_conversations(user_id: int) -> ConversationListResponse:
        await _require_user(user_id)
        return ConversationListResponse(
            conversations=[ConversationSummary(**c) for c in store.list_conversations(user_id)],
        )

    @app.delete("/v1/chat/conversations/{conversation_id}")
    async def delete_conversation(conversation_id: int, user_id: int) -> dict[str, str]:
        if not store.delete_conversation(conversation_id, user_id):
            raise HTTPException(status_code=404, detail="Conversa não encontrada")
        return {"message": "Conversa deletada com sucesso"}

    @app.get("/v1/chat/stats")
    async def stats(user_id: int | None = None) -> StatsResponse:
        if user_id is None:
            return StatsResponse()
        await _require_user(user_id)
        return StatsResponse(stats=store.conversation_stats(user_id))

    @app.get("/v1/chat/conversations/{conversation_id}/messages")
    async def conversation_messages(conversation_id: int, user_id: int) -> ConversationMessagesResponse:
        conversation = store.get_conversation(conversation_id, user_id)
        if conversation is None:
            raise HTTPException(status_code=404, detail="Conversa não encontrada")
        return ConversationMessagesResponse(
            conversation=conversation,
            messages=[StoredMessage(**m) for m in store.list_messages(conversation_id)],
        )

    return app


def _version() -> str:
    import sharkmind
    return sharkmind.__version__
