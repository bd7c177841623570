"""Shared fixtures: packaged advisor config, a temp SQLite store, fake provider endpoints."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

# Keep LiteLLM on its bundled pricing table; tests must not hit the network.
os.environ.setdefault("LITELLM_LOCAL_MODEL_COST_MAP", "True")

from sharkmind.config import load_advisor_config
from sharkmind.core import AdvisorCore
from sharkmind.models import AdvisorConfig
from sharkmind.providers import ProviderDispatcher
from sharkmind.storage import SQLiteAdvisorStore

TEST_API_KEYS = {
    "OPENAI_API_KEY": "sk-openai-test",
    "ANTHROPIC_API_KEY": "sk-ant-test",
    "DEEPSEEK_API_KEY": "sk-deepseek-test",
}


def chat_completion_body(content: str = "Resposta do modelo", total_tokens: int | None = 321) -> dict[str, Any]:
    body: dict[str, Any] = {
        "id": "chatcmpl-test",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}],
    }
    if total_tokens is not None:
        body["usage"] = {"prompt_tokens": 100, "completion_tokens": total_tokens - 100, "total_tokens": total_tokens}
    return body


def messages_body(content: str = "Análise do Claude", input_tokens: int = 200, output_tokens: int = 150) -> dict[str, Any]:
    return {
        "id": "msg_test",
        "type": "message",
        "content": [{"type": "text", "text": content}],
        "usage": {"input_tokens": input_tokens, "output_tokens": output_tokens},
    }


class FakeProviders:
    """httpx handler that answers like the real providers and records every request."""

    def __init__(self, status_code: int = 200, body: Any = None):
        self.status_code = status_code
        self.body = body
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.body is not None:
            return httpx.Response(self.status_code, json=self.body)
        if "anthropic" in request.url.host:
            return httpx.Response(self.status_code, json=messages_body())
        return httpx.Response(self.status_code, json=chat_completion_body())

    @property
    def last_prompt(self) -> str:
        import json
        payload = json.loads(self.requests[-1].content)
        return payload["messages"][0]["content"]


@pytest.fixture
def config() -> AdvisorConfig:
    return load_advisor_config()


@pytest.fixture
def store(tmp_path: Path) -> SQLiteAdvisorStore:
    s = SQLiteAdvisorStore(tmp_path / "sharkmind.db")
    s.seed_knowledge()
    yield s
    s.close()


@pytest.fixture
def fake_providers() -> FakeProviders:
    return FakeProviders()


@pytest.fixture
def make_core(config: AdvisorConfig, store: SQLiteAdvisorStore) -> Callable[..., AdvisorCore]:
    """Build an AdvisorCore whose provider calls go to an httpx handler."""

    def _make(handler: Callable, cfg: AdvisorConfig | None = None, api_keys: dict[str, str] | None = None) -> AdvisorCore:
        cfg = cfg or config
        dispatcher = ProviderDispatcher(
            cfg,
            api_keys=TEST_API_KEYS if api_keys is None else api_keys,
            transport=httpx.MockTransport(handler),
        )
        return AdvisorCore(cfg, knowledge_store=store, account_store=store, audit_sink=store, dispatcher=dispatcher)

    return _make
