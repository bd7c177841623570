"""ProviderDispatcher — one HTTP call to the selected LLM provider, with a safe fallback.

Each provider speaks one of two wire formats. A ProviderAdapter per format builds the
request and normalises the response into a DispatchResult, so call sites never branch
on response shapes:

    chat_completions  OpenAI / DeepSeek  choices[0].message.content, usage.total_tokens
    messages          Anthropic          content[0].text, usage.input_tokens + output_tokens

``try_dispatch`` returns an explicit DispatchOutcome (ok / degraded). ``dispatch`` turns a
degraded outcome into the mode's canned fallback answer, so it never raises.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Mapping
from typing import Any

import httpx
from nfo.decorators import log_call

from sharkmind.models import (
    FALLBACK_PROVIDER_ID,
    AdvisorConfig,
    DispatchOutcome,
    DispatchResult,
    Mode,
    ProviderProfile,
)

logger = logging.getLogger("sharkmind.providers")

ANTHROPIC_VERSION = "2023-06-01"


class ProviderError(Exception):
    """A provider call could not produce an answer."""

    def __init__(self, provider_id: str, detail: str):
        self.provider_id = provider_id
        self.detail = detail
        super().__init__(f"{provider_id}: {detail}")


class ProviderResponseError(ProviderError):
    """The provider answered, but not in the expected shape."""


# ============================================================
# Wire-format adapters
# ============================================================

class ProviderAdapter:
    """Builds requests for, and parses responses from, one wire format."""

    wire_format = ""

    def headers(self, profile: ProviderProfile, api_key: str) -> dict[str, str]:
        raise NotImplementedError

    def payload(self, profile: ProviderProfile, context: str) -> dict[str, Any]:
        raise NotImplementedError

    def extract(self, data: Any) -> tuple[Any, int | None]:
        """Return (text, token count or None) from a decoded response body."""
        raise NotImplementedError

    def parse(self, profile: ProviderProfile, data: Any, default_tokens: int) -> DispatchResult:
        try:
            content, tokens = self.extract(data)
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderResponseError(profile.id, f"unexpected response shape ({type(e).__name__}: {e})") from e

        if not isinstance(content, str) or not content.strip():
            raise ProviderResponseError(profile.id, "empty completion")

        return DispatchResult(
            content=content,
            provider_id=profile.id,
            tokens_used=tokens if tokens is not None and tokens >= 0 else default_tokens,
            model_name=profile.model_name,
        )


class ChatCompletionsAdapter(ProviderAdapter):
    wire_format = "chat_completions"

    def headers(self, profile: ProviderProfile, api_key: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}

    def payload(self, profile: ProviderProfile, context: str) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": profile.model_name,
            "messages": [{"role": "user", "content": context}],
            "max_tokens": profile.max_tokens,
        }
        if profile.temperature is not None:
            body["temperature"] = profile.temperature
        return body

    def extract(self, data: Any) -> tuple[Any, int | None]:
        content = data["choices"][0]["message"]["content"]
        usage = data.get("usage") or {}
        total = usage.get("total_tokens") if isinstance(usage, dict) else None
        return content, total if isinstance(total, int) else None


class MessagesAdapter(ProviderAdapter):
    wire_format = "messages"

    def headers(self, profile: ProviderProfile, api_key: str) -> dict[str, str]:
        return {
            "x-api-key": api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "Content-Type": "application/json",
        }

    def payload(self, profile: ProviderProfile, context: str) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": profile.model_name,
            "max_tokens": profile.max_tokens,
            "messages": [{"role": "user", "content": context}],
        }
        if profile.temperature is not None:
            body["temperature"] = profile.temperature
        return body

    def extract(self, data: Any) -> tuple[Any, int | None]:
        content = data["content"][0]["text"]
        usage = data.get("usage") or {}
        if not isinstance(usage, dict):
            return content, None
        prompt, completion = usage.get("input_tokens"), usage.get("output_tokens")
        if isinstance(prompt, int) and isinstance(completion, int):
            return content, prompt + completion
        return content, None


ADAPTERS: dict[str, ProviderAdapter] = {
    adapter.wire_format: adapter for adapter in (ChatCompletionsAdapter(), MessagesAdapter())
}


# ============================================================
# Dispatcher
# ============================================================

class ProviderDispatcher:
    """Issues exactly one provider call per request and degrades to a canned answer on failure.

    Usage:
        dispatcher = ProviderDispatcher(config)
        outcome = await dispatcher.try_dispatch("claude", context)        # ok / degraded
        result = await dispatcher.dispatch("claude", context, Mode.DAYTRADE)  # never raises
    """

    def __init__(
        self,
        config: AdvisorConfig,
        api_keys: Mapping[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config
        self._api_keys = api_keys
        self._transport = transport

    def _api_key(self, profile: ProviderProfile) -> str:
        if not profile.api_key_var:
            return ""
        if self._api_keys is not None:
            return self._api_keys.get(profile.api_key_var, "")
        return os.getenv(profile.api_key_var, "")

    @log_call
    async def try_dispatch(self, provider_id: str, context: str) -> DispatchOutcome:
        """Call ``provider_id`` once. Failures come back as a degraded outcome, never raised."""
        profile = self.config.providers.get(provider_id)
        if profile is None:
            return self._degraded(provider_id, f"unknown provider (configured: {sorted(self.config.providers)})")

        adapter = ADAPTERS.get(profile.wire_format)
        if adapter is None:
            return self._degraded(provider_id, f"no adapter for wire format '{profile.wire_format}'")

        try:
            result = await asyncio.wait_for(self._call(profile, adapter, context), timeout=profile.timeout)
        except ProviderError as e:
            return self._degraded(provider_id, e.detail)
        except asyncio.TimeoutError:
            return self._degraded(provider_id, f"timed out after {profile.timeout:g}s")
        except httpx.HTTPStatusError as e:
            return self._degraded(provider_id, f"HTTP {e.response.status_code}: {e.response.text[:200]}")
        except httpx.HTTPError as e:
            return self._degraded(provider_id, f"transport error: {type(e).__name__}: {e}")
        except ValueError as e:
            return self._degraded(provider_id, f"invalid JSON body: {e}")
        except Exception as e:
            return self._degraded(provider_id, f"unexpected error: {type(e).__name__}: {e}")

        logger.debug(f"Provider {provider_id} answered with {result.tokens_used} tokens")
        return DispatchOutcome.success(result)

    async def _call(self, profile: ProviderProfile, adapter: ProviderAdapter, context: str) -> DispatchResult:
        api_key = self._api_key(profile)
        if profile.api_key_var and not api_key:
            raise ProviderError(profile.id, f"{profile.api_key_var} not set")

        async with httpx.AsyncClient(transport=self._transport, timeout=profile.timeout) as client:
            response = await client.post(
                profile.endpoint_url,
                json=adapter.payload(profile, context),
                headers=adapter.headers(profile, api_key),
            )
            response.raise_for_status()
            data = response.json()

        return adapter.parse(profile, data, self.config.default_token_estimate)

    def _degraded(self, provider_id: str, error: str) -> DispatchOutcome:
        logger.warning(f"Provider {provider_id} failed: {error}")
        return DispatchOutcome.degraded(provider_id, error)

    def fallback(self, mode: Mode | str) -> DispatchResult:
        """Canned, mode-specific answer used when the provider call is degraded."""
        profile = self.config.modes[Mode(mode)]
        return DispatchResult(
            content=profile.fallback_content,
            provider_id=FALLBACK_PROVIDER_ID,
            tokens_used=profile.fallback_tokens,
            model_name=FALLBACK_PROVIDER_ID,
        )

    async def dispatch(self, provider_id: str, context: str, mode: Mode | str) -> DispatchResult:
        """Fail-closed dispatch: a provider answer, or the mode's fallback answer."""
        outcome = await self.try_dispatch(provider_id, context)
        if outcome.ok and outcome.result is not None:
            return outcome.result
        return self.fallback(mode)
