"""Advisor configuration loading — YAML file → frozen AdvisorConfig.

The packaged ``configs/advisor.yaml`` is used unless a path is given
(CLI ``--config`` or ``SHARKMIND_CONFIG``).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from sharkmind.models import AdvisorConfig, Mode, ModeProfile, ProviderProfile, RoutingPolicy
from sharkmind.prompt_registry import ModePromptRegistry, PromptRenderError

logger = logging.getLogger("sharkmind.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "configs" / "advisor.yaml"


class ConfigError(ValueError):
    """Raised when the advisor configuration is incomplete or inconsistent."""


def load_advisor_config(path: str | Path | None = None, timeout: float | None = None) -> AdvisorConfig:
    """Load and validate the advisor config.

    Args:
        path: YAML file; defaults to the packaged advisor.yaml.
        timeout: Per-provider timeout (seconds) applied to every profile that does not set one.

    Raises:
        ConfigError: On a missing file, a mode without prompts, or routing to an unknown provider.
    """
    config_path = Path(path) if path else DEFAULT_CONFIG_PATH
    if not config_path.is_file():
        raise ConfigError(f"Advisor config not found: {config_path}")

    with open(config_path, encoding="utf-8") as f:
        raw: dict[str, Any] = yaml.safe_load(f) or {}

    try:
        providers = _parse_providers(raw.get("providers") or {}, timeout)
        routing = RoutingPolicy(**(raw.get("routing") or {}))
    except (ValidationError, TypeError) as e:
        raise ConfigError(f"Invalid provider/routing config in {config_path}: {e}") from e

    unknown = sorted(routing.provider_ids() - providers.keys())
    if unknown:
        raise ConfigError(f"Routing refers to unknown providers {unknown}; configured: {sorted(providers)}")

    modes = _render_modes(ModePromptRegistry(config_path), instruments=raw.get("instruments") or [])

    suggestions: dict[Mode, list[str]] = {}
    valid_modes = {m.value for m in Mode}
    for name, items in (raw.get("suggestions") or {}).items():
        if name in valid_modes:
            suggestions[Mode(name)] = [str(s) for s in items or []]

    try:
        config = AdvisorConfig(
            providers=providers,
            modes=modes,
            routing=routing,
            suggestions=suggestions,
            history_window=raw.get("history_window", 5),
            knowledge_limit=raw.get("knowledge_limit", 5),
            default_token_estimate=raw.get("default_token_estimate", 100),
        )
    except ValidationError as e:
        raise ConfigError(f"Invalid advisor settings in {config_path}: {e}") from e

    logger.debug(f"Advisor config loaded from {config_path}: providers={sorted(providers)}")
    return config


def _parse_providers(raw: dict[str, Any], timeout: float | None) -> dict[str, ProviderProfile]:
    providers: dict[str, ProviderProfile] = {}
    for provider_id, data in raw.items():
        data = dict(data or {})
        data.setdefault("id", provider_id)
        if timeout is not None and "timeout" not in data:
            data["timeout"] = timeout
        providers[provider_id] = ProviderProfile(**data)
    if not providers:
        raise ConfigError("No providers configured")
    return providers


def _render_modes(registry: ModePromptRegistry, **variables: Any) -> dict[Mode, ModeProfile]:
    errors = registry.validate()
    if errors:
        raise ConfigError("; ".join(errors))

    modes: dict[Mode, ModeProfile] = {}
    for mode in Mode:
        entry = registry.get_entry(mode)
        try:
            modes[mode] = ModeProfile(
                mode=mode,
                instruction=registry.get(mode, **variables),
                fallback_content=registry.get_fallback(mode, **variables),
                fallback_tokens=entry.fallback_tokens,
            )
        except PromptRenderError as e:
            raise ConfigError(f"Prompt for mode '{mode.value}' failed to render: {e}") from e
        except ValidationError as e:
            raise ConfigError(f"Invalid profile for mode '{mode.value}': {e}") from e
    return modes
