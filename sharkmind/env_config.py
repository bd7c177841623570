"""Environment configuration — .env loading and provider key discovery.

Provider keys use the LiteLLM names (OPENAI_API_KEY, ANTHROPIC_API_KEY, DEEPSEEK_API_KEY);
service settings use the SHARKMIND_ prefix.

Usage:
    from sharkmind.env_config import get_env_config, check_providers

    cfg = get_env_config()
    print(cfg.db_path)        # ".sharkmind/sharkmind.db"
    status = check_providers(cfg)
    # {"openai": {"status": "configured", ...}, "claude": {"status": "no_key", ...}, ...}
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger("sharkmind.env_config")

PROVIDER_KEY_MAP: dict[str, dict[str, str]] = {
    "openai": {"key_var": "OPENAI_API_KEY", "default_base": "https://api.openai.com/v1"},
    "claude": {"key_var": "ANTHROPIC_API_KEY", "default_base": "https://api.anthropic.com/v1"},
    "deepseek": {"key_var": "DEEPSEEK_API_KEY", "default_base": "https://api.deepseek.com/v1"},
}


@dataclass
class EnvConfig:
    """Resolved environment configuration."""
    # Auth (optional bearer token in front of the HTTP API)
    master_key: str | None = None

    # Server
    host: str = "0.0.0.0"
    port: int = 8080

    # Storage / config
    db_path: str = ".sharkmind/sharkmind.db"
    config_path: str | None = None

    # Logging
    log_level: str = "info"
    log_file: str | None = None
    log_format: str = "color"

    # Provider calls
    timeout: float = 30.0

    # Provider key status (resolved)
    providers: dict[str, dict[str, Any]] = field(default_factory=dict)


def load_dotenv_if_available(path: str | Path | None = None) -> None:
    """Load a .env file if it exists. Existing environment variables win."""
    candidates = [path] if path else [".env", Path.home() / ".sharkmind" / ".env"]

    for candidate in candidates:
        if candidate and Path(candidate).is_file():
            logger.debug(f"Loading .env from {candidate}")
            with open(candidate) as f:
                for line in f:
                    line = line.strip()
                    if not line or line.startswith("#") or "=" not in line:
                        continue
                    key, _, value = line.partition("=")
                    key = key.strip()
                    value = value.strip().strip("'\"")
                    if key and value and key not in os.environ:
                        os.environ[key] = value
            return


def get_env_config(dotenv_path: str | Path | None = None) -> EnvConfig:
    """Read all settings from the environment.

    Priority: CLI args > env vars > .env file > defaults
    """
    load_dotenv_if_available(dotenv_path)

    providers: dict[str, dict[str, Any]] = {}
    for name, info in PROVIDER_KEY_MAP.items():
        providers[name] = {
            "has_key": bool(os.getenv(info["key_var"], "")),
            "key_var": info["key_var"],
            "base_url": info["default_base"],
        }

    return EnvConfig(
        master_key=os.getenv("SHARKMIND_MASTER_KEY", None) or None,
        host=os.getenv("SHARKMIND_HOST", "0.0.0.0"),
        port=int(os.getenv("SHARKMIND_PORT", "8080")),
        db_path=os.getenv("SHARKMIND_DB_PATH", ".sharkmind/sharkmind.db"),
        config_path=os.getenv("SHARKMIND_CONFIG", None) or None,
        log_level=os.getenv("SHARKMIND_LOG_LEVEL", "info"),
        log_file=os.getenv("SHARKMIND_NFO_LOG_FILE", None) or None,
        log_format=os.getenv("SHARKMIND_NFO_FORMAT", "color"),
        timeout=float(os.getenv("SHARKMIND_TIMEOUT", "30")),
        providers=providers,
    )


def check_providers(env: EnvConfig | None = None) -> dict[str, dict[str, Any]]:
    """Report which providers have an API key configured.

    Returns dict of provider_id → {status, key_var, base_url, detail}.
    """
    cfg = env or get_env_config()
    results: dict[str, dict[str, Any]] = {}

    for name, info in cfg.providers.items():
        if info["has_key"]:
            results[name] = {
                "status": "configured",
                "key_var": info["key_var"],
                "base_url": info["base_url"],
                "detail": f"{info['key_var']} set",
            }
        else:
            results[name] = {
                "status": "no_key",
                "key_var": info["key_var"],
                "base_url": info["base_url"],
                "detail": f"{info['key_var']} not set (requests fall back to canned answers)",
            }

    return results
