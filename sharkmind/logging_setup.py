"""Centralized nfo logging configuration for SharkMind.

Routes every ``sharkmind.*`` stdlib logger through nfo sinks so provider failures,
retrieval degradation and metering problems show up in one place.

Usage:
    from sharkmind.logging_setup import setup_logging, setup_logging_from_env

    setup_logging("DEBUG")             # call once at startup
    setup_logging_from_env()           # or resolve level, markdown file and format from .env
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

from nfo.configure import configure
from nfo.logger import Logger
from nfo.sinks import MarkdownSink
from nfo.terminal import TerminalSink

from sharkmind.env_config import EnvConfig, get_env_config

_logger: Optional[Logger] = None

_NOISY_LOGGERS = ("LiteLLM", "litellm", "httpx", "httpcore")
_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_TERMINAL_FORMATS = ("markdown", "color", "toon", "ascii")


def setup_logging(
    level: str = "INFO",
    markdown_file: str | None = None,
    terminal_format: str = "color",
) -> Logger:
    """Initialize nfo logging for the whole service.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL (case-insensitive; unknown → INFO).
        markdown_file: Optional path of a markdown log file (e.g. "sharkmind.log.md").
        terminal_format: Terminal sink format: "markdown", "color", "toon" or "ascii".
    """
    global _logger

    if _logger is not None:
        return _logger

    sinks = [
        TerminalSink(
            format=_resolve_format(terminal_format),
            stream=sys.stderr,
            show_args=False,
            show_return=False,
            show_duration=True,
            show_traceback=True,
        ),
    ]
    if markdown_file:
        sinks.append(MarkdownSink(file_path=markdown_file))

    _logger = configure(
        name="sharkmind",
        level=_resolve_level(level),
        sinks=sinks,
        bridge_stdlib=True,
        propagate_stdlib=False,
        env_prefix="SHARKMIND_NFO_",
        version=_get_version(),
        force=True,
    )

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return _logger


def setup_logging_from_env(env: EnvConfig | None = None) -> Logger:
    """Initialize logging from SHARKMIND_LOG_LEVEL, SHARKMIND_NFO_LOG_FILE and SHARKMIND_NFO_FORMAT.

    Used by the CLI and by ``create_app`` when the server builds its own advisor.
    """
    if env is None:
        env = get_env_config()
    return setup_logging(
        level=env.log_level,
        markdown_file=env.log_file,
        terminal_format=env.log_format,
    )


def _resolve_level(level: str) -> str:
    name = (level or "").strip().upper()
    if name == "WARN":
        name = "WARNING"
    if name not in _LEVELS:
        logging.getLogger("sharkmind").warning(f"Unknown log level '{level}', using INFO")
        return "INFO"
    return name


def _resolve_format(terminal_format: str) -> str:
    if terminal_format not in _TERMINAL_FORMATS:
        logging.getLogger("sharkmind").warning(f"Unknown terminal format '{terminal_format}', using color")
        return "color"
    return terminal_format


def _get_version() -> str:
    try:
        from sharkmind import __version__
        return __version__
    except Exception:
        return "unknown"
