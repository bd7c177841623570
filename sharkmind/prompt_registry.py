"""ModePromptRegistry — loads per-mode instructions and fallback answers from YAML, renders with Jinja2.

Prompts live in the ``prompts:`` section of ``configs/advisor.yaml``:

    prompts:
      daytrade:
        system: "Especialista em futuros da B3 ({{ instruments | join(', ') }})..."
        fallback: "Sistema de análise técnica temporariamente indisponível..."
        fallback_tokens: 50
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from jinja2 import ChainableUndefined, Environment, TemplateSyntaxError, UndefinedError

from sharkmind.models import Mode

logger = logging.getLogger("sharkmind.prompt_registry")

_DEFAULT_PROMPTS_PATH = Path(__file__).parent / "configs" / "advisor.yaml"


class PromptNotFoundError(KeyError):
    """Raised when a mode has no prompt entry."""


class PromptRenderError(ValueError):
    """Raised when a prompt template fails to render."""


class PromptEntry:
    """Instruction template and canned fallback for one mode."""

    __slots__ = ("mode", "system_template", "fallback_template", "fallback_tokens")

    def __init__(self, mode: Mode, system_template: str, fallback_template: str = "", fallback_tokens: int = 50):
        self.mode = mode
        self.system_template = system_template
        self.fallback_template = fallback_template
        self.fallback_tokens = fallback_tokens

    def __repr__(self) -> str:
        return f"PromptEntry(mode={self.mode.value!r}, fallback_tokens={self.fallback_tokens})"


class ModePromptRegistry:
    """Loads mode prompts from YAML, caches them, renders Jinja2 variables.

    Usage:
        registry = ModePromptRegistry()
        instruction = registry.get(Mode.DAYTRADE, instruments=["WINFUT", "INDFUT"])
        fallback = registry.get_fallback(Mode.DAYTRADE)
    """

    def __init__(self, prompts_path: Path | str | None = None):
        self._path = Path(prompts_path) if prompts_path else _DEFAULT_PROMPTS_PATH
        self._entries: dict[Mode, PromptEntry] = {}
        self._jinja_env = Environment(undefined=ChainableUndefined, keep_trailing_newline=False)
        self._loaded = False

    @property
    def path(self) -> Path:
        return self._path

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self._load()

    def _load(self) -> None:
        if not self._path.exists():
            logger.warning(f"Prompts file not found: {self._path}, using empty registry")
            self._loaded = True
            return

        with open(self._path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

        for name, data in (raw.get("prompts") or {}).items():
            try:
                mode = Mode(name)
            except ValueError:
                logger.warning(f"Ignoring prompt for unknown mode '{name}' in {self._path}")
                continue
            if isinstance(data, dict):
                self._entries[mode] = PromptEntry(
                    mode=mode,
                    system_template=data.get("system", ""),
                    fallback_template=data.get("fallback", ""),
                    fallback_tokens=int(data.get("fallback_tokens", 50)),
                )
            elif isinstance(data, str):
                self._entries[mode] = PromptEntry(mode=mode, system_template=data)

        self._loaded = True
        logger.debug(f"Loaded {len(self._entries)} mode prompts from {self._path}")

    def get_entry(self, mode: Mode | str) -> PromptEntry:
        self._ensure_loaded()
        entry = self._entries.get(Mode(mode))
        if entry is None:
            raise PromptNotFoundError(f"No prompt for mode '{Mode(mode).value}'. Available: {self.list_modes()}")
        return entry

    def get(self, mode: Mode | str, **variables: Any) -> str:
        """Rendered system instruction for ``mode``."""
        return self._render(self.get_entry(mode).system_template, variables).strip()

    def get_fallback(self, mode: Mode | str, **variables: Any) -> str:
        """Rendered canned answer used when every provider call for ``mode`` fails."""
        return self._render(self.get_entry(mode).fallback_template, variables).strip()

    def list_modes(self) -> list[str]:
        self._ensure_loaded()
        return sorted(m.value for m in self._entries)

    def validate(self) -> list[str]:
        """Every mode needs a non-empty instruction and fallback. Returns error messages."""
        self._ensure_loaded()
        errors: list[str] = []

        missing = sorted(m.value for m in Mode if m not in self._entries)
        if missing:
            errors.append(f"Missing prompts for modes: {missing}")

        for mode, entry in self._entries.items():
            if not entry.system_template.strip():
                errors.append(f"Mode '{mode.value}' has empty system template")
            if not entry.fallback_template.strip():
                errors.append(f"Mode '{mode.value}' has empty fallback")
            for template in (entry.system_template, entry.fallback_template):
                try:
                    self._jinja_env.parse(template)
                except TemplateSyntaxError as e:
                    errors.append(f"Mode '{mode.value}' has invalid Jinja2 syntax: {e}")

        return errors

    def register(
        self,
        mode: Mode | str,
        system_template: str,
        fallback_template: str = "",
        fallback_tokens: int = 50,
    ) -> None:
        """Register a prompt programmatically (useful for testing)."""
        self._ensure_loaded()
        mode = Mode(mode)
        self._entries[mode] = PromptEntry(mode, system_template, fallback_template, fallback_tokens)

    def _render(self, template_str: str, variables: dict[str, Any]) -> str:
        try:
            return self._jinja_env.from_string(template_str).render(**variables)
        except UndefinedError as e:
            raise PromptRenderError(f"Missing template variable: {e}") from e
        except TemplateSyntaxError as e:
            raise PromptRenderError(f"Invalid template syntax: {e}") from e
