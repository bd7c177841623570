"""Provider selection — a static, first-match-wins heuristic over mode and message text."""

from __future__ import annotations

from sharkmind.models import Mode, RoutingPolicy

CODE_TERMS = ("código", "ntfl")
ANALYSIS_TERMS = ("análise técnica",)
REASONING_TERMS = ("previsão", "tendência")

DEFAULT_ROUTING = RoutingPolicy()


def _mentions(text: str, terms: tuple[str, ...]) -> bool:
    return any(term in text for term in terms)


def select_provider(message: str, mode: Mode | str, policy: RoutingPolicy = DEFAULT_ROUTING) -> str:
    """Map (message, mode) to exactly one provider id.

    Rules, in order:
        1. robot mode or code terms      -> code provider
        2. daytrade mode or "análise técnica" -> analysis provider
        3. forecast / trend terms        -> reasoning provider
        4. anything else                 -> default provider
    """
    mode = Mode(mode)
    text = message.lower()

    if mode == Mode.ROBOT or _mentions(text, CODE_TERMS):
        return policy.code_provider
    if mode == Mode.DAYTRADE or _mentions(text, ANALYSIS_TERMS):
        return policy.analysis_provider
    if _mentions(text, REASONING_TERMS):
        return policy.reasoning_provider
    return policy.default_provider
