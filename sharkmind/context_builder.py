"""Prompt assembly: mode instruction + knowledge + recent turns + the user's message.

The section order and headers are fixed so the same inputs always give the same prompt.
"""

from __future__ import annotations

from collections.abc import Sequence

from sharkmind.models import ConversationTurn, KnowledgeSnippet, ModeProfile

KNOWLEDGE_HEADER = "Conhecimento relevante:"
HISTORY_HEADER = "Contexto da conversa:"
QUESTION_PREFIX = "Pergunta do usuário:"
RESPONSE_MARKER = "Resposta:"
DEFAULT_HISTORY_WINDOW = 5


def build_context(
    message: str,
    mode_profile: ModeProfile,
    knowledge: Sequence[KnowledgeSnippet] = (),
    history: Sequence[ConversationTurn] = (),
    history_window: int = DEFAULT_HISTORY_WINDOW,
) -> str:
    """Build the single prompt sent to the provider.

    Empty knowledge or history sections are left out entirely, header included.
    Only the last ``history_window`` turns are used, oldest first.
    """
    parts: list[str] = [mode_profile.instruction.strip() + "\n\n"]

    if knowledge:
        lines = [KNOWLEDGE_HEADER]
        lines.extend(f"- {item.title}: {item.content}" for item in knowledge)
        parts.append("\n".join(lines) + "\n\n")

    recent = list(history)[-history_window:] if history_window > 0 else []
    if recent:
        lines = [HISTORY_HEADER]
        lines.extend(f"{turn.role.value}: {turn.content}" for turn in recent)
        parts.append("\n".join(lines) + "\n\n")

    parts.append(f"{QUESTION_PREFIX} {message}\n\n{RESPONSE_MARKER}")
    return "".join(parts)
