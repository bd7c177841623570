"""KnowledgeRetriever — bounded, ranked lookup of financial knowledge snippets."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sharkmind.models import KnowledgeSnippet, Mode
from sharkmind.storage import KnowledgeStore

logger = logging.getLogger("sharkmind.knowledge")

DEFAULT_KNOWLEDGE_LIMIT = 5


def build_like_pattern(keywords: Sequence[str]) -> str:
    """Join keywords into one SQL LIKE pattern: ``%kw1%kw2%``."""
    return f"%{'%'.join(keywords)}%"


class KnowledgeRetriever:
    """Searches the knowledge store and never lets a store failure block a response.

    Usage:
        retriever = KnowledgeRetriever(store)
        snippets = await retriever.search(["WINFUT", "tendência"], Mode.DAYTRADE)
    """

    def __init__(self, store: KnowledgeStore, limit: int = DEFAULT_KNOWLEDGE_LIMIT):
        self.store = store
        self.limit = limit

    async def search(self, keywords: Sequence[str], mode: Mode | str | None = None) -> list[KnowledgeSnippet]:
        """Return at most ``limit`` snippets, highest relevance first.

        ``mode`` is accepted for future filtering and does not change the query.
        Ties keep the order the store returned them in.
        """
        pattern = build_like_pattern(keywords)
        try:
            rows = await self.store.query(pattern, self.limit)
        except Exception as e:
            logger.warning(f"Knowledge search failed for pattern {pattern!r}: {e}")
            return []

        ranked = sorted(rows, key=lambda s: s.relevance_score, reverse=True)
        return ranked[: self.limit]
