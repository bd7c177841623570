"""Keyword extraction for knowledge lookups.

Keeps market-instrument / technical-analysis terms and any longer word from the
user's message, in the order they first appear.
"""

from __future__ import annotations

from collections.abc import Iterable

FINANCIAL_TERMS: tuple[str, ...] = (
    "WINFUT", "INDFUT", "DOLFUT", "WDOFUT", "BITFUT",
    "bovespa", "ibovespa", "futuros", "day trade", "swing trade",
    "scalping", "breakout", "support", "resistance", "macd",
    "rsi", "bollinger", "fibonacci", "candlestick", "volume",
    "análise técnica", "análise fundamentalista", "tendência", "previsão",
)

MAX_KEYWORDS = 10
MIN_FREE_WORD_LENGTH = 5


def extract_keywords(
    text: str,
    vocabulary: Iterable[str] = FINANCIAL_TERMS,
    limit: int = MAX_KEYWORDS,
) -> list[str]:
    """Return up to ``limit`` salient tokens of ``text``.

    A token is kept when it overlaps a vocabulary term (either one contains the
    other, case-insensitively) or when it is longer than four characters.
    Duplicates are dropped case-insensitively; original casing is preserved.
    """
    terms = [t.lower() for t in vocabulary]
    keywords: list[str] = []
    seen: set[str] = set()

    for token in text.split():
        folded = token.lower()
        if folded in seen:
            continue
        if len(token) >= MIN_FREE_WORD_LENGTH or any(folded in t or t in folded for t in terms):
            seen.add(folded)
            keywords.append(token)
            if len(keywords) >= limit:
                break

    return keywords
