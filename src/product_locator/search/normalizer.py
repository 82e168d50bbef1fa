"""Query normalization: trim, lowercase, and whitespace tokenization."""

from __future__ import annotations

import re

from product_locator.domain.search import SearchQuery


_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    return text.strip().lower()


def tokenize(normalized_text: str) -> tuple[str, ...]:
    """Split on runs of whitespace, dropping empty tokens."""
    return tuple(token for token in _WHITESPACE.split(normalized_text) if token)


def analyze_query(raw_text: str, store_id: int) -> SearchQuery:
    """Build the request-scoped query value object for ``raw_text``."""
    normalized = normalize_text(raw_text)
    return SearchQuery(
        raw_text=raw_text,
        store_id=store_id,
        normalized_text=normalized,
        tokens=tokenize(normalized),
    )
