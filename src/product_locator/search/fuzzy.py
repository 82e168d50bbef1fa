"""Trigram similarity for typo-tolerant product search.

Mirrors PostgreSQL ``pg_trgm`` semantics so rankings stay comparable with
catalogs served from Postgres:

- Text is lowercased and split into words of alphanumeric characters
- Each word is padded with two leading spaces and one trailing space
- Trigrams are the distinct 3-character windows over each padded word
- Similarity is shared trigrams over the union of both trigram sets

Properties relied on by the scorer:
- Identical strings with at least one word score 1.0
- Strings sharing no trigram score 0.0 (so does any string without words)
- The measure is symmetric and grows with trigram overlap
"""

from __future__ import annotations

import re


_WORD_PATTERN = re.compile(r"[^\W_]+")


def extract_trigrams(text: str) -> frozenset[str]:
    """Return the set of padded word trigrams for ``text``.

    Examples:
        >>> sorted(extract_trigrams("cat"))
        ['  c', ' ca', 'at ', 'cat']
        >>> extract_trigrams("--")
        frozenset()
    """
    grams: set[str] = set()
    for word in _WORD_PATTERN.findall(text.lower()):
        padded = f"  {word} "
        grams.update(padded[i : i + 3] for i in range(len(padded) - 2))
    return frozenset(grams)


def trigram_similarity(left: str, right: str) -> float:
    """Calculate trigram similarity between two strings in ``[0, 1]``.

    Examples:
        >>> trigram_similarity("apple", "apple")
        1.0
        >>> trigram_similarity("apple", "xyz")
        0.0
        >>> round(trigram_similarity("apple", "red apples"), 4)
        0.4167
    """
    left_grams = extract_trigrams(left)
    right_grams = extract_trigrams(right)
    if not left_grams or not right_grams:
        return 0.0
    shared = len(left_grams & right_grams)
    if shared == 0:
        return 0.0
    return shared / (len(left_grams) + len(right_grams) - shared)
