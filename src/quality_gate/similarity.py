"""Headline similarity."""

import re
from collections import Counter

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def _bigrams(text: str) -> Counter:
    normalized = _NON_ALNUM.sub("", text.lower())
    return Counter(normalized[i:i + 2] for i in range(len(normalized) - 1))


def dice_coefficient(first: str, second: str) -> float:
    """Sorensen-Dice similarity over character bigrams, in [0, 1].

    Case, whitespace and punctuation are ignored.
    """
    if not first or not second:
        return 0.0
    a = _bigrams(first)
    b = _bigrams(second)
    total = sum(a.values()) + sum(b.values())
    if not a or not b:
        return 0.0
    overlap = sum((a & b).values())
    return 2 * overlap / total
