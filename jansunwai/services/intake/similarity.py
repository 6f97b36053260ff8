"""Order-insensitive text similarity for duplicate detection.

The score blends two overlaps on normalised text:

* Jaccard similarity of the word sets, which ignores word order.
* Sørensen-Dice coefficient of character bigrams taken per word, which
  tolerates small spelling differences ("pothole" vs "potholes").

Both lie in ``[0, 1]`` so their mean does too.  Identical texts score
exactly ``1.0``; texts sharing nothing score ``0.0``.
"""

from __future__ import annotations

import re
import unicodedata
from collections import Counter

_WORD_RE = re.compile(r"\w+", re.UNICODE)


def normalise(text: str) -> list[str]:
    """Lower-case, strip accents and punctuation, return word tokens."""
    folded = unicodedata.normalize("NFKD", text or "").casefold()
    folded = "".join(ch for ch in folded if not unicodedata.combining(ch))
    return _WORD_RE.findall(folded)


def _bigrams(tokens: list[str]) -> Counter[str]:
    grams: Counter[str] = Counter()
    for token in tokens:
        if len(token) == 1:
            grams[token] += 1
            continue
        for i in range(len(token) - 1):
            grams[token[i:i + 2]] += 1
    return grams


def token_jaccard(tokens_a: list[str], tokens_b: list[str]) -> float:
    set_a, set_b = set(tokens_a), set(tokens_b)
    union = set_a | set_b
    if not union:
        return 0.0
    return len(set_a & set_b) / len(union)


def bigram_dice(tokens_a: list[str], tokens_b: list[str]) -> float:
    grams_a, grams_b = _bigrams(tokens_a), _bigrams(tokens_b)
    total = sum(grams_a.values()) + sum(grams_b.values())
    if total == 0:
        return 0.0
    overlap = sum((grams_a & grams_b).values())
    return 2 * overlap / total


def similarity(text_a: str, text_b: str) -> float:
    """Return a similarity score in ``[0, 1]`` between two texts."""
    tokens_a = normalise(text_a)
    tokens_b = normalise(text_b)
    if not tokens_a and not tokens_b:
        return 1.0 if (text_a or "").strip() == (text_b or "").strip() else 0.0
    if not tokens_a or not tokens_b:
        return 0.0
    return (token_jaccard(tokens_a, tokens_b) + bigram_dice(tokens_a, tokens_b)) / 2
