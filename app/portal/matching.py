"""
Text normalization and the approximate similarity score used by duplicate checks.

The score is a cheap positional heuristic, not an edit distance:

1. Normalize both inputs (trim, lowercase, collapse whitespace).
2. Identical normalized forms score 1.0 (this includes two empty strings).
3. If either form contains the other, score 0.9.
4. Otherwise count positions (over the shorter string) where characters differ
   and add the absolute length difference.
5. Raw score is ``1 - mismatches / max_len``.
6. A mismatch count of at most 2 on strings longer than 2 characters is floored
   at 0.85.

Insertions near the start of a string shift every later position, so
"Xcrash barrier" vs "crash barrier" only scores high because of containment;
"crash barier" vs "crash barrier" scores low. Do not swap in an edit distance.
"""
from __future__ import annotations

import re
from typing import Any

_WHITESPACE_RE = re.compile(r"\s+")

EXACT_SCORE = 1.0
CONTAINMENT_SCORE = 0.9
NEAR_MATCH_FLOOR = 0.85
NEAR_MATCH_MAX_MISMATCHES = 2


def normalize_text(text: Any) -> str:
    """Trim, lowercase and collapse whitespace. Non-strings normalize to ''."""
    if not isinstance(text, str) or not text:
        return ""
    return _WHITESPACE_RE.sub(" ", text.strip().lower())


def positional_mismatches(s1: str, s2: str) -> int:
    mismatches = sum(1 for a, b in zip(s1, s2) if a != b)
    return mismatches + abs(len(s1) - len(s2))


def similarity(a: Any, b: Any) -> float:
    s1 = normalize_text(a)
    s2 = normalize_text(b)
    if s1 == s2:
        return EXACT_SCORE
    if s1 in s2 or s2 in s1:
        return CONTAINMENT_SCORE

    max_len = max(len(s1), len(s2))
    if max_len == 0:
        return EXACT_SCORE

    distance = positional_mismatches(s1, s2)
    score = 1 - (distance / max_len)
    if distance <= NEAR_MATCH_MAX_MISMATCHES and max_len > 2:
        return max(score, NEAR_MATCH_FLOOR)
    return score


def contains_normalized(haystack: Any, needle: Any) -> bool:
    """Raw substring containment on normalized forms (no scoring)."""
    n = normalize_text(needle)
    if not n:
        return False
    return n in normalize_text(haystack)


def fingerprint(*parts: Any) -> str:
    """Normalized key over several fields, e.g. for an exact-match unique index."""
    return "|".join(normalize_text(p) for p in parts)
