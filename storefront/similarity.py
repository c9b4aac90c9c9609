from __future__ import annotations

from rapidfuzz.distance import Levenshtein


def edit_distance(s1: str, s2: str) -> int:
    """
    Levenshtein distance: single-character insertions, deletions and
    substitutions, each costing 1.
    """
    return Levenshtein.distance(s1, s2)


def similarity(a: str, b: str) -> float:
    """
    Normalised edit similarity in [0, 1] over the lower-cased strings:
    (maxLen - distance) / maxLen. Two empty strings are identical (1.0).

      similarity("kitten", "sitting") -> 4/7
    """
    return Levenshtein.normalized_similarity((a or "").lower(), (b or "").lower())
