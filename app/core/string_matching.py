# app/core/string_matching.py

"""
Edit-distance string matching.

Absorbs minor spelling differences between names typed into the
cookie platform and names recorded by the troop (typos, nicknames).
"""

from functools import lru_cache
from typing import Optional


def levenshtein_distance(str1: Optional[str], str2: Optional[str]) -> int:
    """
    Minimum number of single-character insertions, deletions or
    substitutions needed to turn one string into the other.

    Comparison is case-insensitive. A missing string counts as empty.
    """
    return _distance((str1 or "").lower(), (str2 or "").lower())


# Only as many distinct names as there are sellers, compared against every row
@lru_cache(maxsize=65536)
def _distance(s1: str, s2: str) -> int:
    if not s1 or not s2:
        return max(len(s1), len(s2))

    if s1 == s2:
        return 0

    len1 = len(s1)
    len2 = len(s2)

    # matrix[i][j] = distance between s1[:i] and s2[:j]
    matrix = [[0] * (len2 + 1) for _ in range(len1 + 1)]
    for i in range(len1 + 1):
        matrix[i][0] = i
    for j in range(len2 + 1):
        matrix[0][j] = j

    for i in range(1, len1 + 1):
        for j in range(1, len2 + 1):
            cost = 0 if s1[i - 1] == s2[j - 1] else 1
            matrix[i][j] = min(
                matrix[i - 1][j] + 1,         # deletion
                matrix[i][j - 1] + 1,         # insertion
                matrix[i - 1][j - 1] + cost,  # substitution
            )

    return matrix[len1][len2]


def fuzzy_match(
    str1: Optional[str],
    str2: Optional[str],
    max_distance: int = 2,
) -> bool:
    """
    True if the strings are within max_distance edits of each other.

    Two missing values are considered equal; one missing value never
    matches a present one.
    """
    if not str1 or not str2:
        return not str1 and not str2
    return levenshtein_distance(str1, str2) <= max_distance
