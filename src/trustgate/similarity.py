"""Name-similarity detection for typosquatting.

Provides a Levenshtein edit distance using the Wagner-Fischer algorithm with
a single DP row (memory proportional to the shorter string) and optional
early termination, plus a helper that compares a package name against a
corpus of well-known names.

Early termination contract for ``levenshtein_distance(a, b, max_distance=k)``:

- If the true distance is < k, the exact distance is returned.
- If the true distance is >= k, some value >= k is returned.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

# Names closer than this to a popular package are treated as typosquats.
DEFAULT_TYPOSQUAT_DISTANCE: int = 3


def levenshtein_distance(a: str, b: str, max_distance: int | None = None) -> int:
    """Compute the edit distance between two strings.

    Args:
        a: First string.
        b: Second string.
        max_distance: Optional threshold. Once the distance is known to be at
            least this value, computation stops and a value >= threshold is
            returned.

    Returns:
        Number of single-character insertions, deletions and substitutions
        needed to turn ``a`` into ``b``.
    """
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    # Keep the row as short as possible.
    if len(a) > len(b):
        a, b = b, a

    a_len = len(a)
    b_len = len(b)

    if max_distance is not None and b_len - a_len >= max_distance:
        return b_len - a_len

    prev_row = list(range(a_len + 1))
    curr_row = [0] * (a_len + 1)

    for j in range(1, b_len + 1):
        curr_row[0] = j
        row_min = j
        b_char = b[j - 1]

        for i in range(1, a_len + 1):
            cost = 0 if a[i - 1] == b_char else 1
            value = min(
                prev_row[i] + 1,         # deletion
                curr_row[i - 1] + 1,     # insertion
                prev_row[i - 1] + cost,  # substitution
            )
            curr_row[i] = value
            if value < row_min:
                row_min = value

        # Row minimums never decrease, so the final distance is at least this.
        if max_distance is not None and row_min >= max_distance:
            return row_min

        prev_row, curr_row = curr_row, prev_row

    return prev_row[a_len]


@dataclass(frozen=True)
class SimilarName:
    """A corpus name that is suspiciously close to a requested name.

    Attributes:
        name: The well-known package name from the corpus.
        distance: Edit distance between the requested name and ``name``.
    """

    name: str
    distance: int


def scaled_threshold(candidate: str, max_distance: int = DEFAULT_TYPOSQUAT_DISTANCE) -> int:
    """Exclusive distance bound for one corpus name, shrunk for short names.

    Names of three characters or fewer only match at distance 1; longer names
    get one more edit per extra character, up to ``max_distance``. Under a flat
    bound of 3, every short name would be within reach of every other one.
    """
    return min(max_distance, max(2, len(candidate) - 1))


def find_similar_names(
    name: str,
    corpus: Iterable[str],
    *,
    max_distance: int = DEFAULT_TYPOSQUAT_DISTANCE,
    scale_short_names: bool = False,
) -> list[SimilarName]:
    """Return corpus entries within ``max_distance`` edits of ``name``.

    An exact match is never reported: a package that *is* a popular package
    is not a typosquat of it. Results are ordered by distance, then name.

    Args:
        name: Requested package name.
        corpus: Well-known package names to compare against.
        max_distance: Exclusive upper bound on the reported distance.
        scale_short_names: Apply ``scaled_threshold`` per corpus name instead
            of the flat ``max_distance``.

    Returns:
        Sorted list of close matches (empty if none, or if ``name`` is itself
        in the corpus).
    """
    candidates = list(dict.fromkeys(corpus))
    if name in candidates:
        return []

    matches = []
    for candidate in candidates:
        bound = scaled_threshold(candidate, max_distance) if scale_short_names else max_distance
        distance = levenshtein_distance(name, candidate, bound)
        if distance < bound:
            matches.append(SimilarName(name=candidate, distance=distance))
    return sorted(matches, key=lambda m: (m.distance, m.name))
