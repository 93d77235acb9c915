"""
Edit-distance similarity for duplicate detection.

Titles are compared fuzzily; URLs are compared exactly after normalization.
"""

from typing import Optional

from .normalize import normalize_job_title, normalize_url

DEFAULT_TITLE_THRESHOLD = 0.85


def levenshtein_distance(a: str, b: str) -> int:
    """Minimum number of single-character edits turning ``a`` into ``b``."""
    rows = len(a) + 1
    cols = len(b) + 1
    table = [[0] * cols for _ in range(rows)]
    for i in range(rows):
        table[i][0] = i
    for j in range(cols):
        table[0][j] = j

    for i in range(1, rows):
        for j in range(1, cols):
            cost = 0 if a[i - 1] == b[j - 1] else 1
            table[i][j] = min(
                table[i - 1][j] + 1,  # deletion
                table[i][j - 1] + 1,  # insertion
                table[i - 1][j - 1] + cost,  # substitution
            )
    return table[-1][-1]


def calculate_similarity(a: str, b: str) -> float:
    """Similarity ratio in [0, 1]; 1.0 for two empty strings."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return (longest - levenshtein_distance(a, b)) / longest


def are_job_titles_similar(
    a: Optional[str],
    b: Optional[str],
    threshold: float = DEFAULT_TITLE_THRESHOLD,
) -> bool:
    norm_a = normalize_job_title(a)
    norm_b = normalize_job_title(b)
    # Missing titles never match each other
    if not norm_a or not norm_b:
        return False
    if norm_a == norm_b:
        return True
    return calculate_similarity(norm_a, norm_b) >= threshold


def are_urls_similar(a: Optional[str], b: Optional[str]) -> bool:
    norm_a = normalize_url(a)
    norm_b = normalize_url(b)
    if not norm_a or not norm_b:
        return False
    return norm_a == norm_b
