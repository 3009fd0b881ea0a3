from collections import Counter
from collections.abc import Sequence

from mediadex.resolution.tmdb_config import (
    CONTAINMENT_COVERAGE_STEPS,
    CONTAINMENT_PARTIAL_WEIGHT,
)
from mediadex.resolution.tmdb_normalization import to_compact_title_for_match


def create_bigrams(text: str) -> Counter[str]:
    """Count overlapping two-character windows; a one-character string is its own gram."""
    if not text:
        return Counter()
    if len(text) == 1:
        return Counter({text: 1})
    return Counter(text[index : index + 2] for index in range(len(text) - 1))


def dice_coefficient(a: str, b: str) -> float:
    """Multiset bigram Dice coefficient of two strings."""
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0
    a_bigrams = create_bigrams(a)
    b_bigrams = create_bigrams(b)
    total = sum(a_bigrams.values()) + sum(b_bigrams.values())
    if total == 0:
        return 0.0
    intersection = sum((a_bigrams & b_bigrams).values())
    return 2 * intersection / total


def containment_score(a: str, b: str) -> float:
    """Score how completely the shorter string is contained in the longer one."""
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0
    longer, shorter = (a, b) if len(a) >= len(b) else (b, a)
    if shorter not in longer:
        return 0.0

    coverage = len(shorter) / len(longer)
    for minimum_coverage, score in CONTAINMENT_COVERAGE_STEPS:
        if coverage >= minimum_coverage:
            return score
    return coverage * CONTAINMENT_PARTIAL_WEIGHT


def title_similarity(source_title: str, target_title: str) -> float:
    """Similarity in [0, 1] of two titles compared in their compact normalized form."""
    source = to_compact_title_for_match(source_title)
    target = to_compact_title_for_match(target_title)
    if not source or not target:
        return 0.0
    if source == target:
        return 1.0
    return max(containment_score(source, target), dice_coefficient(source, target))


def best_similarity_score(
    query_variants: Sequence[str],
    candidate_variants: Sequence[str],
) -> float:
    """Best similarity over every query variant and candidate variant pair."""
    best = 0.0
    for query_variant in query_variants:
        for candidate_variant in candidate_variants:
            score = title_similarity(query_variant, candidate_variant)
            if score > best:
                best = score
    return best
