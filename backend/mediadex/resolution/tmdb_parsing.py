from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from mediadex.resolution.tmdb_config import TMDB_SEARCH_RESULTS_PER_RESPONSE, YEAR_RE
from mediadex.resolution.tmdb_variants import build_result_title_variants

MEDIA_TYPES = ("movie", "tv")


@dataclass
class SearchCandidate:
    id: int
    media_type: str
    title_variants: list[str] = field(default_factory=list)
    year: str = ""


def parse_positive_id(value: Any) -> int | None:
    """Return the value as a positive integer ID, rejecting floats with a fraction and bools."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float):
        if not value.is_integer():
            return None
        value = int(value)
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return None
    return parsed if parsed > 0 else None


def to_year(value: Any) -> str:
    """Extract the leading four-digit year from a TMDB date string."""
    if not isinstance(value, str) or not value:
        return ""
    year = value[:4]
    return year if YEAR_RE.match(year) else ""


def _string_field(payload: dict[str, Any], key: str) -> str | None:
    value = payload.get(key)
    return value if isinstance(value, str) else None


def parse_search_candidate(
    payload: dict[str, Any],
    *,
    endpoint: str,
) -> SearchCandidate | None:
    """Parse one search result, dropping malformed IDs and non-title multi results."""
    candidate_id = parse_positive_id(payload.get("id"))
    if candidate_id is None:
        return None

    if endpoint == "multi":
        media_type = payload.get("media_type")
        if media_type not in MEDIA_TYPES:
            return None
    else:
        media_type = endpoint

    title_variants = build_result_title_variants(
        title=_string_field(payload, "title"),
        name=_string_field(payload, "name"),
        original_title=_string_field(payload, "original_title"),
        original_name=_string_field(payload, "original_name"),
    )
    if not title_variants:
        return None

    return SearchCandidate(
        id=candidate_id,
        media_type=media_type,
        title_variants=title_variants,
        year=to_year(payload.get("release_date") or payload.get("first_air_date")),
    )


def parse_search_candidates(
    payloads: Sequence[Any],
    *,
    endpoint: str,
    limit: int = TMDB_SEARCH_RESULTS_PER_RESPONSE,
) -> list[SearchCandidate]:
    """Parse the leading search results of one response into typed candidates."""
    parsed: list[SearchCandidate] = []
    for payload in payloads[:limit]:
        if not isinstance(payload, dict):
            continue
        candidate = parse_search_candidate(payload, endpoint=endpoint)
        if candidate is None:
            continue
        parsed.append(candidate)
    return parsed


def extract_results(payload: Any) -> list[Any]:
    """Return the ``results`` list of a TMDB list response, or an empty list."""
    if not isinstance(payload, dict):
        return []
    results = payload.get("results")
    if not isinstance(results, list):
        return []
    return results
