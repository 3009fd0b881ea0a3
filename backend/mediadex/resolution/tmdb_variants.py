from collections.abc import Iterable

from mediadex.resolution.tmdb_config import (
    QUOTED_TITLE_RE,
    TITLE_FIRST_CHUNK_SPLITTER_RE,
    WHITESPACE_RE,
)
from mediadex.resolution.tmdb_normalization import (
    normalize_title_for_match,
    strip_season_and_media_words,
)


def _dedupe(values: Iterable[str]) -> list[str]:
    """Drop blanks and duplicates while preserving first-seen ordering."""
    return list(dict.fromkeys(value for value in values if value))


def _first_chunk(text: str) -> str:
    return TITLE_FIRST_CHUNK_SPLITTER_RE.split(text, maxsplit=1)[0].strip()


def _clean_search_query(text: str) -> str:
    return WHITESPACE_RE.sub(" ", text.strip())


def build_query_title_variants(query_title: str | None) -> list[str]:
    """Generate normalized title variants used to score search candidates."""
    raw = (query_title or "").strip()
    candidates: list[str] = [raw]

    stripped = strip_season_and_media_words(raw)
    if stripped and stripped != raw:
        candidates.append(stripped)

    quoted = QUOTED_TITLE_RE.search(raw)
    if quoted:
        candidates.append(quoted.group(1))

    first_chunk = _first_chunk(stripped)
    if first_chunk and first_chunk != stripped:
        candidates.append(first_chunk)

    return _dedupe(normalize_title_for_match(candidate) for candidate in candidates)


def build_search_query_variants(query_title: str | None) -> list[str]:
    """Generate the literal query strings sent to the search API, most specific first."""
    raw = (query_title or "").strip()
    stripped = strip_season_and_media_words(raw)
    candidates: list[str] = [raw, stripped]

    first_chunk = _first_chunk(stripped)
    if first_chunk and first_chunk != stripped:
        candidates.append(first_chunk)

    return _dedupe(_clean_search_query(candidate) for candidate in candidates)


def build_result_title_variants(
    *,
    title: str | None = None,
    name: str | None = None,
    original_title: str | None = None,
    original_name: str | None = None,
) -> list[str]:
    """Normalize every title field of a search or detail record into match variants."""
    return _dedupe(
        normalize_title_for_match(value)
        for value in (title, name, original_title, original_name)
        if isinstance(value, str)
    )
