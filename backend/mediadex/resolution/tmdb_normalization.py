import unicodedata

from mediadex.resolution.tmdb_config import (
    CHINESE_SEASON_HINT_RE,
    CJK_MEDIA_WORD_RE,
    ENGLISH_MEDIA_WORD_RE,
    ENGLISH_SEASON_HINT_RE,
    TITLE_PUNCTUATION_COUNTER_RE,
    TITLE_QUOTE_PUNCTUATION_RE,
    TITLE_RELEASE_TAG_RE,
    TITLE_SOURCE_CODE_COMPACT_RE,
    TITLE_SOURCE_CODE_RE,
    TITLE_SYMBOL_PUNCTUATION_RE,
    TMDB_MATCH_MIN_SIMILARITY,
    TMDB_MATCH_NOISY_MIN_SIMILARITY,
    TMDB_NOISY_TITLE_MIN_COMPACT_LENGTH,
    TMDB_NOISY_TITLE_MIN_PUNCTUATION,
    WHITESPACE_RE,
    YEAR_RE,
)


def _normalize_spaces(text: str) -> str:
    """Collapse repeated whitespace into single spaces and trim boundaries."""
    return WHITESPACE_RE.sub(" ", text).strip()


def strip_season_and_media_words(title: str | None) -> str:
    """Remove season hints and bare media-type words, keeping casing and punctuation."""
    normalized = unicodedata.normalize("NFKC", title or "")
    normalized = ENGLISH_SEASON_HINT_RE.sub(" ", normalized)
    normalized = CHINESE_SEASON_HINT_RE.sub(" ", normalized)
    normalized = ENGLISH_MEDIA_WORD_RE.sub(" ", normalized)
    normalized = CJK_MEDIA_WORD_RE.sub(" ", normalized)
    return _normalize_spaces(normalized)


def has_season_intent(title: str | None) -> bool:
    """Detect whether the raw title asks for a specific season or part of a series."""
    normalized = unicodedata.normalize("NFKC", title or "")
    return bool(
        ENGLISH_SEASON_HINT_RE.search(normalized)
        or CHINESE_SEASON_HINT_RE.search(normalized)
    )


def _normalize_title_once(title: str) -> str:
    normalized = strip_season_and_media_words(title).lower()
    normalized = TITLE_QUOTE_PUNCTUATION_RE.sub(" ", normalized)
    normalized = TITLE_SYMBOL_PUNCTUATION_RE.sub(" ", normalized)
    normalized = TITLE_SOURCE_CODE_RE.sub(" ", normalized)
    normalized = TITLE_SOURCE_CODE_COMPACT_RE.sub(" ", normalized)
    return _normalize_spaces(normalized)


def normalize_title_for_match(title: str | None) -> str:
    """Normalize a title into the lowercase, depunctuated form used for scoring.

    Punctuation removal can expose new season hints ("S.2" -> "s 2"), so the
    pipeline is re-applied until the output is stable.
    """
    normalized = _normalize_title_once(title or "")
    while True:
        again = _normalize_title_once(normalized)
        if again == normalized:
            return normalized
        normalized = again


def to_compact_title_for_match(title: str | None) -> str:
    """Normalized title with every whitespace character removed."""
    return WHITESPACE_RE.sub("", normalize_title_for_match(title))


def is_likely_noisy_query_title(title: str | None) -> bool:
    """Flag release-style or heavily punctuated queries that need a stricter match."""
    raw = title or ""
    has_source_code = bool(
        TITLE_SOURCE_CODE_RE.search(raw)
        or TITLE_SOURCE_CODE_COMPACT_RE.search(raw)
        or TITLE_RELEASE_TAG_RE.search(raw)
    )
    if has_source_code:
        return True
    compact_length = len(to_compact_title_for_match(raw))
    punctuation_count = len(TITLE_PUNCTUATION_COUNTER_RE.findall(raw))
    return (
        compact_length >= TMDB_NOISY_TITLE_MIN_COMPACT_LENGTH
        and punctuation_count >= TMDB_NOISY_TITLE_MIN_PUNCTUATION
    )


def minimum_similarity_threshold(
    title: str | None,
    *,
    base: float = TMDB_MATCH_MIN_SIMILARITY,
    noisy: float = TMDB_MATCH_NOISY_MIN_SIMILARITY,
) -> float:
    return noisy if is_likely_noisy_query_title(title) else base


def normalize_year(value: str | int | None) -> str:
    """Return a four-digit year string, or an empty string for anything else."""
    if value is None:
        return ""
    year = str(value).strip()
    return year if YEAR_RE.match(year) else ""


def normalize_media_type(value: str | None) -> str:
    return "tv" if value in ("tv", "show") else "movie"


def normalize_logo_language(value: str | None) -> str:
    return "en" if value == "en" else "zh"


def normalize_tmdb_id(value: str | int | None) -> int | None:
    """Parse a positive integer TMDB ID from loosely typed input."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    raw = str(value).strip()
    if not raw:
        return None
    try:
        parsed = int(raw)
    except ValueError:
        return None
    return parsed if parsed > 0 else None
