"""Shared TMDB configuration constants and environment-backed tuning values."""

import os
import re

from mediadex.core.config import settings

TMDB_API_KEY: str = settings.TMDB_KEY
TMDB_API_BASE_URL: str = settings.TMDB_API_BASE_URL.rstrip("/")
TMDB_WEB_BASE_URL: str = settings.TMDB_WEB_BASE_URL.rstrip("/")
TMDB_IMAGE_BASE_URL: str = settings.TMDB_IMAGE_BASE_URL.rstrip("/")
TMDB_LANGUAGE: str = settings.TMDB_LANGUAGE
SEARCH_URL_TEMPLATE: str = TMDB_API_BASE_URL + "/search/{endpoint}"
DETAIL_URL_TEMPLATE: str = TMDB_API_BASE_URL + "/{media_type}/{id}"
YOUTUBE_WATCH_URL_TEMPLATE: str = "https://www.youtube.com/watch?v={key}"


def _env_non_negative_int(name: str, default: int) -> int:
    """Read an environment variable as a non-negative integer with a safe default."""
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return max(0, int(raw))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    """Read an environment variable as a non-negative float with a safe default."""
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return max(0.0, float(raw))
    except ValueError:
        return default


def _env_probability(name: str, default: float) -> float:
    """Read and clamp an environment variable to the probability range [0.0, 1.0]."""
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        parsed = float(raw)
    except ValueError:
        return default
    return min(1.0, max(0.0, parsed))


# Empirically tuned against the live search API; override rather than re-derive.
TMDB_MATCH_MIN_SIMILARITY = _env_probability("TMDB_MATCH_MIN_SIMILARITY", 0.34)
TMDB_MATCH_NOISY_MIN_SIMILARITY = _env_probability(
    "TMDB_MATCH_NOISY_MIN_SIMILARITY",
    0.58,
)
TMDB_YEAR_EXACT_BONUS = 0.08
TMDB_YEAR_ADJACENT_BONUS = 0.03
TMDB_YEAR_MISMATCH_PENALTY = -0.08
TMDB_SPECIAL_FEATURE_PENALTY = -0.26
TMDB_SEARCH_RESULTS_PER_RESPONSE = _env_non_negative_int(
    "TMDB_SEARCH_RESULTS_PER_RESPONSE",
    8,
)
TMDB_NOISY_TITLE_MIN_COMPACT_LENGTH = 18
TMDB_NOISY_TITLE_MIN_PUNCTUATION = 3

CONTAINMENT_COVERAGE_STEPS: tuple[tuple[float, float], ...] = (
    (0.92, 0.98),
    (0.75, 0.90),
    (0.60, 0.80),
    (0.45, 0.68),
)
CONTAINMENT_PARTIAL_WEIGHT = 0.4

TMDB_REQUEST_TIMEOUT_SECONDS = _env_float("TMDB_REQUEST_TIMEOUT_SECONDS", 8.0)
TMDB_DETAIL_TIMEOUT_SECONDS = _env_float("TMDB_DETAIL_TIMEOUT_SECONDS", 10.0)
TMDB_LOOKUP_CACHE_TTL_SECONDS = _env_float("TMDB_LOOKUP_CACHE_TTL_SECONDS", 600.0)
TMDB_LOOKUP_CACHE_MAX_ENTRIES = _env_non_negative_int(
    "TMDB_LOOKUP_CACHE_MAX_ENTRIES",
    320,
)
TMDB_SINGLEFLIGHT_WAIT_TIMEOUT_SECONDS = _env_float(
    "TMDB_SINGLEFLIGHT_WAIT_TIMEOUT_SECONDS",
    45.0,
)
TMDB_DETAIL_MAX_RECOMMENDATIONS = 24

PREFERRED_RATING_COUNTRIES: tuple[str, ...] = ("US", "CN", "GB", "HK", "JP")

MOVIE_DETAIL_APPENDS = "credits,videos,release_dates,images,recommendations"
TV_DETAIL_APPENDS = (
    "aggregate_credits,credits,videos,content_ratings,images,recommendations"
)

# Patterns use ASCII word boundaries so Latin tokens glued to CJK text still split.
ENGLISH_SEASON_HINT_RE = re.compile(
    r"\b(?:season|series|s)\s*0*\d{1,2}\b",
    flags=re.IGNORECASE | re.ASCII,
)
CHINESE_SEASON_HINT_RE = re.compile(
    r"第\s*[零一二三四五六七八九十百千万两\d]+\s*(?:季|部|辑)",
    flags=re.IGNORECASE | re.ASCII,
)
ENGLISH_MEDIA_WORD_RE = re.compile(
    r"\b(?:tv|movie|show)\b",
    flags=re.IGNORECASE | re.ASCII,
)
CJK_MEDIA_WORD_RE = re.compile(r"电视剧|電視劇|电影|電影|剧集|劇集|综艺|綜藝|真人秀")
TITLE_QUOTE_PUNCTUATION_RE = re.compile(r"[‘’“”'\"`]")
TITLE_SYMBOL_PUNCTUATION_RE = re.compile(
    r"[、，。！？,.;:!?()\[\]{}<>《》「」『』【】/_|\\~@#$%^&*+=-]+"
)
TITLE_SOURCE_CODE_RE = re.compile(
    r"\b[a-z]{2,6}\s*[-_ ]\s*\d{2,6}\b",
    flags=re.IGNORECASE | re.ASCII,
)
TITLE_SOURCE_CODE_COMPACT_RE = re.compile(
    r"\b[a-z]{2,6}\d{2,6}\b",
    flags=re.IGNORECASE | re.ASCII,
)
TITLE_RELEASE_TAG_RE = re.compile(
    r"\b(?:\d{3,4}p|[hx]\.?26[45]|hevc|bluray|blu-ray|web-?dl|webrip|hdtv|remux)\b",
    flags=re.IGNORECASE | re.ASCII,
)
QUOTED_TITLE_RE = re.compile(r"[《「『]([^《》「」『』]{2,80})[》」』]")
TITLE_FIRST_CHUNK_SPLITTER_RE = re.compile(r"[，。！？,!?]")
TITLE_PUNCTUATION_COUNTER_RE = re.compile(r"[「」『』【】《》（），。？！]")
SPECIAL_FEATURE_KEYWORD_RE = re.compile(
    r"幕后|特辑|重逢|花絮|制作|纪录|番外|衍生"
    r"|making of|behind the scenes|behind the curtain"
    r"|reunion|special|featurette|documentary",
    flags=re.IGNORECASE,
)
WHITESPACE_RE = re.compile(r"\s+")
YEAR_RE = re.compile(r"^\d{4}$", flags=re.ASCII)
