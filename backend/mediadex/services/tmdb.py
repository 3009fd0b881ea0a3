import time
from typing import Any
from urllib.parse import urlencode

from mediadex.exceptions.tmdb import (
    MissingLookupInputError,
    TmdbApiKeyMissingError,
    TmdbDetailNotFoundError,
    TmdbDetailRequestFailedError,
)
from mediadex.resolution import tmdb_lookup
from mediadex.resolution.logger import logger
from mediadex.resolution.tmdb import DEFAULT_TUNING, MatchTuning, detail_matches_title
from mediadex.resolution.tmdb_config import (
    TMDB_DETAIL_TIMEOUT_SECONDS,
    TMDB_LANGUAGE,
    TMDB_REQUEST_TIMEOUT_SECONDS,
    TMDB_WEB_BASE_URL,
)
from mediadex.resolution.tmdb_detail import DetailFallbacks, map_raw_detail
from mediadex.resolution.tmdb_normalization import (
    normalize_logo_language,
    normalize_media_type,
    normalize_tmdb_id,
    normalize_year,
)
from mediadex.resolution.tmdb_runtime import TmdbLookupCache, detail_cache_key
from mediadex.schemas.tmdb import TmdbDetail

TargetCache = TmdbLookupCache[tmdb_lookup.TmdbResolution]
DetailCache = TmdbLookupCache[dict[str, Any]]


def _remaining(deadline: float) -> float:
    return max(0.001, min(TMDB_REQUEST_TIMEOUT_SECONDS, deadline - time.monotonic()))


def _fetch_detail_raw(
    *,
    media_type: str,
    tmdb_id: int,
    logo_language: str,
    api_key: str,
    deadline: float,
    detail_cache: DetailCache | None,
) -> dict[str, Any] | None:
    """Fetch a raw detail payload; only successful payloads are cached."""
    key = detail_cache_key(media_type, tmdb_id, logo_language)
    if detail_cache is not None:
        hit, cached = detail_cache.get(key)
        if hit and cached is not None:
            logger.debug("TMDB detail cache hit for key=%s", key)
            return cached

    raw = tmdb_lookup.fetch_tmdb_detail_raw(
        media_type,
        tmdb_id,
        logo_language,
        api_key=api_key,
        timeout=_remaining(deadline),
    )
    if raw is not None and detail_cache is not None:
        detail_cache.set(key, raw)
    return raw


def get_tmdb_detail(
    *,
    tmdb_id: str | int | None,
    title: str | None,
    year: str | None,
    media_type: str | None,
    logo_language: str | None,
    fallback_poster: str = "",
    fallback_score: str = "",
    api_key: str,
    target_cache: TargetCache | None = None,
    detail_cache: DetailCache | None = None,
    tuning: MatchTuning = DEFAULT_TUNING,
    timeout: float = TMDB_DETAIL_TIMEOUT_SECONDS,
) -> TmdbDetail:
    """
    Build the detail record of a TMDB entity, resolving it from a title when no ID is given.

    Parameters:
        tmdb_id (str | int | None): Known TMDB ID; invalid values count as absent.
        title (str | None): Free-text title to resolve when no valid ID is given.
        year (str | None): Release year hint; anything but four digits is ignored.
        media_type (str | None): Preferred media type ("movie", "tv" or "show").
        logo_language (str | None): Logo language preference ("zh" or "en").
        fallback_poster (str): Poster URL used when TMDB has none.
        fallback_score (str): Score used when TMDB has none.
        api_key (str): TMDB API key.
        target_cache (TargetCache | None): Shared title lookup cache.
        detail_cache (DetailCache | None): Shared raw detail cache.
        tuning (MatchTuning): Resolution thresholds and weights.
        timeout (float): Overall time budget in seconds for the whole call.
    Returns:
        TmdbDetail: The flattened detail record.
    Raises:
        MissingLookupInputError: If neither a valid ID nor a title is given.
        TmdbApiKeyMissingError: If no API key is configured.
        TmdbDetailNotFoundError: If the title cannot be resolved or verified.
        TmdbDetailRequestFailedError: If the detail fetch fails.
    """
    clean_title = (title or "").strip()
    known_id = normalize_tmdb_id(tmdb_id)
    if known_id is None and not clean_title:
        raise MissingLookupInputError()
    if not api_key:
        raise TmdbApiKeyMissingError()

    normalized_year = normalize_year(year)
    resolved_media_type = normalize_media_type(media_type)
    preferred_logo_language = normalize_logo_language(logo_language)
    deadline = time.monotonic() + timeout

    resolved_id = known_id
    if resolved_id is None:
        target = tmdb_lookup.find_tmdb_target(
            clean_title,
            normalized_year,
            resolved_media_type,
            cache=target_cache,
            api_key=api_key,
            tuning=tuning,
            timeout=max(0.0, deadline - time.monotonic()),
        )
        if target is None:
            raise TmdbDetailNotFoundError(title=clean_title)
        resolved_id = target.id
        resolved_media_type = target.media_type

    raw = _fetch_detail_raw(
        media_type=resolved_media_type,
        tmdb_id=resolved_id,
        logo_language=preferred_logo_language,
        api_key=api_key,
        deadline=deadline,
        detail_cache=detail_cache,
    )
    if raw is None:
        raise TmdbDetailRequestFailedError(resolved_media_type, resolved_id)

    if known_id is None and not detail_matches_title(clean_title, raw, tuning):
        logger.debug(
            "TMDB detail %s/%s rejected on title verification for '%s'.",
            resolved_media_type,
            resolved_id,
            clean_title,
        )
        raise TmdbDetailNotFoundError(title=clean_title, tmdb_id=resolved_id)

    return map_raw_detail(
        raw,
        tmdb_id=resolved_id,
        media_type=resolved_media_type,
        logo_language=preferred_logo_language,
        fallbacks=DetailFallbacks(
            title=clean_title,
            year=normalized_year,
            poster=fallback_poster.strip(),
            score=fallback_score.strip(),
        ),
    )


def build_tmdb_search_page_url(title: str, media_type: str, year: str) -> str:
    """TMDB website search URL used when a title cannot be resolved to an ID."""
    query = urlencode(
        {
            "query": f"{title} {year}" if year else title,
            "language": TMDB_LANGUAGE,
        }
    )
    return f"{TMDB_WEB_BASE_URL}/search/{media_type}?{query}"


def build_tmdb_page_url(media_type: str, tmdb_id: int) -> str:
    return f"{TMDB_WEB_BASE_URL}/{media_type}/{tmdb_id}?language={TMDB_LANGUAGE}"


def get_tmdb_redirect_url(
    *,
    title: str | None,
    media_type: str | None,
    year: str | None,
    api_key: str,
) -> str:
    """
    Pick the TMDB web page to send a user to for a title.

    Uses the first search hit without scoring; without an API key or a hit,
    falls back to the TMDB website search page.

    Raises:
        MissingLookupInputError: If the title is blank.
    """
    clean_title = (title or "").strip()
    if not clean_title:
        raise MissingLookupInputError("title")

    normalized_media_type = normalize_media_type(media_type)
    normalized_year = normalize_year(year)
    resolved_id = tmdb_lookup.find_first_search_id(
        clean_title,
        normalized_media_type,
        normalized_year,
        api_key=api_key,
    )
    if resolved_id is None:
        return build_tmdb_search_page_url(clean_title, normalized_media_type, normalized_year)
    return build_tmdb_page_url(normalized_media_type, resolved_id)
