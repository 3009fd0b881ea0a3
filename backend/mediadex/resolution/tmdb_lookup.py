import asyncio
import time
from dataclasses import astuple
from collections.abc import Mapping
from threading import local
from typing import Any

import aiohttp
import requests

from mediadex.resolution import tmdb as tmdb_algorithm
from mediadex.resolution.logger import logger
from mediadex.resolution.tmdb_config import (
    DETAIL_URL_TEMPLATE,
    MOVIE_DETAIL_APPENDS,
    SEARCH_URL_TEMPLATE,
    TMDB_API_KEY,
    TMDB_LANGUAGE,
    TMDB_REQUEST_TIMEOUT_SECONDS,
    TV_DETAIL_APPENDS,
)
from mediadex.resolution.tmdb_normalization import (
    normalize_logo_language,
    normalize_media_type,
    normalize_year,
)
from mediadex.resolution.tmdb_parsing import extract_results, parse_positive_id
from mediadex.resolution.tmdb_runtime import TmdbLookupCache, lookup_cache_key

TmdbTarget = tmdb_algorithm.TmdbTarget
TmdbResolution = tmdb_algorithm.TmdbResolution
MatchTuning = tmdb_algorithm.MatchTuning

_thread_local = local()


def _get_session() -> requests.Session:
    """Return the thread-local requests session used for TMDB calls.

    No retrying adapter is mounted: a failed search moves on to the next
    attempt instead of being retried in place.
    """
    session = getattr(_thread_local, "session", None)
    if session is None:
        session = requests.Session()
        session.headers.update({"Accept": "application/json"})
        _thread_local.session = session
    return session


def build_search_params(
    *,
    endpoint: str,
    query: str,
    year: str | None,
    api_key: str,
) -> dict[str, str]:
    """Build search query parameters; the year key depends on the endpoint."""
    params = {
        "api_key": api_key,
        "language": TMDB_LANGUAGE,
        "include_adult": "false",
        "query": query,
        "page": "1",
    }
    if year and endpoint != "multi":
        params["year" if endpoint == "movie" else "first_air_date_year"] = year
    return params


def build_detail_params(*, media_type: str, logo_language: str, api_key: str) -> dict[str, str]:
    """Build detail query parameters with the appended sub-resources the detail mapper reads."""
    include_image_language = "en,null,zh" if logo_language == "en" else "zh,null,en"
    return {
        "api_key": api_key,
        "language": TMDB_LANGUAGE,
        "append_to_response": (
            MOVIE_DETAIL_APPENDS if media_type == "movie" else TV_DETAIL_APPENDS
        ),
        "include_image_language": include_image_language,
    }


def _get_json(
    url: str,
    params: Mapping[str, str],
    *,
    timeout: float,
) -> dict[str, Any] | None:
    """Execute a GET request and return a validated JSON object payload."""
    try:
        response = _get_session().get(url, params=params, timeout=timeout)
        response.raise_for_status()
        payload = response.json()
    except (requests.RequestException, ValueError) as e:
        logger.warning(f"TMDB request failed for {url}. Error: {e}")
        return None
    if not isinstance(payload, dict):
        logger.warning(f"Unexpected TMDB payload for {url}.")
        return None
    return payload


async def _get_json_async(
    *,
    session: aiohttp.ClientSession,
    url: str,
    params: Mapping[str, str],
    timeout: float,
) -> dict[str, Any] | None:
    """Execute an async GET request and return a validated JSON object payload."""
    try:
        async with session.get(
            url,
            params=params,
            timeout=aiohttp.ClientTimeout(total=timeout),
            headers={"Accept": "application/json"},
        ) as response:
            response.raise_for_status()
            payload = await response.json()
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
        logger.warning(f"TMDB request failed for {url}. Error: {e}")
        return None
    if not isinstance(payload, dict):
        logger.warning(f"Unexpected TMDB payload for {url}.")
        return None
    return payload


def search_tmdb(
    endpoint: str,
    query: str,
    year: str | None = None,
    *,
    api_key: str = TMDB_API_KEY,
    timeout: float = TMDB_REQUEST_TIMEOUT_SECONDS,
) -> list[Any] | None:
    """Search one TMDB endpoint; returns the raw results list or None on failure."""
    payload = _get_json(
        SEARCH_URL_TEMPLATE.format(endpoint=endpoint),
        build_search_params(endpoint=endpoint, query=query, year=year, api_key=api_key),
        timeout=timeout,
    )
    if payload is None:
        return None
    return extract_results(payload)


async def search_tmdb_async(
    *,
    session: aiohttp.ClientSession,
    endpoint: str,
    query: str,
    year: str | None = None,
    api_key: str = TMDB_API_KEY,
    timeout: float = TMDB_REQUEST_TIMEOUT_SECONDS,
) -> list[Any] | None:
    """Async variant of `search_tmdb` using the caller's aiohttp session."""
    payload = await _get_json_async(
        session=session,
        url=SEARCH_URL_TEMPLATE.format(endpoint=endpoint),
        params=build_search_params(
            endpoint=endpoint,
            query=query,
            year=year,
            api_key=api_key,
        ),
        timeout=timeout,
    )
    if payload is None:
        return None
    return extract_results(payload)


def fetch_tmdb_detail_raw(
    media_type: str,
    tmdb_id: int,
    logo_language: str = "zh",
    *,
    api_key: str = TMDB_API_KEY,
    timeout: float = TMDB_REQUEST_TIMEOUT_SECONDS,
) -> dict[str, Any] | None:
    """Fetch the raw TMDB detail payload (credits, videos, ratings, images, recommendations)."""
    media_type = normalize_media_type(media_type)
    return _get_json(
        DETAIL_URL_TEMPLATE.format(media_type=media_type, id=tmdb_id),
        build_detail_params(
            media_type=media_type,
            logo_language=normalize_logo_language(logo_language),
            api_key=api_key,
        ),
        timeout=timeout,
    )


async def fetch_tmdb_detail_raw_async(
    *,
    session: aiohttp.ClientSession,
    media_type: str,
    tmdb_id: int,
    logo_language: str = "zh",
    api_key: str = TMDB_API_KEY,
    timeout: float = TMDB_REQUEST_TIMEOUT_SECONDS,
) -> dict[str, Any] | None:
    """Async variant of `fetch_tmdb_detail_raw`."""
    media_type = normalize_media_type(media_type)
    return await _get_json_async(
        session=session,
        url=DETAIL_URL_TEMPLATE.format(media_type=media_type, id=tmdb_id),
        params=build_detail_params(
            media_type=media_type,
            logo_language=normalize_logo_language(logo_language),
            api_key=api_key,
        ),
        timeout=timeout,
    )


def find_first_search_id(
    title: str,
    media_type: str,
    year: str | None = None,
    *,
    api_key: str = TMDB_API_KEY,
    timeout: float = TMDB_REQUEST_TIMEOUT_SECONDS,
) -> int | None:
    """Return the ID of the top search hit without scoring, as used for quick redirects."""
    if not api_key:
        return None
    results = search_tmdb(
        normalize_media_type(media_type),
        title,
        normalize_year(year) or None,
        api_key=api_key,
        timeout=timeout,
    )
    if not results or not isinstance(results[0], dict):
        return None
    return parse_positive_id(results[0].get("id"))


def resolve_tmdb_title(
    title: str,
    year: str | None = None,
    media_type: str | None = "movie",
    *,
    api_key: str = TMDB_API_KEY,
    tuning: MatchTuning = tmdb_algorithm.DEFAULT_TUNING,
    timeout: float | None = None,
    request_timeout: float = TMDB_REQUEST_TIMEOUT_SECONDS,
) -> TmdbResolution:
    """Run the scored resolution against the live search API, without caching."""
    if not api_key:
        logger.debug("TMDB API key missing; skipping title resolution.")
        return TmdbResolution(
            target=None,
            decision={"status": "rejected", "reason": "api_key_missing", "searches": 0},
        )

    deadline = time.monotonic() + timeout if timeout is not None else None

    def _search(endpoint: str, query: str, year_filter: str | None) -> list[Any] | None:
        per_request_timeout = request_timeout
        if deadline is not None:
            per_request_timeout = max(0.001, min(request_timeout, deadline - time.monotonic()))
        return search_tmdb(
            endpoint,
            query,
            year_filter,
            api_key=api_key,
            timeout=per_request_timeout,
        )

    return tmdb_algorithm.resolve_tmdb_target(
        title,
        year,
        media_type,
        search=_search,
        tuning=tuning,
        deadline=deadline,
    )


async def resolve_tmdb_title_async(
    *,
    session: aiohttp.ClientSession,
    title: str,
    year: str | None = None,
    media_type: str | None = "movie",
    api_key: str = TMDB_API_KEY,
    tuning: MatchTuning = tmdb_algorithm.DEFAULT_TUNING,
    timeout: float | None = None,
    request_timeout: float = TMDB_REQUEST_TIMEOUT_SECONDS,
) -> TmdbResolution:
    """Async scored resolution; an expired overall ``timeout`` abandons it as not found."""
    if not api_key:
        logger.debug("TMDB API key missing; skipping title resolution.")
        return TmdbResolution(
            target=None,
            decision={"status": "rejected", "reason": "api_key_missing", "searches": 0},
        )

    async def _search(
        endpoint: str,
        query: str,
        year_filter: str | None,
    ) -> list[Any] | None:
        return await search_tmdb_async(
            session=session,
            endpoint=endpoint,
            query=query,
            year=year_filter,
            api_key=api_key,
            timeout=request_timeout,
        )

    try:
        return await asyncio.wait_for(
            tmdb_algorithm.resolve_tmdb_target_async(
                title,
                year,
                media_type,
                search=_search,
                tuning=tuning,
            ),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        logger.warning(f"TMDB title resolution timed out after {timeout}s for '{title}'.")
        return TmdbResolution(
            target=None,
            decision={"status": "rejected", "reason": "deadline_exceeded"},
        )


def target_cache_key(
    media_type: str | None,
    title: str,
    year: str | None,
    tuning: MatchTuning = tmdb_algorithm.DEFAULT_TUNING,
) -> str:
    """Lookup cache key; non-default tuning gets its own entries."""
    key = lookup_cache_key(media_type, title, year)
    if tuning == tmdb_algorithm.DEFAULT_TUNING:
        return key
    return key + ":tuning=" + ",".join(str(value) for value in astuple(tuning))


def is_cacheable_resolution(resolution: TmdbResolution) -> bool:
    """Cache hits, and misses only when every search call went through."""
    if resolution.target is not None:
        return True
    decision = resolution.decision
    if decision.get("reason") in ("deadline_exceeded", "api_key_missing"):
        return False
    return not decision.get("failed_searches")


def find_tmdb_target(
    title: str,
    year: str | None = None,
    media_type: str | None = "movie",
    *,
    cache: TmdbLookupCache[TmdbResolution] | None = None,
    api_key: str = TMDB_API_KEY,
    tuning: MatchTuning = tmdb_algorithm.DEFAULT_TUNING,
    timeout: float | None = None,
) -> TmdbTarget | None:
    """Resolve a title to a TMDB target, sharing results through ``cache`` when given."""
    if not (title or "").strip():
        return None

    def _compute() -> TmdbResolution:
        return resolve_tmdb_title(
            title,
            year,
            media_type,
            api_key=api_key,
            tuning=tuning,
            timeout=timeout,
        )

    if cache is None:
        return _compute().target
    resolution = cache.get_or_compute(
        target_cache_key(media_type, title, year, tuning),
        _compute,
        should_cache=is_cacheable_resolution,
    )
    return resolution.target


async def find_tmdb_target_async(
    *,
    session: aiohttp.ClientSession,
    title: str,
    year: str | None = None,
    media_type: str | None = "movie",
    cache: TmdbLookupCache[TmdbResolution] | None = None,
    api_key: str = TMDB_API_KEY,
    tuning: MatchTuning = tmdb_algorithm.DEFAULT_TUNING,
    timeout: float | None = None,
) -> TmdbTarget | None:
    """Async variant of `find_tmdb_target`."""
    if not (title or "").strip():
        return None

    async def _compute() -> TmdbResolution:
        return await resolve_tmdb_title_async(
            session=session,
            title=title,
            year=year,
            media_type=media_type,
            api_key=api_key,
            tuning=tuning,
            timeout=timeout,
        )

    if cache is None:
        return (await _compute()).target
    resolution = await cache.get_or_compute_async(
        target_cache_key(media_type, title, year, tuning),
        _compute,
        should_cache=is_cacheable_resolution,
    )
    return resolution.target
