"""Priority-ranked pickers for logos, content ratings, and trailers in TMDB detail payloads."""

import math
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

from mediadex.resolution.tmdb_config import (
    PREFERRED_RATING_COUNTRIES,
    YOUTUBE_WATCH_URL_TEMPLATE,
)

T = TypeVar("T")

RankKey = Callable[[T], float]

_LOGO_LANGUAGE_PRIORITIES: dict[str, dict[str | None, int]] = {
    "zh": {"zh": 4, None: 3, "": 3, "en": 2},
    "en": {"en": 4, None: 3, "": 3, "zh": 2},
    # Hero banners rank English above untagged artwork; a blank tag ranks as unlisted.
    "hero": {"zh": 4, "en": 3, None: 2},
}
_TRAILER_LANGUAGE_PRIORITY: dict[str | None, int] = {"zh": 3, "en": 2, None: 1}


@dataclass
class LogoSelection:
    file_path: str
    aspect_ratio: float | None = None


def select_best(candidates: Sequence[T], keys: Sequence[RankKey[T]]) -> T | None:
    """Return the candidate ranking highest on the first key that differs, then the next.

    Higher key values win; a full tie keeps the earliest candidate.
    """
    best: T | None = None
    best_rank: tuple[float, ...] | None = None
    for candidate in candidates:
        rank = tuple(key(candidate) for key in keys)
        if best_rank is None or rank > best_rank:
            best = candidate
            best_rank = rank
    return best


def _number(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    if not math.isfinite(value):
        return 0.0
    return float(value)


def _language_key(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _logo_aspect_ratio(logo: Mapping[str, Any]) -> float | None:
    aspect_ratio = logo.get("aspect_ratio")
    if (
        isinstance(aspect_ratio, (int, float))
        and not isinstance(aspect_ratio, bool)
        and math.isfinite(aspect_ratio)
        and aspect_ratio > 0
    ):
        return float(aspect_ratio)
    width = logo.get("width")
    height = logo.get("height")
    if (
        isinstance(width, int)
        and isinstance(height, int)
        and not isinstance(width, bool)
        and not isinstance(height, bool)
        and width > 0
        and height > 0
    ):
        return width / height
    return None


def select_best_logo(
    logos: Sequence[Any],
    preference: str = "zh",
) -> LogoSelection | None:
    """Pick a title logo by language preference, then vote average, then width."""
    priorities = _LOGO_LANGUAGE_PRIORITIES.get(preference, _LOGO_LANGUAGE_PRIORITIES["zh"])
    usable = [
        logo
        for logo in logos
        if isinstance(logo, Mapping)
        and isinstance(logo.get("file_path"), str)
        and logo.get("file_path")
    ]
    best = select_best(
        usable,
        [
            lambda logo: priorities.get(_language_key(logo.get("iso_639_1")), 1),
            lambda logo: _number(logo.get("vote_average")),
            lambda logo: _number(logo.get("width")),
        ],
    )
    if best is None:
        return None
    return LogoSelection(file_path=best["file_path"], aspect_ratio=_logo_aspect_ratio(best))


def pick_preferred_certification(
    by_country: Mapping[str, str],
    preferred_countries: Sequence[str] = PREFERRED_RATING_COUNTRIES,
) -> str:
    """Pick a certification by country preference, else the first one recorded."""
    for country in preferred_countries:
        certification = by_country.get(country)
        if certification:
            return certification
    return next(iter(by_country.values()), "")


def _results(raw: Mapping[str, Any], key: str) -> list[Mapping[str, Any]]:
    container = raw.get(key)
    if not isinstance(container, Mapping):
        return []
    results = container.get("results")
    if not isinstance(results, list):
        return []
    return [item for item in results if isinstance(item, Mapping)]


def _country(item: Mapping[str, Any]) -> str:
    value = item.get("iso_3166_1")
    return value.upper() if isinstance(value, str) else ""


def pick_movie_content_rating(raw: Mapping[str, Any]) -> str:
    """Content rating of a movie from its ``release_dates`` table."""
    by_country: dict[str, str] = {}
    for item in _results(raw, "release_dates"):
        country = _country(item)
        if not country:
            continue
        release_dates = item.get("release_dates")
        if not isinstance(release_dates, list):
            continue
        certification = next(
            (
                entry["certification"]
                for entry in release_dates
                if isinstance(entry, Mapping)
                and isinstance(entry.get("certification"), str)
                and entry["certification"].strip()
            ),
            "",
        )
        if not certification:
            continue
        by_country[country] = certification
    return pick_preferred_certification(by_country)


def pick_tv_content_rating(raw: Mapping[str, Any]) -> str:
    """Content rating of a series from its ``content_ratings`` table."""
    by_country: dict[str, str] = {}
    for item in _results(raw, "content_ratings"):
        country = _country(item)
        rating_raw = item.get("rating")
        rating = rating_raw.strip() if isinstance(rating_raw, str) else ""
        if not country or not rating:
            continue
        by_country[country] = rating
    return pick_preferred_certification(by_country)


def pick_trailer_url(videos: Sequence[Any]) -> str:
    """Watch URL of the preferred YouTube trailer, official ones first, or ``""``."""
    candidates = [
        video
        for video in videos
        if isinstance(video, Mapping)
        and video.get("site") == "YouTube"
        and video.get("type") == "Trailer"
        and isinstance(video.get("key"), str)
        and video.get("key")
    ]
    best = select_best(
        candidates,
        [
            lambda video: 1 if video.get("official") else 0,
            lambda video: _TRAILER_LANGUAGE_PRIORITY.get(
                video.get("iso_639_1") if isinstance(video.get("iso_639_1"), str) else None,
                0,
            ),
        ],
    )
    if best is None:
        return ""
    return YOUTUBE_WATCH_URL_TEMPLATE.format(key=best["key"])
