import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from mediadex.resolution.tmdb_config import (
    TMDB_DETAIL_MAX_RECOMMENDATIONS,
    TMDB_IMAGE_BASE_URL,
)
from mediadex.resolution.tmdb_parsing import MEDIA_TYPES, parse_positive_id, to_year
from mediadex.resolution.tmdb_selection import (
    pick_movie_content_rating,
    pick_trailer_url,
    pick_tv_content_rating,
    select_best_logo,
)
from mediadex.schemas.tmdb import TmdbCastMember, TmdbDetail, TmdbRecommendation

DEFAULT_OVERVIEW = "No overview available."


@dataclass
class DetailFallbacks:
    """Values supplied by the caller for fields the detail payload may lack."""

    title: str = ""
    year: str = ""
    poster: str = ""
    score: str = ""


def to_score(value: Any) -> str:
    """Format a vote average as one decimal, or ``""`` when absent or non-positive."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return ""
    if not math.isfinite(value) or value <= 0:
        return ""
    return f"{value:.1f}"


def to_image_url(path: Any, size: str = "w500") -> str:
    if not isinstance(path, str) or not path:
        return ""
    return f"{TMDB_IMAGE_BASE_URL}/{size}{path}"


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _int_or_none(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _list(raw: Mapping[str, Any], container_key: str, list_key: str) -> list[Mapping[str, Any]]:
    container = raw.get(container_key)
    if not isinstance(container, Mapping):
        return []
    items = container.get(list_key)
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, Mapping)]


def _member_name(member: Mapping[str, Any]) -> str:
    return _text(member.get("name")) or _text(member.get("original_name"))


def _member_id(member: Mapping[str, Any]) -> int:
    return parse_positive_id(member.get("id")) or 0


def _primary_role(roles: Any) -> Mapping[str, Any]:
    """Role with the most episodes; the first one wins ties."""
    best: Mapping[str, Any] = {}
    best_count = 0
    if not isinstance(roles, list):
        return best
    for role in roles:
        if not isinstance(role, Mapping):
            continue
        count = _int_or_none(role.get("episode_count")) or 0
        if count > best_count:
            best = role
            best_count = count
    return best


def map_credit_cast(raw: Mapping[str, Any]) -> list[TmdbCastMember]:
    return [
        TmdbCastMember(
            id=_member_id(member),
            name=_member_name(member),
            character=_text(member.get("character")),
            profile=to_image_url(member.get("profile_path"), "w185"),
        )
        for member in _list(raw, "credits", "cast")
    ]


def map_aggregate_cast(raw: Mapping[str, Any]) -> list[TmdbCastMember]:
    """Series cast from ``aggregate_credits``, each credited with their longest-running role."""
    return [
        TmdbCastMember(
            id=_member_id(member),
            name=_member_name(member),
            character=_text(_primary_role(member.get("roles")).get("character")),
            profile=to_image_url(member.get("profile_path"), "w185"),
        )
        for member in _list(raw, "aggregate_credits", "cast")
    ]


def dedupe_cast(members: list[TmdbCastMember]) -> list[TmdbCastMember]:
    """Drop unnamed or ID-less members and repeated IDs, keeping first appearances."""
    seen: set[int] = set()
    deduped: list[TmdbCastMember] = []
    for member in members:
        if member.id <= 0 or not member.name or member.id in seen:
            continue
        seen.add(member.id)
        deduped.append(member)
    return deduped


def map_recommendations(
    raw: Mapping[str, Any],
    media_type: str,
    limit: int = TMDB_DETAIL_MAX_RECOMMENDATIONS,
) -> list[TmdbRecommendation]:
    recommendations: list[TmdbRecommendation] = []
    for item in _list(raw, "recommendations", "results")[:limit]:
        item_id = parse_positive_id(item.get("id"))
        if item_id is None:
            continue
        title = _text(item.get("title")) or _text(item.get("name"))
        if not title:
            continue
        item_media_type = item.get("media_type")
        recommendations.append(
            TmdbRecommendation(
                id=item_id,
                media_type=item_media_type if item_media_type in MEDIA_TYPES else media_type,
                title=title,
                poster=(
                    to_image_url(item.get("poster_path"), "w500")
                    or to_image_url(item.get("backdrop_path"), "w500")
                ),
                backdrop=to_image_url(item.get("backdrop_path"), "original"),
                year=to_year(item.get("release_date") or item.get("first_air_date")),
                score=to_score(item.get("vote_average")),
                vote_count=_int_or_none(item.get("vote_count")) or 0,
            )
        )
    return recommendations


def _runtime(raw: Mapping[str, Any], media_type: str) -> int | None:
    if media_type == "movie":
        return _int_or_none(raw.get("runtime"))
    episode_run_time = raw.get("episode_run_time")
    if isinstance(episode_run_time, list) and episode_run_time:
        return _int_or_none(episode_run_time[0])
    return None


def _popularity(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return math.floor(value + 0.5)


def _genres(raw: Mapping[str, Any]) -> list[str]:
    genres = raw.get("genres")
    if not isinstance(genres, list):
        return []
    names = [_text(genre.get("name")) for genre in genres if isinstance(genre, Mapping)]
    return [name for name in names if name]


def map_raw_detail(
    raw: Mapping[str, Any],
    *,
    tmdb_id: int,
    media_type: str,
    logo_language: str = "zh",
    fallbacks: DetailFallbacks | None = None,
) -> TmdbDetail:
    """Flatten a raw TMDB detail payload into a `TmdbDetail` record.

    Series prefer the aggregate cast when it is non-empty; caller fallbacks
    fill title, year, poster and score when the payload has none.
    """
    fallbacks = fallbacks or DetailFallbacks()

    cast = map_credit_cast(raw)
    if media_type == "tv":
        aggregate_cast = map_aggregate_cast(raw)
        if aggregate_cast:
            cast = aggregate_cast

    content_rating = (
        pick_movie_content_rating(raw) if media_type == "movie" else pick_tv_content_rating(raw)
    )
    logo = select_best_logo(_list(raw, "images", "logos"), logo_language)
    videos = _list(raw, "videos", "results")

    return TmdbDetail(
        id=parse_positive_id(raw.get("id")) or tmdb_id,
        media_type=media_type,
        title=_text(raw.get("title")) or _text(raw.get("name")) or fallbacks.title.strip(),
        logo=to_image_url(logo.file_path, "w500") if logo is not None else None,
        logo_aspect_ratio=logo.aspect_ratio if logo is not None else None,
        overview=_text(raw.get("overview")) or DEFAULT_OVERVIEW,
        backdrop=to_image_url(raw.get("backdrop_path"), "original"),
        poster=to_image_url(raw.get("poster_path"), "w500") or fallbacks.poster,
        score=to_score(raw.get("vote_average")) or fallbacks.score,
        vote_count=_int_or_none(raw.get("vote_count")) or 0,
        year=to_year(raw.get("release_date") or raw.get("first_air_date")) or fallbacks.year,
        runtime=_runtime(raw, media_type),
        seasons=_int_or_none(raw.get("number_of_seasons")),
        episodes=_int_or_none(raw.get("number_of_episodes")),
        content_rating=content_rating,
        genres=_genres(raw),
        language=_text(raw.get("original_language")).upper(),
        popularity=_popularity(raw.get("popularity")),
        cast=dedupe_cast(cast),
        recommendations=map_recommendations(raw, media_type),
        trailer_url=pick_trailer_url(videos),
    )
