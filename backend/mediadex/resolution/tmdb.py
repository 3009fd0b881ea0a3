"""Deterministic title-to-TMDB-entity resolution over an injected search API."""

import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from mediadex.resolution.logger import logger
from mediadex.resolution.tmdb_config import (
    SPECIAL_FEATURE_KEYWORD_RE,
    TMDB_MATCH_MIN_SIMILARITY,
    TMDB_MATCH_NOISY_MIN_SIMILARITY,
    TMDB_SEARCH_RESULTS_PER_RESPONSE,
    TMDB_SPECIAL_FEATURE_PENALTY,
    TMDB_YEAR_ADJACENT_BONUS,
    TMDB_YEAR_EXACT_BONUS,
    TMDB_YEAR_MISMATCH_PENALTY,
)
from mediadex.resolution.tmdb_normalization import (
    has_season_intent,
    minimum_similarity_threshold,
    normalize_media_type,
    normalize_year,
)
from mediadex.resolution.tmdb_parsing import SearchCandidate, parse_search_candidates
from mediadex.resolution.tmdb_similarity import best_similarity_score
from mediadex.resolution.tmdb_variants import (
    build_query_title_variants,
    build_result_title_variants,
    build_search_query_variants,
)

SearchFn = Callable[[str, str, str | None], list[Any] | None]
AsyncSearchFn = Callable[[str, str, str | None], Awaitable[list[Any] | None]]


@dataclass(frozen=True)
class MatchTuning:
    min_similarity: float = TMDB_MATCH_MIN_SIMILARITY
    noisy_min_similarity: float = TMDB_MATCH_NOISY_MIN_SIMILARITY
    year_exact_bonus: float = TMDB_YEAR_EXACT_BONUS
    year_adjacent_bonus: float = TMDB_YEAR_ADJACENT_BONUS
    year_mismatch_penalty: float = TMDB_YEAR_MISMATCH_PENALTY
    special_feature_penalty: float = TMDB_SPECIAL_FEATURE_PENALTY
    results_per_response: int = TMDB_SEARCH_RESULTS_PER_RESPONSE


DEFAULT_TUNING = MatchTuning()


@dataclass(frozen=True)
class ResolutionAttempt:
    endpoint: str
    year: str | None = None

    @property
    def year_filter(self) -> str | None:
        """Year filter actually sent; the multi endpoint never takes one."""
        if self.endpoint == "multi":
            return None
        return self.year or None


@dataclass(frozen=True)
class TmdbTarget:
    id: int
    media_type: str


@dataclass
class ScoredCandidate:
    id: int
    media_type: str
    score: float

    def to_target(self) -> TmdbTarget:
        return TmdbTarget(id=self.id, media_type=self.media_type)


@dataclass
class TmdbResolution:
    target: TmdbTarget | None
    decision: dict[str, Any] = field(default_factory=dict)


@dataclass
class ResolutionPlan:
    title: str
    year: str
    season_intent: bool
    threshold: float
    attempts: list[ResolutionAttempt]
    query_variants: list[str]
    search_queries: list[str]


def build_attempt_plan(
    *,
    media_type: str,
    year: str,
    season_intent: bool,
) -> list[ResolutionAttempt]:
    """Build the ordered (endpoint, year) attempts; earlier attempts are trusted more."""
    primary = "tv" if season_intent else normalize_media_type(media_type)
    other = "tv" if primary == "movie" else "movie"
    year_or_none = year or None
    if season_intent:
        # First-air-year filtering tends to surface specials for season queries.
        return [
            ResolutionAttempt("tv"),
            ResolutionAttempt("tv", year_or_none),
            ResolutionAttempt(other),
            ResolutionAttempt(other, year_or_none),
            ResolutionAttempt("multi"),
        ]
    return [
        ResolutionAttempt(primary, year_or_none),
        ResolutionAttempt(primary),
        ResolutionAttempt(other, year_or_none),
        ResolutionAttempt(other),
        ResolutionAttempt("multi"),
    ]


def prepare_resolution(
    *,
    title: str,
    year: str | None,
    media_type: str | None,
    tuning: MatchTuning = DEFAULT_TUNING,
) -> ResolutionPlan:
    """Derive season intent, variants, threshold, and the attempt plan for one title."""
    normalized_year = normalize_year(year)
    season_intent = has_season_intent(title)
    return ResolutionPlan(
        title=title,
        year=normalized_year,
        season_intent=season_intent,
        threshold=minimum_similarity_threshold(
            title,
            base=tuning.min_similarity,
            noisy=tuning.noisy_min_similarity,
        ),
        attempts=build_attempt_plan(
            media_type=normalize_media_type(media_type),
            year=normalized_year,
            season_intent=season_intent,
        ),
        query_variants=build_query_title_variants(title),
        search_queries=build_search_query_variants(title),
    )


def score_year_match(
    input_year: str,
    candidate_year: str,
    tuning: MatchTuning = DEFAULT_TUNING,
) -> float:
    """Reward exact or adjacent release years and penalize distant ones."""
    if not input_year or not candidate_year:
        return 0.0
    try:
        delta = abs(int(input_year) - int(candidate_year))
    except ValueError:
        return 0.0
    if delta == 0:
        return tuning.year_exact_bonus
    if delta == 1:
        return tuning.year_adjacent_bonus
    return tuning.year_mismatch_penalty


def score_special_feature_penalty(
    query_has_season_intent: bool,
    candidate_variants: Sequence[str],
    tuning: MatchTuning = DEFAULT_TUNING,
) -> float:
    """Penalize behind-the-scenes or reunion entries when a specific season was asked for."""
    if not query_has_season_intent:
        return 0.0
    if any(SPECIAL_FEATURE_KEYWORD_RE.search(variant) for variant in candidate_variants):
        return tuning.special_feature_penalty
    return 0.0


def score_candidate(
    candidate: SearchCandidate,
    plan: ResolutionPlan,
    tuning: MatchTuning = DEFAULT_TUNING,
) -> ScoredCandidate | None:
    """Score a parsed candidate, or return None when its title shares nothing with the query."""
    title_score = best_similarity_score(plan.query_variants, candidate.title_variants)
    if title_score <= 0:
        return None
    score = (
        title_score
        + score_year_match(plan.year, candidate.year, tuning)
        + score_special_feature_penalty(
            plan.season_intent,
            candidate.title_variants,
            tuning,
        )
    )
    return ScoredCandidate(id=candidate.id, media_type=candidate.media_type, score=score)


def pick_best_scored(
    results: Sequence[Any],
    *,
    attempt: ResolutionAttempt,
    plan: ResolutionPlan,
    tuning: MatchTuning = DEFAULT_TUNING,
) -> ScoredCandidate | None:
    """Pick the highest scoring candidate of one search response; ties keep the first."""
    best: ScoredCandidate | None = None
    candidates = parse_search_candidates(
        results,
        endpoint=attempt.endpoint,
        limit=tuning.results_per_response,
    )
    for candidate in candidates:
        scored = score_candidate(candidate, plan, tuning)
        if scored is None:
            continue
        if best is None or scored.score > best.score:
            best = scored
    return best


class _ResolutionTracker:
    """Track the running best candidate and search counts for decision diagnostics."""

    def __init__(self, plan: ResolutionPlan) -> None:
        self.plan = plan
        self.searches = 0
        self.failed_searches = 0
        self.best: ScoredCandidate | None = None
        self.best_attempt: ResolutionAttempt | None = None
        self.best_query: str | None = None

    def observe(
        self,
        results: list[Any] | None,
        *,
        attempt: ResolutionAttempt,
        query: str,
        tuning: MatchTuning,
    ) -> ScoredCandidate | None:
        """Record one search response and return its best candidate when it clears the bar."""
        self.searches += 1
        if results is None:
            self.failed_searches += 1
            return None
        scored = pick_best_scored(results, attempt=attempt, plan=self.plan, tuning=tuning)
        if scored is None:
            return None
        if self.best is None or scored.score > self.best.score:
            self.best = scored
            self.best_attempt = attempt
            self.best_query = query
        if scored.score >= self.plan.threshold:
            return scored
        return None

    def accepted(
        self,
        scored: ScoredCandidate,
        *,
        attempt: ResolutionAttempt,
        query: str,
    ) -> TmdbResolution:
        logger.debug(
            "TMDB title resolved: title='%s' -> %s/%s (score=%.3f, endpoint=%s, query='%s')",
            self.plan.title,
            scored.media_type,
            scored.id,
            scored.score,
            attempt.endpoint,
            query,
        )
        return TmdbResolution(
            target=scored.to_target(),
            decision={
                "status": "accepted",
                "reason": "threshold_met",
                "endpoint": attempt.endpoint,
                "year_filter": attempt.year_filter,
                "query": query,
                "score": round(scored.score, 4),
                "threshold": self.plan.threshold,
                "season_intent": self.plan.season_intent,
                "searches": self.searches,
                "failed_searches": self.failed_searches,
            },
        )

    def rejected(self, reason: str) -> TmdbResolution:
        logger.debug(
            "TMDB title unresolved: title='%s' (%s, best=%s, threshold=%.2f)",
            self.plan.title,
            reason,
            f"{self.best.score:.3f}" if self.best is not None else "n/a",
            self.plan.threshold,
        )
        decision: dict[str, Any] = {
            "status": "rejected",
            "reason": reason,
            "threshold": self.plan.threshold,
            "season_intent": self.plan.season_intent,
            "searches": self.searches,
            "failed_searches": self.failed_searches,
        }
        if self.best is not None and self.best_attempt is not None:
            decision["best_candidate"] = {
                "id": self.best.id,
                "media_type": self.best.media_type,
                "score": round(self.best.score, 4),
                "endpoint": self.best_attempt.endpoint,
                "query": self.best_query,
            }
        return TmdbResolution(target=None, decision=decision)


def _empty_title_resolution() -> TmdbResolution:
    return TmdbResolution(
        target=None,
        decision={"status": "rejected", "reason": "empty_title", "searches": 0},
    )


def resolve_tmdb_target(
    title: str | None,
    year: str | None = None,
    media_type: str | None = "movie",
    *,
    search: SearchFn,
    tuning: MatchTuning = DEFAULT_TUNING,
    deadline: float | None = None,
) -> TmdbResolution:
    """Resolve a free-text title to a TMDB (id, media type) by sequential ranked searches.

    ``search(endpoint, query, year_filter)`` returns the raw ``results`` list or
    None when the call failed; failed calls are skipped. ``deadline`` is a
    ``time.monotonic()`` value after which the remaining attempts are abandoned.
    """
    clean_title = (title or "").strip()
    if not clean_title:
        return _empty_title_resolution()

    plan = prepare_resolution(
        title=clean_title,
        year=year,
        media_type=media_type,
        tuning=tuning,
    )
    tracker = _ResolutionTracker(plan)
    for attempt in plan.attempts:
        for query in plan.search_queries:
            if deadline is not None and time.monotonic() >= deadline:
                return tracker.rejected("deadline_exceeded")
            results = search(attempt.endpoint, query, attempt.year_filter)
            scored = tracker.observe(
                results,
                attempt=attempt,
                query=query,
                tuning=tuning,
            )
            if scored is not None:
                return tracker.accepted(scored, attempt=attempt, query=query)
    return tracker.rejected("no_candidate_above_threshold")


async def resolve_tmdb_target_async(
    title: str | None,
    year: str | None = None,
    media_type: str | None = "movie",
    *,
    search: AsyncSearchFn,
    tuning: MatchTuning = DEFAULT_TUNING,
) -> TmdbResolution:
    """Async variant of `resolve_tmdb_target`; searches still run one at a time."""
    clean_title = (title or "").strip()
    if not clean_title:
        return _empty_title_resolution()

    plan = prepare_resolution(
        title=clean_title,
        year=year,
        media_type=media_type,
        tuning=tuning,
    )
    tracker = _ResolutionTracker(plan)
    for attempt in plan.attempts:
        for query in plan.search_queries:
            results = await search(attempt.endpoint, query, attempt.year_filter)
            scored = tracker.observe(
                results,
                attempt=attempt,
                query=query,
                tuning=tuning,
            )
            if scored is not None:
                return tracker.accepted(scored, attempt=attempt, query=query)
    return tracker.rejected("no_candidate_above_threshold")


def detail_matches_title(
    title: str,
    raw_detail: dict[str, Any],
    tuning: MatchTuning = DEFAULT_TUNING,
) -> bool:
    """Check that a fetched detail payload is still a plausible match for the query title."""
    detail_variants = build_result_title_variants(
        title=raw_detail.get("title") if isinstance(raw_detail.get("title"), str) else None,
        name=raw_detail.get("name") if isinstance(raw_detail.get("name"), str) else None,
    )
    similarity = best_similarity_score(build_query_title_variants(title), detail_variants)
    threshold = minimum_similarity_threshold(
        title,
        base=tuning.min_similarity,
        noisy=tuning.noisy_min_similarity,
    )
    return similarity >= threshold
