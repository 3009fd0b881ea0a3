import asyncio
from typing import Any

import aiohttp
import pytest
import requests
from pytest_mock import MockerFixture

from mediadex.resolution import tmdb_lookup
from mediadex.resolution.tmdb import MatchTuning, TmdbResolution, TmdbTarget
from mediadex.resolution.tmdb_config import (
    DETAIL_URL_TEMPLATE,
    MOVIE_DETAIL_APPENDS,
    SEARCH_URL_TEMPLATE,
    TV_DETAIL_APPENDS,
)
from mediadex.resolution.tmdb_runtime import TmdbLookupCache


@pytest.fixture
def session(mocker: MockerFixture, monkeypatch) -> Any:
    fake_session = mocker.MagicMock()
    monkeypatch.setattr(tmdb_lookup, "_get_session", lambda: fake_session)
    return fake_session


class FakeSearchTmdb:
    def __init__(self, results: list[Any] | None) -> None:
        self.results = results
        self.calls: list[tuple[str, str, str | None]] = []

    def __call__(
        self,
        endpoint: str,
        query: str,
        year: str | None = None,
        *,
        api_key: str,
        timeout: float,
    ) -> list[Any] | None:
        self.calls.append((endpoint, query, year))
        return self.results


def test_build_search_params_uses_endpoint_specific_year_key() -> None:
    movie = tmdb_lookup.build_search_params(endpoint="movie", query="Dune", year="2021", api_key="k")
    tv = tmdb_lookup.build_search_params(endpoint="tv", query="Dark", year="2017", api_key="k")
    multi = tmdb_lookup.build_search_params(endpoint="multi", query="Dune", year="2021", api_key="k")

    assert movie["year"] == "2021"
    assert "first_air_date_year" not in movie
    assert tv["first_air_date_year"] == "2017"
    assert "year" not in tv
    assert "year" not in multi and "first_air_date_year" not in multi
    assert movie["include_adult"] == "false"
    assert movie["page"] == "1"
    assert movie["api_key"] == "k"


def test_build_detail_params() -> None:
    movie = tmdb_lookup.build_detail_params(media_type="movie", logo_language="zh", api_key="k")
    tv = tmdb_lookup.build_detail_params(media_type="tv", logo_language="en", api_key="k")

    assert movie["append_to_response"] == MOVIE_DETAIL_APPENDS
    assert movie["include_image_language"] == "zh,null,en"
    assert tv["append_to_response"] == TV_DETAIL_APPENDS
    assert tv["include_image_language"] == "en,null,zh"


def test_search_tmdb_returns_results(session: Any) -> None:
    session.get.return_value.json.return_value = {"results": [{"id": 1}]}

    results = tmdb_lookup.search_tmdb("movie", "Dune", "2021", api_key="k", timeout=3.0)

    assert results == [{"id": 1}]
    args, kwargs = session.get.call_args
    assert args[0] == SEARCH_URL_TEMPLATE.format(endpoint="movie")
    assert kwargs["params"]["query"] == "Dune"
    assert kwargs["params"]["year"] == "2021"
    assert kwargs["timeout"] == 3.0


@pytest.mark.parametrize(
    "configure",
    [
        lambda session: setattr(session.get, "side_effect", requests.ConnectionError("boom")),
        lambda session: setattr(
            session.get.return_value.raise_for_status,
            "side_effect",
            requests.HTTPError("503"),
        ),
        lambda session: setattr(
            session.get.return_value.json,
            "side_effect",
            ValueError("not json"),
        ),
        lambda session: setattr(session.get.return_value.json, "return_value", ["not", "a", "dict"]),
    ],
)
def test_search_tmdb_swallows_failures(session: Any, configure) -> None:
    configure(session)

    assert tmdb_lookup.search_tmdb("movie", "Dune", api_key="k") is None


def test_search_tmdb_treats_missing_results_as_empty(session: Any) -> None:
    session.get.return_value.json.return_value = {"page": 1}

    assert tmdb_lookup.search_tmdb("movie", "Dune", api_key="k") == []


def test_fetch_tmdb_detail_raw_normalizes_inputs(session: Any) -> None:
    session.get.return_value.json.return_value = {"id": 66732, "name": "怪奇物语"}

    raw = tmdb_lookup.fetch_tmdb_detail_raw("show", 66732, "fr", api_key="k")

    assert raw == {"id": 66732, "name": "怪奇物语"}
    args, kwargs = session.get.call_args
    assert args[0].endswith("/tv/66732")
    assert kwargs["params"]["include_image_language"] == "zh,null,en"


def test_find_first_search_id(monkeypatch) -> None:
    search = FakeSearchTmdb([{"id": 603}, {"id": 604}])
    monkeypatch.setattr(tmdb_lookup, "search_tmdb", search)

    assert tmdb_lookup.find_first_search_id("The Matrix", "show", "1999", api_key="k") == 603
    assert search.calls == [("tv", "The Matrix", "1999")]

    search.results = []
    assert tmdb_lookup.find_first_search_id("The Matrix", "movie", api_key="k") is None


def test_find_first_search_id_without_key_makes_no_calls(monkeypatch) -> None:
    search = FakeSearchTmdb([{"id": 603}])
    monkeypatch.setattr(tmdb_lookup, "search_tmdb", search)

    assert tmdb_lookup.find_first_search_id("The Matrix", "movie", api_key="") is None
    assert search.calls == []


def test_find_tmdb_target_uses_cache(monkeypatch) -> None:
    search = FakeSearchTmdb([{"id": 535167, "title": "流浪地球2"}])
    monkeypatch.setattr(tmdb_lookup, "search_tmdb", search)
    cache: TmdbLookupCache[TmdbResolution] = TmdbLookupCache()

    first = tmdb_lookup.find_tmdb_target("流浪地球", None, "movie", cache=cache, api_key="k")
    second = tmdb_lookup.find_tmdb_target(" 流浪地球 ", None, "movie", cache=cache, api_key="k")

    assert first == TmdbTarget(id=535167, media_type="movie")
    assert second == first
    assert len(search.calls) == 1


def test_find_tmdb_target_caches_per_tuning(monkeypatch) -> None:
    search = FakeSearchTmdb([{"id": 535167, "title": "流浪地球2"}])
    monkeypatch.setattr(tmdb_lookup, "search_tmdb", search)
    cache: TmdbLookupCache[TmdbResolution] = TmdbLookupCache()
    strict = MatchTuning(min_similarity=0.95)

    lenient = tmdb_lookup.find_tmdb_target("流浪地球", cache=cache, api_key="k")
    tuned = tmdb_lookup.find_tmdb_target("流浪地球", cache=cache, api_key="k", tuning=strict)

    assert lenient == TmdbTarget(id=535167, media_type="movie")
    assert tuned is None
    assert len(cache) == 2


def test_target_cache_key_keeps_default_tuning_key() -> None:
    assert tmdb_lookup.target_cache_key("movie", "Dune", None) == "title:movie:dune:unknown"
    assert tmdb_lookup.target_cache_key(
        "movie", "Dune", None, MatchTuning(min_similarity=0.9)
    ).startswith("title:movie:dune:unknown:tuning=0.9,")


def test_misses_are_cached_only_when_every_search_succeeded(monkeypatch) -> None:
    cache: TmdbLookupCache[TmdbResolution] = TmdbLookupCache()

    monkeypatch.setattr(tmdb_lookup, "search_tmdb", FakeSearchTmdb(None))
    assert tmdb_lookup.find_tmdb_target("流浪地球", cache=cache, api_key="k") is None
    assert len(cache) == 0

    monkeypatch.setattr(tmdb_lookup, "search_tmdb", FakeSearchTmdb([]))
    assert tmdb_lookup.find_tmdb_target("流浪地球", cache=cache, api_key="k") is None
    assert len(cache) == 1


def test_find_tmdb_target_without_key_or_title_makes_no_calls(monkeypatch) -> None:
    search = FakeSearchTmdb([{"id": 1, "title": "流浪地球"}])
    monkeypatch.setattr(tmdb_lookup, "search_tmdb", search)

    assert tmdb_lookup.find_tmdb_target("流浪地球", api_key="") is None
    assert tmdb_lookup.find_tmdb_target("  ", api_key="k") is None
    assert search.calls == []


def test_is_cacheable_resolution() -> None:
    hit = TmdbResolution(target=TmdbTarget(id=1, media_type="movie"))
    timed_out = TmdbResolution(target=None, decision={"reason": "deadline_exceeded"})
    clean_miss = TmdbResolution(
        target=None,
        decision={"reason": "no_candidate_above_threshold", "failed_searches": 0},
    )

    assert tmdb_lookup.is_cacheable_resolution(hit) is True
    assert tmdb_lookup.is_cacheable_resolution(timed_out) is False
    assert tmdb_lookup.is_cacheable_resolution(clean_miss) is True


def test_find_tmdb_target_async_uses_cache(monkeypatch) -> None:
    calls: list[tuple[str, str, str | None]] = []

    async def fake_search(*, session, endpoint, query, year=None, api_key, timeout):
        calls.append((endpoint, query, year))
        return [{"id": 7, "title": "流浪地球"}]

    monkeypatch.setattr(tmdb_lookup, "search_tmdb_async", fake_search)
    cache: TmdbLookupCache[TmdbResolution] = TmdbLookupCache()

    async def run() -> list[TmdbTarget | None]:
        return [
            await tmdb_lookup.find_tmdb_target_async(
                session=object(),
                title="流浪地球",
                year="2019",
                cache=cache,
                api_key="k",
            )
            for _ in range(2)
        ]

    assert asyncio.run(run()) == [TmdbTarget(id=7, media_type="movie")] * 2
    assert calls == [("movie", "流浪地球", "2019")]


def test_async_resolution_timeout_is_not_found(monkeypatch) -> None:
    async def slow_search(*, session, endpoint, query, year=None, api_key, timeout):
        await asyncio.sleep(1.0)
        return [{"id": 7, "title": "流浪地球"}]

    monkeypatch.setattr(tmdb_lookup, "search_tmdb_async", slow_search)
    cache: TmdbLookupCache[TmdbResolution] = TmdbLookupCache()

    target = asyncio.run(
        tmdb_lookup.find_tmdb_target_async(
            session=object(),
            title="流浪地球",
            cache=cache,
            api_key="k",
            timeout=0.01,
        )
    )

    assert target is None
    assert len(cache) == 0


class _FakeAiohttpResponse:
    def __init__(self, payload: Any = None, error: Exception | None = None) -> None:
        self.payload = payload
        self.error = error

    async def __aenter__(self) -> "_FakeAiohttpResponse":
        return self

    async def __aexit__(self, *exc_info) -> None:
        return None

    def raise_for_status(self) -> None:
        if self.error is not None:
            raise self.error

    async def json(self) -> Any:
        return self.payload


class _FakeAiohttpSession:
    def __init__(self, response: _FakeAiohttpResponse) -> None:
        self.response = response
        self.requests: list[tuple[str, dict[str, str]]] = []

    def get(self, url: str, *, params, timeout, headers) -> _FakeAiohttpResponse:
        self.requests.append((url, dict(params)))
        return self.response


def test_search_tmdb_async_returns_results() -> None:
    fake_session = _FakeAiohttpSession(_FakeAiohttpResponse({"results": [{"id": 1}]}))

    results = asyncio.run(
        tmdb_lookup.search_tmdb_async(
            session=fake_session,
            endpoint="tv",
            query="Dark",
            year="2017",
            api_key="k",
        )
    )

    assert results == [{"id": 1}]
    url, params = fake_session.requests[0]
    assert url == SEARCH_URL_TEMPLATE.format(endpoint="tv")
    assert params["first_air_date_year"] == "2017"


def test_search_tmdb_async_swallows_client_errors() -> None:
    fake_session = _FakeAiohttpSession(
        _FakeAiohttpResponse(error=aiohttp.ClientError("boom"))
    )

    results = asyncio.run(
        tmdb_lookup.search_tmdb_async(
            session=fake_session,
            endpoint="movie",
            query="Dune",
            api_key="k",
        )
    )

    assert results is None


def test_fetch_tmdb_detail_raw_async_normalizes_inputs() -> None:
    fake_session = _FakeAiohttpSession(_FakeAiohttpResponse({"id": 66732, "name": "怪奇物语"}))

    raw = asyncio.run(
        tmdb_lookup.fetch_tmdb_detail_raw_async(
            session=fake_session,
            media_type="show",
            tmdb_id=66732,
            logo_language="en",
            api_key="k",
        )
    )

    assert raw == {"id": 66732, "name": "怪奇物语"}
    url, params = fake_session.requests[0]
    assert url == DETAIL_URL_TEMPLATE.format(media_type="tv", id=66732)
    assert params["append_to_response"] == TV_DETAIL_APPENDS
    assert params["include_image_language"] == "en,null,zh"


@pytest.mark.parametrize(
    "response",
    [
        _FakeAiohttpResponse(error=aiohttp.ClientError("boom")),
        _FakeAiohttpResponse(["not", "an", "object"]),
    ],
)
def test_fetch_tmdb_detail_raw_async_failures_return_none(response: _FakeAiohttpResponse) -> None:
    raw = asyncio.run(
        tmdb_lookup.fetch_tmdb_detail_raw_async(
            session=_FakeAiohttpSession(response),
            media_type="movie",
            tmdb_id=603,
            api_key="k",
        )
    )

    assert raw is None
