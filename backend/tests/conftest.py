from collections.abc import Generator
from typing import Any

import pytest
from fastapi.testclient import TestClient

from mediadex.api.deps import get_detail_cache, get_lookup_cache, get_tmdb_api_key
from mediadex.main import app
from mediadex.resolution.tmdb import TmdbResolution
from mediadex.resolution.tmdb_runtime import TmdbLookupCache

TEST_TMDB_API_KEY = "test-tmdb-key"


@pytest.fixture(scope="function")
def lookup_cache() -> TmdbLookupCache[TmdbResolution]:
    return TmdbLookupCache(ttl_seconds=60, max_entries=16, singleflight_wait_timeout=1)


@pytest.fixture(scope="function")
def detail_cache() -> TmdbLookupCache[dict[str, Any]]:
    return TmdbLookupCache(ttl_seconds=60, max_entries=16, singleflight_wait_timeout=1)


@pytest.fixture(scope="function")
def tmdb_api_key() -> str:
    return TEST_TMDB_API_KEY


@pytest.fixture(scope="function")
def client(
    lookup_cache: TmdbLookupCache[TmdbResolution],
    detail_cache: TmdbLookupCache[dict[str, Any]],
    tmdb_api_key: str,
) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_lookup_cache] = lambda: lookup_cache
    app.dependency_overrides[get_detail_cache] = lambda: detail_cache
    app.dependency_overrides[get_tmdb_api_key] = lambda: tmdb_api_key
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
