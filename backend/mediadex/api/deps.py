from functools import lru_cache
from typing import Annotated, Any

from fastapi import Depends

from mediadex.core.config import settings
from mediadex.resolution.tmdb import TmdbResolution
from mediadex.resolution.tmdb_runtime import TmdbLookupCache


@lru_cache
def get_lookup_cache() -> TmdbLookupCache[TmdbResolution]:
    """Process-wide title lookup cache, built on first use."""
    return TmdbLookupCache()


@lru_cache
def get_detail_cache() -> TmdbLookupCache[dict[str, Any]]:
    """Process-wide raw detail payload cache, built on first use."""
    return TmdbLookupCache()


def get_tmdb_api_key() -> str:
    return settings.TMDB_KEY.strip()


LookupCacheDep = Annotated[TmdbLookupCache[TmdbResolution], Depends(get_lookup_cache)]
DetailCacheDep = Annotated[TmdbLookupCache[dict[str, Any]], Depends(get_detail_cache)]
TmdbApiKeyDep = Annotated[str, Depends(get_tmdb_api_key)]
