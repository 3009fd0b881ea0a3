from fastapi import APIRouter

from mediadex.api.deps import DetailCacheDep, LookupCacheDep

router = APIRouter(prefix="/utils", tags=["utils"])


@router.get("/health-check/")
async def health_check() -> bool:
    return True


@router.post("/tmdb-cache/reset/")
def reset_tmdb_cache(lookup_cache: LookupCacheDep, detail_cache: DetailCacheDep) -> bool:
    """
    Drop every cached TMDB lookup and detail payload.
    """
    lookup_cache.reset()
    detail_cache.reset()
    return True
