from fastapi import APIRouter, Query, Response, status
from fastapi.responses import RedirectResponse

from mediadex.api.deps import DetailCacheDep, LookupCacheDep, TmdbApiKeyDep
from mediadex.exceptions.handlers import NO_STORE_HEADERS
from mediadex.schemas.tmdb import TmdbDetail
from mediadex.services import tmdb as tmdb_service

router = APIRouter(prefix="/tmdb", tags=["tmdb"])


@router.get("/detail", response_model=TmdbDetail)
def read_tmdb_detail(
    response: Response,
    lookup_cache: LookupCacheDep,
    detail_cache: DetailCacheDep,
    api_key: TmdbApiKeyDep,
    id: str | None = Query(None),
    title: str = Query(""),
    year: str | None = Query(None),
    type: str | None = Query(None),
    media_type: str | None = Query(None, alias="mediaType"),
    logo_lang: str | None = Query(None, alias="logoLang"),
    logo_language: str | None = Query(None),
    logo_lang_snake: str | None = Query(None, alias="logo_lang"),
    poster: str = Query(""),
    score: str = Query(""),
) -> TmdbDetail:
    detail = tmdb_service.get_tmdb_detail(
        tmdb_id=id,
        title=title,
        year=year,
        media_type=media_type or type,
        logo_language=logo_lang or logo_language or logo_lang_snake,
        fallback_poster=poster,
        fallback_score=score,
        api_key=api_key,
        target_cache=lookup_cache,
        detail_cache=detail_cache,
    )
    response.headers.update(NO_STORE_HEADERS)
    return detail


@router.get("/resolve", response_class=RedirectResponse)
def resolve_tmdb_page(
    api_key: TmdbApiKeyDep,
    title: str = Query(""),
    type: str | None = Query(None),
    year: str | None = Query(None),
) -> RedirectResponse:
    target_url = tmdb_service.get_tmdb_redirect_url(
        title=title,
        media_type=type,
        year=year,
        api_key=api_key,
    )
    return RedirectResponse(
        target_url,
        status_code=status.HTTP_307_TEMPORARY_REDIRECT,
        headers=NO_STORE_HEADERS,
    )
