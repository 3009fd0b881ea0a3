from fastapi import APIRouter

from mediadex.api.routes import tmdb, utils

api_router = APIRouter()
api_router.include_router(utils.router)
api_router.include_router(tmdb.router)
