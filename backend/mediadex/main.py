from fastapi import FastAPI

from mediadex.api.main import api_router
from mediadex.core.config import settings
from mediadex.exceptions.handlers import register_exception_handlers

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
)
register_exception_handlers(app)
app.include_router(api_router, prefix=settings.API_V1_STR)
