from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    PROJECT_NAME: str = "mediadex"
    API_V1_STR: str = "/api/v1"
    DEBUG: bool = False

    TMDB_KEY: str = Field(
        default="",
        validation_alias=AliasChoices("TMDB_KEY", "TMDB_API_KEY"),
    )
    TMDB_API_BASE_URL: str = "https://api.themoviedb.org/3"
    TMDB_WEB_BASE_URL: str = "https://www.themoviedb.org"
    TMDB_IMAGE_BASE_URL: str = "https://image.tmdb.org/t/p"
    TMDB_LANGUAGE: str = "zh-CN"


settings = Settings()
