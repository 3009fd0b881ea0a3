from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

__all__ = [
    "TmdbCastMember",
    "TmdbRecommendation",
    "TmdbDetail",
]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TmdbCastMember(_CamelModel):
    id: int
    name: str
    character: str = ""
    profile: str = ""


class TmdbRecommendation(_CamelModel):
    id: int
    media_type: str
    title: str
    poster: str = ""
    backdrop: str = ""
    year: str = ""
    score: str = ""
    vote_count: int = 0


class TmdbDetail(_CamelModel):
    id: int
    media_type: str
    title: str
    logo: str | None = None
    logo_aspect_ratio: float | None = None
    overview: str
    backdrop: str = ""
    poster: str = ""
    score: str = ""
    vote_count: int = 0
    year: str = ""
    runtime: int | None = None
    seasons: int | None = None
    episodes: int | None = None
    content_rating: str = ""
    genres: list[str] = []
    language: str = ""
    popularity: int | None = None
    cast: list[TmdbCastMember] = []
    recommendations: list[TmdbRecommendation] = []
    trailer_url: str = ""
