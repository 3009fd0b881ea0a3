from fastapi import status

from .base import AppError


class MissingLookupInputError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, expected: str = "id or title"):
        self.expected = expected
        detail = f"missing {expected} parameter"
        super().__init__(detail)


class TmdbApiKeyMissingError(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail = "tmdb api key missing"


class TmdbDetailNotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, title: str | None = None, tmdb_id: int | None = None):
        self.title = title
        self.tmdb_id = tmdb_id
        super().__init__("tmdb detail not found")


class TmdbDetailRequestFailedError(AppError):
    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, media_type: str, tmdb_id: int):
        self.media_type = media_type
        self.tmdb_id = tmdb_id
        super().__init__("tmdb detail request failed")
