from fastapi import status


class AppError(Exception):
    """Error carrying the HTTP status and message the API layer responds with."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail: str = "An unexpected error occurred"

    def __init__(self, detail: str | None = None):
        if detail:
            self.detail = detail
        super().__init__(self.detail)

    def to_payload(self) -> dict[str, str]:
        return {"detail": self.detail}
