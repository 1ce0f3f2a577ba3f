"""Error kinds raised by the repository and session layers.

Each kind carries the HTTP status it maps to, so the exception handlers in
``backend.main`` can render any of them as ``{"message": ..., "status": ...}``.
"""


class AppError(Exception):
    """Base exception for backend errors."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {"message": self.message, "status": self.status_code}


class BadInput(AppError):
    status_code = 400


class Unauthorized(AppError):
    status_code = 401


class NotFound(AppError):
    status_code = 404


class Conflict(AppError):
    status_code = 409
