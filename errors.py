"""
Error taxonomy and the JSON response envelope.

Every response body carries a numeric ``status`` that duplicates the HTTP
status code. Successful responses add ``data``; failures add ``message`` and,
for server errors, an ``error`` detail string.
"""
from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None, error: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.error = error


class ValidationError(AppError):
    status_code = 400


class DuplicateError(AppError):
    status_code = 400


class AuthenticationError(AppError):
    status_code = 401


class ForbiddenError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 409


class InternalError(AppError):
    status_code = 500


def success(data: Any = None, message: str = "OK", status_code: int = 200, **extra) -> JSONResponse:
    body = {"status": status_code, "success": True, "message": message}
    if data is not None:
        body["data"] = data
    body.update(extra)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def failure(message: str, status_code: int, error: Optional[str] = None) -> JSONResponse:
    body = {"status": status_code, "success": False, "message": message}
    if error is not None:
        body["error"] = error
    return JSONResponse(status_code=status_code, content=body)
