"""
JSON envelope shared by the API endpoints: {status, message, data}
"""
from typing import Any, Optional

from fastapi.responses import JSONResponse

from pushsvc.errors import (
    NetworkError,
    NotFoundError,
    PushServiceError,
    UpstreamError,
    ValidationError,
)


def api_response(status_code: int, message: str, data: Optional[Any] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "status": "success" if status_code < 400 else "error",
            "message": message,
            "data": data,
        },
    )


def status_for_error(error: PushServiceError) -> int:
    if isinstance(error, ValidationError):
        return 400
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, (NetworkError, UpstreamError)):
        return 502
    return 500


def error_response(error: PushServiceError) -> JSONResponse:
    return api_response(status_for_error(error), error.message)
