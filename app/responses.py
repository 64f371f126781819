# app/responses.py
from typing import Optional

from starlette.responses import JSONResponse

from app.models import ErrorResponse


def error_response(status_code: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    # Same shape as every other API error: status, message and an empty data payload
    return JSONResponse(
        ErrorResponse(status=status_code, message=message).model_dump(),
        status_code=status_code,
        headers=headers,
    )
