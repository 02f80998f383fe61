"""Uniform success envelope for API responses."""

from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def api_response(data: Any, message: str = "Success", status_code: int = 200) -> JSONResponse:
    """
    Wrap a payload in the success envelope.

    Pydantic models inside ``data`` are serialized with their camelCase aliases.

    Args:
        data: Response payload
        message: Human-readable message
        status_code: HTTP status, mirrored in the body

    Returns:
        JSONResponse with ``statusCode``, ``data``, ``message`` and ``success``
    """
    return JSONResponse(
        status_code=status_code,
        content={
            "statusCode": status_code,
            "data": jsonable_encoder(data),
            "message": message,
            "success": status_code < 400,
        },
    )
