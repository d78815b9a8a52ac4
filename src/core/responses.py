"""Standard JSON response envelopes.

Success bodies look like ``{"success": true, "data": ..., "message": ...}``;
error bodies look like ``{"success": false, "error": {"message", "code", "details"}}``.

Shared by the API routes and the request interceptors in ``src.auth``.
"""

from typing import Any, Literal, Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field


class ApiSuccess(BaseModel):
    """Successful response envelope."""

    success: Literal[True] = True
    data: Any = Field(None, description="Response payload")
    message: Optional[str] = Field(None, description="Human-readable message")


class ApiErrorBody(BaseModel):
    """Error details inside an error envelope."""

    message: str = Field(..., description="Human-readable error message")
    code: Optional[str] = Field(None, description="Machine-readable error code")
    details: Optional[Any] = Field(None, description="Additional error details")


class ApiError(BaseModel):
    """Error response envelope."""

    success: Literal[False] = False
    error: ApiErrorBody


def success_response(
    data: Any,
    message: Optional[str] = None,
    status_code: int = status.HTTP_200_OK,
) -> JSONResponse:
    content = {"success": True, "data": jsonable_encoder(data, by_alias=True)}
    if message is not None:
        content["message"] = message
    return JSONResponse(status_code=status_code, content=content)


def error_response(
    message: str,
    status_code: int = status.HTTP_400_BAD_REQUEST,
    code: Optional[str] = None,
    details: Any = None,
    headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    body = ApiError(error=ApiErrorBody(message=message, code=code, details=details))
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", exclude_none=True),
        headers=headers,
    )


def unauthorized_response(message: str = "Unauthorized") -> JSONResponse:
    return error_response(message, status.HTTP_401_UNAUTHORIZED, "UNAUTHORIZED")


def service_unavailable_response(message: str, code: str) -> JSONResponse:
    return error_response(message, status.HTTP_503_SERVICE_UNAVAILABLE, code)


def rate_limited_response(headers: dict[str, str]) -> JSONResponse:
    return error_response(
        "Rate limit exceeded. Please try again later.",
        status.HTTP_429_TOO_MANY_REQUESTS,
        "RATE_LIMIT_EXCEEDED",
        headers=headers,
    )
