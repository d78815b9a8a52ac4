"""Identity endpoints for the RivalMap API."""

import structlog
from fastapi import APIRouter, Depends, Request, Response

from src.api.dependencies import get_auth_gate
from src.core.responses import ApiError, ApiSuccess, success_response
from src.auth.gate import AuthGate
from src.auth.principal import AuthenticatedRequest

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


async def _current_user(auth_request: AuthenticatedRequest) -> Response:
    logger.debug("current_user_requested", user_id=auth_request.principal.id)
    return success_response(auth_request.principal, "User retrieved successfully")


@router.get(
    "/me",
    summary="Current user",
    description="Return the principal resolved from the bearer token.",
    responses={
        200: {"model": ApiSuccess, "description": "User retrieved successfully"},
        401: {"model": ApiError, "description": "Missing, invalid or expired token"},
        503: {"model": ApiError, "description": "Identity store unavailable"},
    },
)
async def me(request: Request, gate: AuthGate = Depends(get_auth_gate)) -> Response:
    return await gate(request, _current_user)
