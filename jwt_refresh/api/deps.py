from typing import Annotated, Any

from fastapi import Depends, Request

from jwt_refresh.core.exceptions import http_exceptions
from jwt_refresh.core.exceptions.auth import BEARER_CHALLENGE
from jwt_refresh.services.jwt_auth import JWTAuth


def get_jwt_auth(request: Request) -> JWTAuth:
    """JWTAuth instance the application was built with"""
    return request.app.state.jwt_auth


async def get_current_subject(
    request: Request,
    auth: Annotated[JWTAuth, Depends(get_jwt_auth)],
) -> dict[str, Any] | None:
    """
    Payload accepted by the JWT middleware for this request.

    Returns None for requests let through unauthenticated in passthrough mode.
    """
    return auth.current_subject(request)


async def require_current_subject(
    subject: Annotated[dict[str, Any] | None, Depends(get_current_subject)],
) -> dict[str, Any]:
    """
    Payload accepted by the JWT middleware, required.

    Raises:
        UnauthorizedException: If the request is unauthenticated
    """
    if subject is None:
        raise http_exceptions.UnauthorizedException(
            detail="Not authenticated",
            headers=dict(BEARER_CHALLENGE),
        )

    return subject
