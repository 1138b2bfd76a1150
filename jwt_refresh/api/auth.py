from typing import Annotated, Any

from fastapi import APIRouter, Depends, Response, status

from jwt_refresh.api.deps import get_jwt_auth, require_current_subject
from jwt_refresh.core import responses
from jwt_refresh.schemas import LoginRequest, SubjectResponse, Token
from jwt_refresh.services.jwt_auth import JWTAuth

router = APIRouter()
login_router = APIRouter()


@login_router.post(
    "/login",
    response_model=Token,
    responses={status.HTTP_401_UNAUTHORIZED: {"model": responses.UnauthorizedResponse}},
    summary="Issue a token",
    description="Sign a token for the given subject and return it on the configured transport.",
)
async def login(
    login_in: LoginRequest,
    response: Response,
    auth: Annotated[JWTAuth, Depends(get_jwt_auth)],
):
    payload = {**login_in.claims, "sub": login_in.subject}
    access_token = await auth.inject_token(response, payload)

    return Token(access_token=access_token)


@router.get(
    "/me",
    response_model=SubjectResponse,
    responses={status.HTTP_401_UNAUTHORIZED: {"model": responses.UnauthorizedResponse}},
    summary="Current subject",
    description="Return the payload of the token that authenticated this request.",
)
async def read_current_subject(
    subject: Annotated[dict[str, Any], Depends(require_current_subject)],
):
    return SubjectResponse(payload=subject)
