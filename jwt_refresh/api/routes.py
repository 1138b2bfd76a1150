from typing import Annotated

from fastapi import APIRouter, Depends

from jwt_refresh.api import auth
from jwt_refresh.api.deps import get_jwt_auth
from jwt_refresh.core.config import Environment, settings
from jwt_refresh.schemas import HealthCheckResponse
from jwt_refresh.services.jwt_auth import JWTAuth
from jwt_refresh.services.secret_store import RedisSecretStore

# Environments where tokens can be issued without credentials
LOGIN_ENVIRONMENTS = {Environment.LOCAL, Environment.DEV}

LOGIN_PATH = "/auth/login"

api_router = APIRouter()


@api_router.get(
    "/health",
    response_model=HealthCheckResponse,
    tags=["Health"],
    summary="Health Check",
)
async def health_check(auth: Annotated[JWTAuth, Depends(get_jwt_auth)]):
    if isinstance(auth.store, RedisSecretStore):
        is_healthy = await auth.store.health_check()
        # Verification still works against the primary secret
        return HealthCheckResponse(
            status="healthy" if is_healthy else "degraded",
            secret_store="redis" if is_healthy else "redis unavailable",
        )

    return HealthCheckResponse(status="healthy", secret_store="memory")


api_router.include_router(auth.router, prefix="/auth", tags=["Auth"])

if settings.current_environment in LOGIN_ENVIRONMENTS:
    api_router.include_router(auth.login_router, prefix="/auth", tags=["Auth"])
