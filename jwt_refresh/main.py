from fastapi import FastAPI
from fastapi.concurrency import asynccontextmanager
from loguru import logger

from jwt_refresh.api.routes import LOGIN_PATH, api_router
from jwt_refresh.core.config import Environment, SecretBufferBackend, Settings, get_settings, settings
from jwt_refresh.core.logger import configure_uvicorn_logging, setup_logger, shutdown_logger
from jwt_refresh.middleware.jwt import DEFAULT_EXEMPT_PATHS, JWTMiddleware
from jwt_refresh.middleware.logging import LoggingMiddleware
from jwt_refresh.schemas import SettingsOptionsProvider
from jwt_refresh.services.jwt_auth import JWTAuth
from jwt_refresh.services.redis_client import close_redis_pool
from jwt_refresh.services.secret_store import MemorySecretStore, RedisSecretStore, SecretStore


def build_secret_store(app_settings: Settings) -> SecretStore:
    """Secret buffer for the configured backend"""
    if app_settings.secret_buffer_backend == SecretBufferBackend.REDIS:
        return RedisSecretStore(
            capacity=app_settings.secret_buffer_capacity,
            key=app_settings.secret_buffer_redis_key,
            timeout=app_settings.secret_store_timeout,
        )

    return MemorySecretStore(capacity=app_settings.secret_buffer_capacity)


def build_jwt_auth() -> JWTAuth:
    """JWTAuth reading its options from the current settings on every request"""
    return JWTAuth(
        options=SettingsOptionsProvider(get_settings),
        store=build_secret_store(get_settings()),
    )


async def _check_dependencies(jwt_auth: JWTAuth):
    """Check the secret buffer backend before serving requests"""

    if not isinstance(jwt_auth.store, RedisSecretStore):
        return

    is_healthy = await jwt_auth.store.health_check()

    if not is_healthy:
        # Tokens signed with the current secret keep verifying without Redis
        logger.warning("Secret buffer Redis is not reachable, rotated secrets will not be accepted.")
        return

    logger.success("Secret buffer Redis is healthy.")


async def _shutdown_dependencies(jwt_auth: JWTAuth):
    """Shutdown the secret buffer backend gracefully"""

    if isinstance(jwt_auth.store, RedisSecretStore):
        await jwt_auth.store.close()
        await close_redis_pool()


ALLOWED_ENVIRONMENTS = {Environment.LOCAL, Environment.DEV, Environment.STG}


def create_app(jwt_auth: JWTAuth | None = None) -> FastAPI:
    """
    Build the application.

    Args:
        jwt_auth: Authentication to use; built from settings when omitted

    Returns:
        FastAPI: Application with the JWT middleware installed
    """
    jwt_auth = jwt_auth if jwt_auth is not None else build_jwt_auth()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager"""

        setup_logger()
        configure_uvicorn_logging()

        logger.info("Initializing resources...")
        await _check_dependencies(jwt_auth)
        logger.success("Resources initialized.")

        yield  # Application runs here

        logger.info("Cleaning up resources...")
        await _shutdown_dependencies(jwt_auth)
        shutdown_logger()

    app = FastAPI(
        title=settings.app_title,
        version=settings.app_version,
        description=settings.app_description,
        openapi_url=("/openapi.json" if settings.current_environment in ALLOWED_ENVIRONMENTS else None),
        docs_url="/docs" if settings.current_environment in ALLOWED_ENVIRONMENTS else None,
        redoc_url="/redoc" if settings.current_environment in ALLOWED_ENVIRONMENTS else None,
        lifespan=lifespan,
        generate_unique_id_function=lambda route: f"{route.tags[0]}-{route.name}",
    )

    app.state.jwt_auth = jwt_auth

    # Set JWT middleware
    app.add_middleware(
        JWTMiddleware,
        auth=jwt_auth,
        exempt_paths={*DEFAULT_EXEMPT_PATHS, LOGIN_PATH},
    )

    # Set logging middleware, outermost so auth failures carry a request ID
    app.add_middleware(LoggingMiddleware)

    # Include API router
    app.include_router(api_router)

    return app


app = create_app()
