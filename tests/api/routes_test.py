from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from jwt_refresh.core.config import SecretBufferBackend, Settings
from jwt_refresh.main import build_secret_store, create_app
from jwt_refresh.schemas import JWTAuthOptions
from jwt_refresh.services.codec import TokenCodec
from jwt_refresh.services.jwt_auth import JWTAuth
from jwt_refresh.services.secret_store import MemorySecretStore, RedisSecretStore
from tests.utils import HOUR, NOW, FrozenClock, bearer, make_client


@pytest.mark.anyio
class TestHealthRoute:
    """Tests for the health check route."""

    async def test_memory_store(self, options: JWTAuthOptions, clock: FrozenClock):
        app = create_app(JWTAuth(options, clock=clock))

        async with make_client(app) as client:
            response = await client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "secret_store": "memory"}
        assert len(response.headers["X-Request-ID"]) == 8

    async def test_redis_store_down(
        self, options: JWTAuthOptions, clock: FrozenClock, mock_redis_client: AsyncMock
    ):
        mock_redis_client.ping.side_effect = RedisConnectionError("connection refused")
        store = RedisSecretStore(key="jwt:test", redis_client=mock_redis_client)
        app = create_app(JWTAuth(options, store=store, clock=clock))

        async with make_client(app) as client:
            response = await client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "degraded", "secret_store": "redis unavailable"}


@pytest.mark.anyio
class TestAuthRoutes:
    """Tests for the auth routes."""

    async def test_login_then_me(self, options: JWTAuthOptions, clock: FrozenClock):
        app = create_app(JWTAuth(options, clock=clock))

        async with make_client(app) as client:
            login = await client.post(
                "/auth/login", json={"subject": "user-1", "claims": {"role": "admin"}}
            )
            token = login.json()["access_token"]
            me = await client.get("/auth/me", headers=bearer(token))

        assert login.status_code == 200
        assert login.json()["token_type"] == "Bearer"
        assert login.headers["Set-Authorization"] == f"Bearer {token}"

        assert me.status_code == 200
        assert me.json()["payload"] == {
            "sub": "user-1",
            "role": "admin",
            "iat": NOW,
            "exp": NOW + HOUR,
        }

    async def test_login_rejected_by_validation_hook(self, options: JWTAuthOptions, clock: FrozenClock):
        hooked = options.model_copy(update={"on_validate_payload": lambda p: "tenant" in p})
        app = create_app(JWTAuth(hooked, clock=clock))

        async with make_client(app) as client:
            response = await client.post("/auth/login", json={"subject": "user-1"})

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    async def test_me_without_token(self, options: JWTAuthOptions, clock: FrozenClock):
        app = create_app(JWTAuth(options, clock=clock))

        async with make_client(app) as client:
            response = await client.get("/auth/me")

        assert response.status_code == 401
        assert response.json() == {"detail": "Token is missing, please login"}

    async def test_me_passthrough_without_token(self, options: JWTAuthOptions, clock: FrozenClock):
        """Test routes requiring a subject still reject requests let through by passthrough."""
        app = create_app(JWTAuth(options.model_copy(update={"passthrough": True}), clock=clock))

        async with make_client(app) as client:
            response = await client.get("/auth/me")

        assert response.status_code == 401
        assert response.json() == {"detail": "Not authenticated"}

    async def test_me_with_refreshed_token(self, options: JWTAuthOptions, clock: FrozenClock):
        token = TokenCodec().sign({"sub": "user-1"}, options.secret, "1h", NOW - 2 * HOUR)
        app = create_app(JWTAuth(options, clock=clock))

        async with make_client(app) as client:
            response = await client.get("/auth/me", headers=bearer(token))

        assert response.status_code == 200
        assert response.json()["payload"]["exp"] == NOW + HOUR
        assert response.headers["Set-Authorization"].startswith("Bearer ")


class TestBuildSecretStore:
    """Tests for build_secret_store."""

    def test_memory_backend(self):
        store = build_secret_store(Settings(jwt_secret="s", secret_buffer_capacity=3))

        assert isinstance(store, MemorySecretStore)
        assert store.capacity == 3

    def test_redis_backend(self):
        store = build_secret_store(
            Settings(
                jwt_secret="s",
                secret_buffer_backend=SecretBufferBackend.REDIS,
                secret_buffer_redis_key="jwt:secret_buffer:billing",
            )
        )

        assert isinstance(store, RedisSecretStore)
        assert store.key == "jwt:secret_buffer:billing"
