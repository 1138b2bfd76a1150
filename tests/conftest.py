import os

# Settings are loaded on import, the secret has no default
os.environ.setdefault("JWT_SECRET", "test-primary-secret")
os.environ.setdefault("CURRENT_ENVIRONMENT", "local")

from unittest.mock import AsyncMock  # noqa: E402

import pytest  # noqa: E402
from faker import Faker  # noqa: E402
from redis.asyncio import Redis  # noqa: E402

from jwt_refresh.schemas import JWTAuthOptions  # noqa: E402
from tests.utils import NOW, FrozenClock  # noqa: E402


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def faker_instance() -> Faker:
    """Create a Faker instance for test data generation."""
    return Faker()


@pytest.fixture
def clock() -> FrozenClock:
    """Clock frozen at a fixed unix time."""
    return FrozenClock(NOW)


@pytest.fixture
def secret(faker_instance: Faker) -> str:
    return faker_instance.sha256()


@pytest.fixture
def options(secret: str) -> JWTAuthOptions:
    """Header transport options with a one hour lifetime and a one day refresh window."""
    return JWTAuthOptions(secret=secret, token_lifetime="1h", auto_refresh_window="1d")


@pytest.fixture
def mock_redis_client() -> AsyncMock:
    """Create a mock Redis client."""
    mock_client = AsyncMock(spec=Redis)
    mock_client.get = AsyncMock(return_value=None)
    mock_client.set = AsyncMock(return_value=True)
    mock_client.ping = AsyncMock(return_value=True)
    mock_client.aclose = AsyncMock()
    return mock_client
