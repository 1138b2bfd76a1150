import json
from unittest.mock import AsyncMock, Mock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from jwt_refresh.core.config import Environment
from jwt_refresh.schemas import SecretRecord
from jwt_refresh.services.secret_store import RedisSecretStore
from tests.utils import DAY, NOW

KEY = "jwt:secret_buffer:test"


def stored(*records: tuple[str, int]) -> bytes:
    return json.dumps([{"secret": s, "valid_until": v} for s, v in records]).encode()


@pytest.mark.anyio
class TestRedisSecretStoreRead:
    """Tests for RedisSecretStore.get_all."""

    async def test_reads_records(self, mock_redis_client: AsyncMock):
        mock_redis_client.get.return_value = stored(("s2", NOW + DAY), ("s1", NOW))
        store = RedisSecretStore(capacity=2, key=KEY, redis_client=mock_redis_client)

        records = await store.get_all()

        assert records == [
            SecretRecord(secret="s2", valid_until=NOW + DAY),
            SecretRecord(secret="s1", valid_until=NOW),
        ]
        mock_redis_client.get.assert_awaited_once_with(KEY)

    async def test_missing_key(self, mock_redis_client: AsyncMock):
        store = RedisSecretStore(key=KEY, redis_client=mock_redis_client)

        assert await store.get_all() == []

    async def test_read_failure_is_empty_buffer(self, mock_redis_client: AsyncMock):
        """Test Redis errors degrade to an empty buffer instead of failing the request."""
        mock_redis_client.get.side_effect = RedisConnectionError("connection refused")
        store = RedisSecretStore(key=KEY, redis_client=mock_redis_client)

        assert await store.get_all() == []

    async def test_corrupt_value_is_empty_buffer(self, mock_redis_client: AsyncMock):
        mock_redis_client.get.return_value = b'{"not": "a list"}'
        store = RedisSecretStore(key=KEY, redis_client=mock_redis_client)

        assert await store.get_all() == []

    async def test_truncated_to_capacity(self, mock_redis_client: AsyncMock):
        mock_redis_client.get.return_value = stored(("s3", NOW), ("s2", NOW), ("s1", NOW))
        store = RedisSecretStore(capacity=2, key=KEY, redis_client=mock_redis_client)

        assert [r.secret for r in await store.get_all()] == ["s3", "s2"]

    async def test_without_client(self):
        with patch("jwt_refresh.services.redis_client.settings.current_environment", Environment.LOCAL):
            store = RedisSecretStore(key=KEY)

        assert store.redis_client is None
        assert await store.get_all() == []


@pytest.mark.anyio
class TestRedisSecretStoreWrite:
    """Tests for RedisSecretStore.add."""

    async def test_merges_with_stored_records(self, mock_redis_client: AsyncMock):
        mock_redis_client.get.return_value = stored(("s1", NOW))
        store = RedisSecretStore(capacity=3, key=KEY, redis_client=mock_redis_client)

        await store.add([SecretRecord(secret="s2", valid_until=NOW + DAY)])

        key, value = mock_redis_client.set.await_args.args
        assert key == KEY
        assert json.loads(value) == [
            {"secret": "s2", "valid_until": NOW + DAY},
            {"secret": "s1", "valid_until": NOW},
        ]

    async def test_write_failure_is_swallowed(self, mock_redis_client: AsyncMock):
        mock_redis_client.set.side_effect = RedisConnectionError("connection refused")
        store = RedisSecretStore(key=KEY, redis_client=mock_redis_client)

        await store.add([SecretRecord(secret="s1", valid_until=NOW)])

        mock_redis_client.set.assert_awaited_once()

    async def test_rotate_writes_new_head(self, mock_redis_client: AsyncMock):
        mock_redis_client.get.return_value = stored(("s1", NOW))
        store = RedisSecretStore(capacity=2, key=KEY, redis_client=mock_redis_client)

        records = await store.rotate("s2", NOW + DAY)

        assert [r.secret for r in records] == ["s2", "s1"]
        assert all(r.valid_until == NOW + DAY for r in records)
        mock_redis_client.set.assert_awaited_once()

    async def test_rotate_skips_write_when_head_is_current(self, mock_redis_client: AsyncMock):
        mock_redis_client.get.return_value = stored(("s1", NOW + DAY))
        store = RedisSecretStore(capacity=2, key=KEY, redis_client=mock_redis_client)

        await store.rotate("s1", NOW + 2 * DAY)

        mock_redis_client.set.assert_not_awaited()


class TestRedisClientConnection:
    """Tests for the shared Redis connection handling."""

    def test_client_created_from_pool_outside_local(self):
        with patch("jwt_refresh.services.redis_client.settings.current_environment", Environment.DEV):
            with patch("jwt_refresh.services.redis_client.get_redis_pool", return_value=Mock()):
                with patch("jwt_refresh.services.redis_client.Redis") as mock_redis_class:
                    store = RedisSecretStore(key=KEY)

        assert store.redis_client is mock_redis_class.return_value

    def test_get_redis_pool_reuses_pool(self):
        import jwt_refresh.services.redis_client as redis_client_module

        mock_pool = Mock()
        with patch.object(redis_client_module, "_redis_pool", None):
            with patch(
                "jwt_refresh.services.redis_client.ConnectionPool.from_url", return_value=mock_pool
            ) as mock_from_url:
                assert redis_client_module.get_redis_pool() is mock_pool
                assert redis_client_module.get_redis_pool() is mock_pool

        mock_from_url.assert_called_once()

    @pytest.mark.anyio
    async def test_health_check(self, mock_redis_client: AsyncMock):
        store = RedisSecretStore(key=KEY, redis_client=mock_redis_client)

        assert await store.health_check() is True

        mock_redis_client.ping.side_effect = RedisConnectionError("down")
        assert await store.health_check() is False

    @pytest.mark.anyio
    async def test_close(self, mock_redis_client: AsyncMock):
        store = RedisSecretStore(key=KEY, redis_client=mock_redis_client)

        await store.close()

        mock_redis_client.aclose.assert_awaited_once()

    @pytest.mark.anyio
    async def test_close_redis_pool(self):
        import jwt_refresh.services.redis_client as redis_client_module

        mock_pool = AsyncMock()
        with patch.object(redis_client_module, "_redis_pool", mock_pool):
            await redis_client_module.close_redis_pool()

            assert redis_client_module._redis_pool is None

        mock_pool.aclose.assert_awaited_once()


@pytest.mark.anyio
class TestRedisSecretStoreUnreadableBuffer:
    """Tests for writes when the stored buffer cannot be read."""

    async def test_read_failure_skips_write(self, mock_redis_client: AsyncMock):
        mock_redis_client.get.side_effect = RedisConnectionError("connection refused")
        store = RedisSecretStore(capacity=3, key=KEY, redis_client=mock_redis_client)

        records = await store.rotate("s3", NOW + DAY)

        assert [r.secret for r in records] == ["s3"]
        mock_redis_client.set.assert_not_awaited()

    async def test_corrupt_value_is_not_overwritten(self, mock_redis_client: AsyncMock):
        """Test a truncated buffer keeps its retired secrets instead of being replaced."""
        mock_redis_client.get.return_value = stored(("s2", NOW + DAY), ("s1", NOW))[:-10]
        store = RedisSecretStore(capacity=3, key=KEY, redis_client=mock_redis_client)

        await store.rotate("s3", NOW + DAY)

        mock_redis_client.set.assert_not_awaited()

    async def test_add_after_recovery_merges(self, mock_redis_client: AsyncMock):
        mock_redis_client.get.side_effect = [
            RedisConnectionError("connection refused"),
            stored(("s2", NOW + DAY), ("s1", NOW)),
        ]
        store = RedisSecretStore(capacity=3, key=KEY, redis_client=mock_redis_client)

        await store.add([SecretRecord(secret="s3", valid_until=NOW + DAY)])
        mock_redis_client.set.assert_not_awaited()

        await store.add([SecretRecord(secret="s3", valid_until=NOW + DAY)])

        _, value = mock_redis_client.set.await_args.args
        assert [entry["secret"] for entry in json.loads(value)] == ["s3", "s2", "s1"]
