import asyncio
import json

from loguru import logger
from pydantic import TypeAdapter, ValidationError
from redis.asyncio import Redis

from jwt_refresh.core.config import settings
from jwt_refresh.core.exceptions.token import SecretStoreError
from jwt_refresh.core.types import SecretRecordDict
from jwt_refresh.schemas import SecretRecord
from jwt_refresh.services.redis_client import RedisConnection
from jwt_refresh.services.secret_store.base import SecretStore, merge_records

SECRET_BUFFER_ADAPTER = TypeAdapter(list[SecretRecord])


class RedisSecretStore(RedisConnection, SecretStore):
    """
    Secret buffer shared between processes through a single Redis key.

    The buffer is stored as a JSON list. Redis problems never reach the request:
    reads degrade to an empty buffer and failed writes are only logged, which
    leaves verification against the primary secret working.

    Concurrent rotations from several instances are last-write-wins. A lost
    update can only drop a retired secret early, never keep one past its deadline.
    """

    def __init__(
        self,
        capacity: int = 1,
        key: str | None = None,
        timeout: float | None = None,
        redis_client: Redis | None = None,
    ):
        SecretStore.__init__(self, capacity)
        RedisConnection.__init__(self, redis_client, timeout)
        self.key = key or settings.secret_buffer_redis_key

    async def get_all(self) -> list[SecretRecord]:
        """
        Read the buffer from Redis.

        Returns:
            list[SecretRecord]: Records, newest first; empty if Redis is unavailable
            or the stored value cannot be parsed
        """
        try:
            return await self._load()
        except SecretStoreError as e:
            logger.warning(f"Secret buffer treated as empty: {e}")
            return []

    async def add(self, records: list[SecretRecord]) -> None:
        """
        Merge records into the stored buffer (read, merge, write).

        Nothing is written when the stored buffer cannot be read, so a Redis
        hiccup never replaces the retired secrets with the incoming ones.

        Args:
            records: Records to insert, newest first
        """
        if not self.redis_client:
            logger.debug("Redis client not initialized in RedisSecretStore, skipping write")
            return

        try:
            existing = await self._load()
        except SecretStoreError as e:
            logger.error(f"Secret buffer write skipped, stored buffer unreadable: {e}")
            return

        merged = merge_records(records, existing, self.capacity)

        try:
            async with asyncio.timeout(self.timeout):
                await self.redis_client.set(self.key, self._serialize(merged))
        except Exception as e:
            logger.error(f"Secret buffer write failed for key {self.key}: {e!r}")

    async def _load(self) -> list[SecretRecord]:
        """
        Read and parse the stored buffer.

        Raises:
            SecretStoreError: If Redis fails or the stored value is not a valid buffer
        """
        if not self.redis_client:
            return []

        try:
            async with asyncio.timeout(self.timeout):
                raw = await self.redis_client.get(self.key)
        except Exception as e:
            raise SecretStoreError(f"Secret buffer read failed for key {self.key}", e)

        if not raw:
            return []

        try:
            records = SECRET_BUFFER_ADAPTER.validate_json(raw)
        except ValidationError as e:
            raise SecretStoreError(
                f"Secret buffer under key {self.key} is not valid: {e.error_count()} error(s)"
            )

        return records[: self.capacity]

    @staticmethod
    def _serialize(records: list[SecretRecord]) -> str:
        entries = [
            SecretRecordDict(secret=record.secret, valid_until=record.valid_until)
            for record in records
        ]
        return json.dumps(entries)
