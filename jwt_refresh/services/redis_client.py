import asyncio

from loguru import logger
from redis.asyncio import ConnectionPool, Redis

from jwt_refresh.core.config import Environment, settings

# Process wide pool shared by every Redis backed store
_redis_pool: ConnectionPool | None = None


def get_redis_pool() -> ConnectionPool:
    """
    Get or create the shared Redis connection pool.

    Returns:
        ConnectionPool: Pool built from the Redis settings
    """
    global _redis_pool

    if _redis_pool is None:
        _redis_pool = ConnectionPool.from_url(
            settings.redis_url.human_repr(),
            decode_responses=True,
            max_connections=settings.redis_max_pool_connections,
            retry_on_timeout=True,
            socket_connect_timeout=settings.redis_socket_connect_timeout,
            socket_timeout=settings.redis_socket_timeout,
        )
        logger.info(
            f"Redis pool created for {settings.redis_host}:{settings.redis_port} "
            f"(max_connections={settings.redis_max_pool_connections})"
        )

    return _redis_pool


async def close_redis_pool():
    """Disconnect every pooled connection; the next get_redis_pool() starts a new pool."""
    global _redis_pool

    if _redis_pool is None:
        return

    pool, _redis_pool = _redis_pool, None
    await pool.aclose()
    logger.info("Redis pool closed")


class RedisConnection:
    """
    Redis access for the stores built on it.

    Without an injected client one is taken from the shared pool, except in the
    local environment where Redis is not used and ``redis_client`` stays None.

    Args:
        redis_client: Client to use instead of the shared pool
        timeout: Upper bound in seconds for a single Redis call
    """

    def __init__(self, redis_client: Redis | None = None, timeout: float | None = None):
        self.timeout = timeout if timeout is not None else settings.secret_store_timeout
        self._redis_client = redis_client

        if self._redis_client is None and settings.current_environment != Environment.LOCAL:
            self._redis_client = Redis(connection_pool=get_redis_pool())
            logger.debug(f"{self.__class__.__name__} connected through the shared Redis pool")

    @property
    def redis_client(self) -> Redis | None:
        return self._redis_client

    async def health_check(self) -> bool:
        """
        Ping Redis within the call timeout.

        Returns:
            bool: True if Redis answered, False if it did not or is not in use
        """
        if self.redis_client is None:
            return False

        try:
            async with asyncio.timeout(self.timeout):
                await self.redis_client.ping()
        except Exception as e:
            logger.error(f"Redis health check failed for {self.__class__.__name__}: {e!r}")
            return False

        return True

    async def close(self):
        """Release the client; the shared pool is closed separately."""
        if self.redis_client is None:
            return

        try:
            await self.redis_client.aclose()
        except Exception as e:
            logger.error(f"Error closing Redis client for {self.__class__.__name__}: {e!r}")
