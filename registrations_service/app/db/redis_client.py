"""
Redis client for Registrations Service.
Handles distributed locking for the approval gate and the real-time
notification channel.
"""

import asyncio
import time
import uuid
from typing import Optional
import redis.asyncio as redis
from redis.asyncio import Redis
import logging

from app.core.errors import LockUnavailableError

logger = logging.getLogger(__name__)


# Deletes the lock only if it is still held by the caller's token
RELEASE_LOCK_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class RedisManager:
    """
    Redis manager for locking and pub/sub operations.
    """

    def __init__(self):
        self.redis_client: Optional[Redis] = None
        self._initialized = False

    async def initialize(self, redis_url: Optional[str] = None):
        """Initialize Redis connection."""
        if self._initialized:
            return

        try:
            if redis_url is None:
                from app.core.config import config
                redis_url = await config.get_redis_url()

            self.redis_client = redis.from_url(
                redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
                health_check_interval=30
            )

            # Test connection
            await self.redis_client.ping()
            self._initialized = True
            logger.info("Redis client initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize Redis client: {e}")
            raise

    async def close(self):
        """Close Redis connection."""
        if self.redis_client:
            await self.redis_client.aclose()
        self._initialized = False
        logger.info("Redis connection closed")

    async def publish(self, channel: str, message: str) -> int:
        """
        Publish a message on a pub/sub channel.

        Returns:
            Number of subscribers that received the message
        """
        if not self._initialized:
            raise RuntimeError("Redis manager not initialized")

        return await self.redis_client.publish(channel, message)

    # Distributed Locking
    async def acquire_lock(self, lock_key: str, token: str, timeout: int = 30, blocking_timeout: int = 10) -> bool:
        """
        Acquire a distributed lock.

        Args:
            lock_key: Unique key for the lock
            token: Value identifying the holder
            timeout: Lock timeout in seconds
            blocking_timeout: Maximum time to wait for lock acquisition

        Returns:
            True if lock acquired, False otherwise
        """
        if not self._initialized:
            raise RuntimeError("Redis manager not initialized")

        end_time = time.monotonic() + blocking_timeout

        while time.monotonic() < end_time:
            result = await self.redis_client.set(lock_key, token, nx=True, ex=timeout)

            if result:
                logger.debug(f"Distributed lock acquired: {lock_key}")
                return True

            # Wait a bit before retrying
            await asyncio.sleep(0.05)

        logger.warning(f"Failed to acquire lock {lock_key} within {blocking_timeout}s")
        return False

    async def release_lock(self, lock_key: str, token: str) -> bool:
        """
        Release a distributed lock held under the given token.

        Returns:
            True if lock released, False otherwise
        """
        try:
            result = await self.redis_client.eval(RELEASE_LOCK_SCRIPT, 1, lock_key, token)
            if result:
                logger.debug(f"Distributed lock released: {lock_key}")
                return True
            logger.warning(f"Lock {lock_key} was no longer held at release")
            return False
        except Exception as e:
            logger.error(f"Error releasing lock {lock_key}: {e}")
            return False

    async def health_check(self) -> bool:
        """Check Redis connection health."""
        try:
            if not self._initialized:
                return False

            result = await self.redis_client.ping()
            return result is True
        except Exception as e:
            logger.error(f"Redis health check failed: {e}")
            return False


class DistributedLock:
    """
    Context manager for distributed locks with automatic cleanup.
    """

    def __init__(self, redis_manager: RedisManager, lock_key: str, timeout: int = 30, blocking_timeout: int = 10):
        self.redis_manager = redis_manager
        self.lock_key = lock_key
        self.timeout = timeout
        self.blocking_timeout = blocking_timeout
        self.token = uuid.uuid4().hex
        self.acquired = False

    async def __aenter__(self):
        self.acquired = await self.redis_manager.acquire_lock(
            self.lock_key,
            self.token,
            self.timeout,
            self.blocking_timeout
        )
        if not self.acquired:
            raise LockUnavailableError(self.lock_key)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.acquired:
            await self.redis_manager.release_lock(self.lock_key, self.token)
            self.acquired = False
