"""
Redis client for Seatbook.
Handles the booked-seat cache and change notifications.
Redis is an optimization: when it is unreachable, reads miss and publishes are dropped.
"""

import json
from typing import Optional, Dict, Any, Union, List
import redis.asyncio as redis
from redis.asyncio import Redis
from redis.asyncio.client import PubSub
import logging

from seatbook.core.config import config

logger = logging.getLogger(__name__)


class RedisManager:
    """
    Redis manager for caching and pub/sub.
    """

    def __init__(self):
        self.redis_client: Optional[Redis] = None
        self._initialized = False

    async def initialize(self):
        """Initialize Redis connection."""
        if self._initialized:
            return

        try:
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

    async def _ensure_initialized(self) -> bool:
        if self._initialized:
            return True
        try:
            await self.initialize()
            return True
        except Exception:
            return False

    async def close(self):
        """Close Redis connection."""
        if self.redis_client:
            await self.redis_client.aclose()
        self._initialized = False
        logger.info("Redis connection closed")

    # Cache Operations
    async def get(self, key: str) -> Optional[str]:
        """Get value from cache."""
        if not await self._ensure_initialized():
            return None

        try:
            return await self.redis_client.get(key)
        except Exception as e:
            logger.error(f"Redis get error for key {key}: {e}")
            return None

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        """Set value in cache with optional TTL."""
        if not await self._ensure_initialized():
            return False

        try:
            if ttl:
                return bool(await self.redis_client.setex(key, ttl, value))
            return bool(await self.redis_client.set(key, value))
        except Exception as e:
            logger.error(f"Redis set error for key {key}: {e}")
            return False

    async def delete(self, key: str) -> bool:
        """Delete key from cache."""
        if not await self._ensure_initialized():
            return False

        try:
            result = await self.redis_client.delete(key)
            return result > 0
        except Exception as e:
            logger.error(f"Redis delete error for key {key}: {e}")
            return False

    # JSON Operations
    async def get_json(self, key: str) -> Optional[Union[Dict[str, Any], List[Any]]]:
        """Get JSON value from cache."""
        value = await self.get(key)
        if value:
            try:
                return json.loads(value)
            except json.JSONDecodeError as e:
                logger.error(f"JSON decode error for key {key}: {e}")
        return None

    async def set_json(self, key: str, value: Union[Dict[str, Any], List[Any]], ttl: Optional[int] = None) -> bool:
        """Set JSON value in cache."""
        try:
            json_value = json.dumps(value)
        except (TypeError, ValueError) as e:
            logger.error(f"JSON encode error for key {key}: {e}")
            return False
        return await self.set(key, json_value, ttl)

    # Pub/Sub
    async def publish(self, channel: str, message: str) -> int:
        """Publish a message; returns the number of receivers."""
        if not await self._ensure_initialized():
            return 0

        try:
            return await self.redis_client.publish(channel, message)
        except Exception as e:
            logger.error(f"Redis publish error for channel {channel}: {e}")
            return 0

    async def subscribe(self, *channels: str) -> Optional[PubSub]:
        """Open a pub/sub connection subscribed to the given channels."""
        if not await self._ensure_initialized():
            return None

        try:
            pubsub = self.redis_client.pubsub()
            await pubsub.subscribe(*channels)
            return pubsub
        except Exception as e:
            logger.error(f"Redis subscribe error for channels {channels}: {e}")
            return None

    # Health Check
    async def health_check(self) -> bool:
        """Check Redis connection health."""
        try:
            if not self._initialized:
                await self.initialize()

            result = await self.redis_client.ping()
            return result is True
        except Exception as e:
            logger.error(f"Redis health check failed: {e}")
            return False


# Global Redis manager instance
redis_manager = RedisManager()
