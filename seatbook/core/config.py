"""
Configuration management for Seatbook.
Uses Zero Python SDK for secure configuration, with environment fallback.
"""

import os
import asyncio
import concurrent.futures
from urllib.parse import quote_plus
from typing import Dict, Any, Optional
import logging
from zero_python_sdk import zero

logger = logging.getLogger(__name__)


class ZeroSecretsManager:
    """
    Zero secrets client using the official Zero Python SDK.
    Keys missing from Zero are looked up in the process environment.
    """

    def __init__(self, zero_token: Optional[str], caller_name: str = "seatbook"):
        self.zero_token = zero_token
        self.caller_name = caller_name
        self._cache: Dict[str, Any] = {}
        self._secrets = None

    async def _fetch_secrets(self):
        """Fetch secrets from Zero if not already cached."""
        if self._secrets is not None:
            return

        if not self.zero_token:
            self._secrets = {}
            return

        try:
            loop = asyncio.get_running_loop()
            with concurrent.futures.ThreadPoolExecutor() as executor:
                self._secrets = await loop.run_in_executor(
                    executor,
                    lambda: zero(
                        token=self.zero_token,
                        pick=["seatbook"],
                        caller_name=self.caller_name
                    ).fetch()
                )
            logger.info("Successfully fetched secrets from Zero")
        except Exception as e:
            logger.error(f"Failed to fetch secrets from Zero: {e}")
            self._secrets = {}

    def _normalize_key(self, key: str) -> str:
        """Normalize a key to lowercase and replace underscores with hyphens."""
        return key.lower().replace("_", "-")

    async def get_secret(self, key: str) -> Optional[str]:
        """
        Get a secret value by key.

        Args:
            key: The secret key to retrieve (environment variable spelling)

        Returns:
            Secret value or None if not found
        """
        normalized = self._normalize_key(key)
        if normalized in self._cache:
            return self._cache[normalized]

        await self._fetch_secrets()
        secret_value = self._secrets.get("seatbook", {}).get(normalized)

        if secret_value is None:
            secret_value = os.getenv(key)

        if secret_value is not None:
            self._cache[normalized] = secret_value

        return secret_value

    async def close(self):
        """Close method for compatibility."""
        pass


class SeatbookConfig:
    """
    Seatbook configuration manager.
    Groups settings per concern; every getter has a working default.
    """

    def __init__(self):
        self.zero_token = os.getenv("ZERO_TOKEN")
        if not self.zero_token:
            logger.info("ZERO_TOKEN not set, reading configuration from environment")

        self.secrets_manager = ZeroSecretsManager(self.zero_token)

    async def _get_int(self, key: str, default: int) -> int:
        value = await self.secrets_manager.get_secret(key)
        return int(value) if value else default

    async def get_database_url(self) -> str:
        """Get the database connection URL."""
        url = await self.secrets_manager.get_secret("DATABASE_URL")
        if url:
            return url

        host = await self.secrets_manager.get_secret("DB_HOST") or "localhost"
        port = await self.secrets_manager.get_secret("DB_PORT") or "5432"
        name = await self.secrets_manager.get_secret("DB_NAME") or "seatbook"
        user = await self.secrets_manager.get_secret("DB_USER") or "seatbook"
        password = await self.secrets_manager.get_secret("DB_PASSWORD") or "seatbook123"

        return f"postgresql://{user}:{quote_plus(password)}@{host}:{port}/{name}"

    async def get_redis_url(self) -> str:
        """Get the Redis connection URL."""
        host = await self.secrets_manager.get_secret("REDIS_HOST") or "localhost"
        port = await self.secrets_manager.get_secret("REDIS_PORT") or "6379"
        password = await self.secrets_manager.get_secret("REDIS_PASSWORD")
        use_tls = await self.secrets_manager.get_secret("REDIS_USE_TLS")

        protocol = "rediss://" if use_tls == "true" else "redis://"

        if password:
            return f"{protocol}:{quote_plus(password)}@{host}:{port}"
        return f"{protocol}{host}:{port}"

    async def get_jwt_secret(self) -> str:
        """Get JWT secret key shared with the identity provider."""
        return await self.secrets_manager.get_secret("JWT_SECRET") or "your-secret-key-change-in-production"

    async def get_jwt_algorithm(self) -> str:
        """Get JWT algorithm."""
        return await self.secrets_manager.get_secret("JWT_ALGORITHM") or "HS256"

    async def get_qr_secret(self) -> str:
        """Get the HMAC secret used to sign ticket verification codes."""
        return await self.secrets_manager.get_secret("QR_SECRET") or "dev-qr-secret-change-in-production"

    async def get_cache_config(self) -> Dict[str, int]:
        """Get cache TTL configuration."""
        return {
            "booked_seats_ttl": await self._get_int("CACHE_TTL_BOOKED_SEATS", 5),
        }

    async def get_consistency_config(self) -> Dict[str, Any]:
        """Get consistency settings for the booking protocol."""
        return {
            "max_retry_attempts": await self._get_int("MAX_RETRY_ATTEMPTS", 3),
        }

    async def get_booking_config(self) -> Dict[str, Any]:
        """Get booking-specific configuration."""
        return {
            "ticket_number_prefix": await self.secrets_manager.get_secret("TICKET_NUMBER_PREFIX") or "TKT",
        }

    async def get_seat_map_config(self) -> Dict[str, int]:
        """Get the seat grid dimensions."""
        return {
            "rows": await self._get_int("SEAT_MAP_ROWS", 4),
            "seats_per_row": await self._get_int("SEAT_MAP_SEATS_PER_ROW", 8),
        }

    async def get_refresh_config(self) -> Dict[str, float]:
        """Get availability refresh settings."""
        interval = await self.secrets_manager.get_secret("AVAILABILITY_POLL_INTERVAL_SECONDS")
        return {
            "poll_interval_seconds": float(interval) if interval else 10.0,
            "channel_prefix": await self.secrets_manager.get_secret("CHANGE_CHANNEL_PREFIX") or "seatbook:events",
        }

    async def get_database_config(self) -> Dict[str, Any]:
        """Get database pool configuration."""
        return {
            "pool_size": await self._get_int("DB_POOL_SIZE", 20),
            "max_overflow": await self._get_int("DB_MAX_OVERFLOW", 30),
            "pool_timeout": await self._get_int("DB_POOL_TIMEOUT", 30),
            "pool_recycle": await self._get_int("DB_POOL_RECYCLE", 3600),
        }

    async def close(self):
        """Close the secrets manager."""
        await self.secrets_manager.close()


# Global config instance
config = SeatbookConfig()
