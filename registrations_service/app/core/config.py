"""
Configuration management for Registrations Service.
Uses Zero Python SDK for secure configuration.
Covers registration consistency, ticketing and notification settings.
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
    Secrets are fetched once and cached for the lifetime of the process.
    """

    def __init__(self, zero_token: str, caller_name: str = "eventsphere"):
        self.zero_token = zero_token
        self.caller_name = caller_name
        self._cache: Dict[str, Any] = {}
        self._secrets = None

    async def _fetch_secrets(self):
        """Fetch secrets from Zero if not already cached."""
        if self._secrets is None:
            try:
                loop = asyncio.get_running_loop()
                with concurrent.futures.ThreadPoolExecutor() as executor:
                    self._secrets = await loop.run_in_executor(
                        executor,
                        lambda: zero(
                            token=self.zero_token,
                            pick=["eventsphere"],
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
            key: The secret key to retrieve

        Returns:
            Secret value or None if not found
        """
        try:
            key = self._normalize_key(key)
            if key in self._cache:
                return self._cache[key]

            await self._fetch_secrets()
            eventsphere_secrets = self._secrets.get("eventsphere", {})
            secret_value = eventsphere_secrets.get(key)

            if secret_value:
                self._cache[key] = secret_value

            return secret_value

        except Exception as e:
            logger.error(f"Failed to fetch secret {key}: {e}")
            return None

    async def close(self):
        """Close method for compatibility."""
        pass


class RegistrationsConfig:
    """
    Registrations Service configuration manager.
    Every getter falls back to a local default when the secret is absent.
    """

    def __init__(self):
        self.zero_token = os.getenv("ZERO_TOKEN")
        if not self.zero_token:
            raise ValueError("ZERO_TOKEN environment variable is required")

        self.secrets_manager = ZeroSecretsManager(self.zero_token)

    async def _get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return await self.secrets_manager.get_secret(key) or default

    async def _get_int(self, key: str, default: int) -> int:
        value = await self.secrets_manager.get_secret(key)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            logger.warning(f"Secret {key} is not an integer ({value!r}), using {default}")
            return default

    async def _get_flag(self, key: str, default: bool) -> bool:
        value = await self.secrets_manager.get_secret(key)
        if value is None:
            return default
        return str(value).strip().lower() in ("1", "true", "yes", "on")

    async def get_database_url(self) -> str:
        """Get the PostgreSQL connection URL shared with the events service."""
        host = await self._get("DB_HOST", "localhost")
        port = await self._get("DB_PORT", "5432")
        name = await self._get("DB_NAME", "eventsphere")
        user = await self._get("DB_USER", "eventsphere")
        password = await self._get("DB_PASSWORD", "eventsphere123")

        return f"postgresql://{user}:{quote_plus(password)}@{host}:{port}/{name}"

    async def get_database_config(self) -> Dict[str, Any]:
        """Get database pool configuration."""
        return {
            "pool_size": await self._get_int("DB_POOL_SIZE", 20),
            "max_overflow": await self._get_int("DB_MAX_OVERFLOW", 30),
            "pool_timeout": await self._get_int("DB_POOL_TIMEOUT", 30),
            "pool_recycle": await self._get_int("DB_POOL_RECYCLE", 3600),
        }

    async def get_redis_url(self) -> str:
        """Get the Redis URL used for live pushes and approval locks."""
        host = await self._get("REDIS_HOST", "localhost")
        port = await self._get("REDIS_PORT", "6379")
        password = await self._get("REDIS_PASSWORD")
        scheme = "rediss" if await self._get_flag("REDIS_USE_TLS", False) else "redis"

        credentials = f":{quote_plus(password)}@" if password else ""
        return f"{scheme}://{credentials}{host}:{port}"

    async def get_jwt_settings(self) -> Dict[str, str]:
        """Get the JWT secret and algorithm issued by the auth service."""
        return {
            "secret": await self._get("JWT_SECRET", "your-secret-key-change-in-production"),
            "algorithm": await self._get("JWT_ALGORITHM", "HS256"),
        }

    async def get_consistency_config(self) -> Dict[str, Any]:
        """Get locking configuration for the approval capacity gate."""
        return {
            "lock_timeout_seconds": await self._get_int("LOCK_TIMEOUT_SECONDS", 30),
            "lock_blocking_timeout_seconds": await self._get_int("LOCK_BLOCKING_TIMEOUT_SECONDS", 10),
            "enable_distributed_locks": await self._get_flag("ENABLE_DISTRIBUTED_LOCKS", False),
        }

    async def get_registration_config(self) -> Dict[str, Any]:
        """Get ticket configuration."""
        return {
            "frontend_url": (await self._get("FRONTEND_URL", "http://localhost:3000")).rstrip("/"),
            "ticket_duration_minutes": await self._get_int("TICKET_DURATION_MINUTES", 60),
        }

    async def get_notification_config(self) -> Dict[str, Any]:
        """Get in-app and email notification configuration."""
        return {
            "ttl_days": await self._get_int("NOTIFICATION_TTL_DAYS", 30),
            "enable_realtime_push": await self._get_flag("ENABLE_REALTIME_PUSH", True),
            "enable_email_notifications": await self._get_flag("ENABLE_EMAIL_NOTIFICATIONS", True),
            "bulk_max_recipients": await self._get_int("BULK_MAX_RECIPIENTS", 1000),
        }

    async def close(self):
        """Close the secrets manager."""
        await self.secrets_manager.close()


# Global config instance
config = RegistrationsConfig()
