"""
Redis-backed launch data storage.

Holds launch messages between the launch render and the OIDC authorization
request, and login sessions.  Implements PyLTI1p3's ``LaunchDataStorage``
interface so the same store can back library-driven flows.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from pylti1p3.launch_data_storage.base import LaunchDataStorage

logger = logging.getLogger(__name__)


class RedisLaunchDataStorage(LaunchDataStorage):
    """Stores LTI launch data in Redis with automatic expiry."""

    _PREFIX = "lti1p3:"
    _DEFAULT_TTL = 7200  # 2 hours

    def __init__(self, redis_client):
        super().__init__()
        self._redis = redis_client

    @classmethod
    def from_url(cls, redis_url: str = "redis://localhost:6379/0") -> "RedisLaunchDataStorage":
        """Create storage from Redis URL using the sync client."""
        import redis as sync_redis

        client = sync_redis.Redis.from_url(redis_url, decode_responses=True)
        return cls(client)

    def can_set_keys_expiration(self) -> bool:
        return True

    def _prepare_key(self, key: str) -> str:
        return f"{self._PREFIX}{key}"

    @staticmethod
    def _decode(value) -> Optional[Any]:
        if value:
            try:
                return json.loads(value)
            except (json.JSONDecodeError, TypeError):
                logger.warning("Discarding undecodable launch data value")
                return None
        return None

    def get_value(self, key: str) -> Optional[Any]:
        return self._decode(self._redis.get(self._prepare_key(key)))

    def pop_value(self, key: str) -> Optional[Any]:
        """Read and delete a value in one step (single-use entries)."""
        return self._decode(self._redis.getdel(self._prepare_key(key)))

    def set_value(self, key: str, value: Any, exp: Optional[int] = None) -> None:
        prepared_key = self._prepare_key(key)
        serialized = json.dumps(value)
        ttl = exp or self._DEFAULT_TTL
        self._redis.setex(prepared_key, ttl, serialized)

    def check_value(self, key: str) -> bool:
        prepared_key = self._prepare_key(key)
        return bool(self._redis.exists(prepared_key))


# Singleton storage (initialized in app lifespan)
_launch_data_storage: RedisLaunchDataStorage | None = None


def init_lti_storage(redis_url: str = "redis://localhost:6379/0") -> None:
    """Called during FastAPI startup."""
    global _launch_data_storage
    _launch_data_storage = RedisLaunchDataStorage.from_url(redis_url)
    logger.info("LTI launch data storage initialized (Redis)")


def get_launch_data_storage() -> RedisLaunchDataStorage:
    """Get the launch data storage singleton."""
    if _launch_data_storage is None:
        raise RuntimeError(
            "LTI storage not initialized. Set LMS_REDIS_URL env var and restart."
        )
    return _launch_data_storage
