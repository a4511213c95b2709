"""
Storage backends for one-time codes.

Provides Redis and in-memory implementations of an expiring key-value store
with an atomic compare-and-delete, which is what makes a code single-use
under concurrent verification.
"""

import hmac
import logging
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

import redis
from redis.exceptions import RedisError

from ..config import CacheConfig
from .exceptions import StoreUnavailable

logger = logging.getLogger(__name__)

# Deletes KEYS[1] only when it still holds ARGV[1]; returns 1 when it did.
COMPARE_AND_DELETE_SCRIPT = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
end
return 0
"""


class OTPStorage(ABC):
    """Abstract base class for one-time code storage backends."""

    @abstractmethod
    def set(self, key: str, value: str, ttl: int) -> None:
        """Store value under key for ttl seconds, replacing any existing value."""
        pass

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Get the live value for key, or None if missing or expired."""
        pass

    @abstractmethod
    def delete_if_equals(self, key: str, expected: str) -> bool:
        """Atomically delete key if it holds expected. Returns True when deleted."""
        pass

    @abstractmethod
    def health_check(self) -> bool:
        """Check if storage backend is healthy."""
        pass


class MemoryOTPStorage(OTPStorage):
    """
    In-memory storage backend for one-time codes.

    Suitable for development and tests. Data is lost when the process restarts
    and is not shared between workers.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._store: dict[str, tuple[str, float]] = {}  # key -> (value, expires_at)
        self._lock = threading.RLock()
        self._clock = clock

    def _live_value(self, key: str) -> str | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._store[key]
            return None
        return value

    def set(self, key: str, value: str, ttl: int) -> None:
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        with self._lock:
            self._store[key] = (value, self._clock() + ttl)

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._live_value(key)

    def delete_if_equals(self, key: str, expected: str) -> bool:
        with self._lock:
            current = self._live_value(key)
            if current is None or not hmac.compare_digest(current, expected):
                return False
            del self._store[key]
            return True

    def health_check(self) -> bool:
        return True


class RedisOTPStorage(OTPStorage):
    """
    Redis storage backend for one-time codes.

    Expiry is delegated to Redis key TTLs. Compare-and-delete runs as a Lua
    script so the read and the delete cannot interleave with another client.
    """

    def __init__(self, redis_client: redis.Redis, key_prefix: str = "otp:") -> None:
        self.redis_client = redis_client
        self.key_prefix = key_prefix
        self._compare_and_delete = redis_client.register_script(COMPARE_AND_DELETE_SCRIPT)

    @classmethod
    def from_config(cls, config: CacheConfig) -> "RedisOTPStorage":
        """Connect to Redis with the configured timeouts."""
        try:
            client = redis.from_url(
                config.redis_url,
                decode_responses=True,
                socket_connect_timeout=config.socket_connect_timeout,
                socket_timeout=config.socket_timeout,
                health_check_interval=30,
            )
            client.ping()
        except RedisError as e:
            raise StoreUnavailable(
                f"Failed to connect to Redis: {e}", operation="connect", backend="redis"
            ) from e
        return cls(client, key_prefix=config.key_prefix)

    def _make_key(self, key: str) -> str:
        """Create prefixed key."""
        return f"{self.key_prefix}{key}"

    def set(self, key: str, value: str, ttl: int) -> None:
        try:
            self.redis_client.set(self._make_key(key), value, ex=ttl)
        except RedisError as e:
            raise StoreUnavailable(
                f"Redis SET failed: {e}", operation="set", backend="redis"
            ) from e

    def get(self, key: str) -> str | None:
        try:
            value: Any = self.redis_client.get(self._make_key(key))
        except RedisError as e:
            raise StoreUnavailable(
                f"Redis GET failed: {e}", operation="get", backend="redis"
            ) from e
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def delete_if_equals(self, key: str, expected: str) -> bool:
        try:
            deleted = self._compare_and_delete(keys=[self._make_key(key)], args=[expected])
        except RedisError as e:
            raise StoreUnavailable(
                f"Redis compare-and-delete failed: {e}",
                operation="delete_if_equals",
                backend="redis",
            ) from e
        return bool(deleted)

    def health_check(self) -> bool:
        try:
            return bool(self.redis_client.ping())
        except RedisError as e:
            logger.warning(f"Redis health check failed: {e}")
            return False


def create_otp_storage(config: CacheConfig) -> OTPStorage:
    """Factory function to create appropriate storage backend."""
    if config.backend == "redis":
        return RedisOTPStorage.from_config(config)
    elif config.backend == "memory":
        logger.warning("Using in-memory OTP storage; codes are not shared between workers")
        return MemoryOTPStorage()
    else:
        raise StoreUnavailable(
            f"Unknown OTP storage backend: {config.backend}", backend=config.backend
        )
