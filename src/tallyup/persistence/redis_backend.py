"""Redis cache backend implementing ICacheBackend."""

from __future__ import annotations

import redis

from tallyup.core.exceptions import StorageError


class RedisCacheBackend:
    """Production ICacheBackend backed by Redis; fronts merchant settings reads."""

    def __init__(self, host: str = "localhost", port: int = 6379, db: int = 0) -> None:
        self._client = redis.Redis(host=host, port=port, db=db, decode_responses=True)

    def get(self, key: str) -> str | None:
        try:
            return self._client.get(key)
        except Exception as exc:
            raise StorageError(f"Redis GET failed for key={key!r}: {exc}") from exc

    def setex(self, key: str, ttl: int, value: str) -> None:
        try:
            self._client.setex(key, ttl, value)
        except Exception as exc:
            raise StorageError(f"Redis SETEX failed for key={key!r}: {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            self._client.delete(key)
        except Exception as exc:
            raise StorageError(f"Redis DELETE failed for key={key!r}: {exc}") from exc

    def ping(self) -> bool:
        """Readiness probe; never raises."""
        try:
            return bool(self._client.ping())
        except Exception:
            return False
