"""Key-value state store with per-key TTL (in-memory by default, Redis optional)."""

from __future__ import annotations

import json
import logging
import time
from abc import ABC, abstractmethod
from threading import Lock
from typing import Any, Callable, Optional

import redis

from relaybot.config import Settings
from relaybot.errors import StoreUnavailableError

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Flat key namespace. Missing and expired keys both read as None."""

    @abstractmethod
    def get(self, key: str) -> Any:
        ...

    @abstractmethod
    def put(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store. Values are JSON round-tripped like the Redis backend."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._lock = Lock()
        self._values: dict[str, tuple[str, Optional[float]]] = {}

    def get(self, key: str) -> Any:
        with self._lock:
            entry = self._values.get(key)
            if entry is None:
                return None
            raw, expires_at = entry
            if expires_at is not None and expires_at <= self._clock():
                self._values.pop(key, None)
                return None
        return json.loads(raw)

    def put(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds else None
        with self._lock:
            self._values[key] = (json.dumps(value), expires_at)

    def delete(self, key: str) -> None:
        with self._lock:
            self._values.pop(key, None)

    def keys(self) -> list[str]:
        now = self._clock()
        with self._lock:
            return sorted(
                key
                for key, (_, expires_at) in self._values.items()
                if expires_at is None or expires_at > now
            )


class RedisKeyValueStore(KeyValueStore):
    """Redis-backed store; TTLs map onto `SET ... EX`."""

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisKeyValueStore":
        return cls(redis.Redis.from_url(url, decode_responses=True))

    def get(self, key: str) -> Any:
        try:
            raw = self._client.get(key)
        except redis.RedisError as exc:
            raise StoreUnavailableError(f"get {key} failed: {exc}") from exc
        if raw is None:
            return None
        return json.loads(raw)

    def put(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        try:
            self._client.set(key, json.dumps(value), ex=ttl_seconds or None)
        except redis.RedisError as exc:
            raise StoreUnavailableError(f"put {key} failed: {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            self._client.delete(key)
        except redis.RedisError as exc:
            raise StoreUnavailableError(f"delete {key} failed: {exc}") from exc


def build_key_value_store(settings: Settings) -> KeyValueStore:
    backend = settings.kv_backend.strip().lower()
    if backend == "redis":
        logger.info("Using Redis key-value store at %s", settings.redis_url)
        return RedisKeyValueStore.from_url(settings.redis_url)
    if backend != "memory":
        raise ValueError(f"Unsupported key-value backend: {settings.kv_backend}")
    return InMemoryKeyValueStore()
