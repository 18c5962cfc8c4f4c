"""Key-value stores: Redis when configured, otherwise an in-process TTL store."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

import redis.asyncio as redis

from .base import KeyValueStore

logger = logging.getLogger(__name__)


def _default_serializer(value: Any) -> str:
    def _encode(obj: Any) -> Any:
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, Decimal):
            return str(obj)
        raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")

    return json.dumps(value, default=_encode)


def _default_deserializer(raw: Optional[str]) -> Any:
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        logger.warning("Discarding undecodable value from key-value store")
        return None


@dataclass
class CacheEntry:
    payload: str
    expires_at: Optional[float]


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store with per-key TTL and LRU eviction.

    Values are stored serialized so callers never share mutable state with
    the store, matching what a Redis round-trip would give them.
    """

    name = "memory"

    def __init__(self, max_size: int = 10000):
        self.max_size = max_size
        self._entries: Dict[str, CacheEntry] = {}
        self._access_order: list = []
        self._lock = asyncio.Lock()

    async def health_check(self) -> Dict[str, Any]:
        return {"status": "healthy", "backend": self.name, "keys": len(self._entries)}

    def _expired(self, key: str, now: float) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return True
        if entry.expires_at is not None and now > entry.expires_at:
            del self._entries[key]
            if key in self._access_order:
                self._access_order.remove(key)
            return True
        return False

    async def get(self, key: str) -> Any:
        async with self._lock:
            if self._expired(key, time.time()):
                return None

            # Update access order for LRU
            if key in self._access_order:
                self._access_order.remove(key)
            self._access_order.append(key)

            return _default_deserializer(self._entries[key].payload)

    async def set(self, key: str, value: Any, ttl: Optional[int] = None, *, only_if_absent: bool = False) -> bool:
        payload = _default_serializer(value)
        async with self._lock:
            now = time.time()
            if only_if_absent and not self._expired(key, now):
                return False

            expires_at = now + ttl if ttl else None
            self._entries[key] = CacheEntry(payload=payload, expires_at=expires_at)

            if key in self._access_order:
                self._access_order.remove(key)
            self._access_order.append(key)

            # Evict oldest if over max size
            while len(self._entries) > self.max_size:
                oldest_key = self._access_order.pop(0)
                self._entries.pop(oldest_key, None)
            return True

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._entries.pop(key, None)
            if key in self._access_order:
                self._access_order.remove(key)


class RedisKeyValueStore(KeyValueStore):
    name = "redis"

    def __init__(self, redis_url: str, *, timeout_s: int = 10) -> None:
        self.timeout_s = timeout_s
        self._client = redis.from_url(
            redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=timeout_s,
            socket_connect_timeout=timeout_s,
        )

    async def health_check(self) -> Dict[str, Any]:
        try:
            await self._client.ping()
            return {"status": "healthy", "backend": self.name}
        except Exception as exc:  # noqa: BLE001
            return {"status": "error", "backend": self.name, "reason": str(exc)}

    async def get(self, key: str) -> Any:
        payload = await self._client.get(key)
        return _default_deserializer(payload)

    async def set(self, key: str, value: Any, ttl: Optional[int] = None, *, only_if_absent: bool = False) -> bool:
        payload = _default_serializer(value)
        written = await self._client.set(key, payload, ex=ttl or None, nx=only_if_absent)
        return bool(written)

    async def delete(self, key: str) -> None:
        await self._client.delete(key)

    async def close(self) -> None:
        await self._client.aclose()


def build_key_value_store(redis_url: str, *, timeout_s: int = 10) -> KeyValueStore:
    if redis_url:
        return RedisKeyValueStore(redis_url, timeout_s=timeout_s)
    logger.warning("REDIS_URL not set; using in-process key-value store")
    return InMemoryKeyValueStore()


__all__ = ["InMemoryKeyValueStore", "RedisKeyValueStore", "build_key_value_store"]
