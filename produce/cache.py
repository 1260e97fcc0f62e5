# produce/cache.py
"""Cache-aside support: key-value backends and the per-category product cache.

The cache is an optimization only. ``ProductCache`` never lets a backend
failure escape: lookups degrade to a miss, writes and invalidations are
logged and dropped.

Consistency is TTL-bounded, not read-after-write. A write invalidates the
category before it returns, but a reader that already got a hit keeps its
pre-write answer, and a reader that missed before the write may repopulate
the cache with pre-write rows after the invalidation ran. Such an entry lives
until the next write to the category or until its TTL runs out.
"""
import logging
import re
import threading
import time
from typing import Callable, Dict, List, Optional, Protocol, Tuple

import redis
from redis.exceptions import RedisError

from .errors import CacheError
from .models import Category, Product, decode_products, encode_products

logger = logging.getLogger(__name__)

ALL_QUERY = "all"
SEARCH_QUERY = "search:"


class KeyValueCache(Protocol):
    def get(self, key: str) -> Optional[bytes]: ...

    def set_with_ttl(self, key: str, value: bytes, ttl_seconds: int) -> None: ...

    def keys_with_prefix(self, prefix: str) -> List[str]: ...

    def delete(self, key: str) -> None: ...

    def ping(self) -> None: ...


# ---------------------------
# Backends
# ---------------------------
_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


class RedisKeyValueCache:
    def __init__(self, client: redis.Redis):
        self.client = client

    @classmethod
    def from_url(cls, url: str, socket_timeout: float = 1.0) -> "RedisKeyValueCache":
        # no connection is made until the first command
        return cls(redis.Redis.from_url(
            url, socket_timeout=socket_timeout, socket_connect_timeout=socket_timeout
        ))

    def get(self, key: str) -> Optional[bytes]:
        try:
            value = self.client.get(key)
        except RedisError as e:
            raise CacheError(f"GET {key} failed: {e}") from e
        if isinstance(value, str):
            return value.encode("utf-8")
        return value

    def set_with_ttl(self, key: str, value: bytes, ttl_seconds: int) -> None:
        try:
            self.client.setex(key, ttl_seconds, value)
        except RedisError as e:
            raise CacheError(f"SETEX {key} failed: {e}") from e

    def keys_with_prefix(self, prefix: str) -> List[str]:
        pattern = _GLOB_SPECIAL.sub(r"\\\1", prefix) + "*"
        try:
            keys = list(self.client.scan_iter(match=pattern))
        except RedisError as e:
            raise CacheError(f"SCAN {pattern} failed: {e}") from e
        return [k.decode("utf-8") if isinstance(k, bytes) else k for k in keys]

    def delete(self, key: str) -> None:
        try:
            self.client.delete(key)
        except RedisError as e:
            raise CacheError(f"DEL {key} failed: {e}") from e

    def ping(self) -> None:
        try:
            self.client.ping()
        except RedisError as e:
            raise CacheError(f"PING failed: {e}") from e


class InMemoryKeyValueCache:
    """Process-local backend with per-key expiry, for local runs and tests.

    Expired entries are dropped only when a read or prefix scan touches them,
    so distinct search terms accumulate between writes to a category.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, Tuple[bytes, float]] = {}
        self._lock = threading.Lock()

    def _live(self, key: str) -> Optional[bytes]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._live(key)

    def set_with_ttl(self, key: str, value: bytes, ttl_seconds: int) -> None:
        with self._lock:
            self._entries[key] = (value, self._clock() + ttl_seconds)

    def keys_with_prefix(self, prefix: str) -> List[str]:
        with self._lock:
            return [k for k in list(self._entries) if k.startswith(prefix) and self._live(k) is not None]

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def ping(self) -> None:
        return None


# ---------------------------
# Cache-aside layer
# ---------------------------
class ProductCache:
    """Read cache for one category's product listings and searches."""

    def __init__(self, backend: KeyValueCache, category: Category, ttl: int = 60):
        self.backend = backend
        self.category = category
        self.prefix = f"{category.plural}:"
        self.ttl = ttl

    def key_for(self, search: Optional[str] = None) -> str:
        if search is None:
            return self.prefix + ALL_QUERY
        return self.prefix + SEARCH_QUERY + search

    def lookup(self, search: Optional[str] = None) -> Optional[List[Product]]:
        """Cached products, or None on a miss. An empty list is a hit."""
        key = self.key_for(search)
        try:
            raw = self.backend.get(key)
        except CacheError as e:
            logger.warning("cache lookup failed, treating as miss: %s", e)
            return None
        if raw is None:
            logger.debug("cache miss %s", key)
            return None
        try:
            products = decode_products(raw)
        except ValueError as e:
            logger.warning("discarding undecodable cache entry %s: %s", key, e)
            return None
        logger.debug("cache hit %s (%d items)", key, len(products))
        return products

    def store(self, search: Optional[str], products: List[Product], ttl: Optional[int] = None) -> None:
        key = self.key_for(search)
        try:
            self.backend.set_with_ttl(key, encode_products(products), self.ttl if ttl is None else ttl)
        except CacheError as e:
            logger.warning("cache store failed for %s: %s", key, e)

    def invalidate_all(self) -> None:
        """Delete the listing and every cached search for this category."""
        try:
            keys = self.backend.keys_with_prefix(self.prefix)
            for key in keys:
                self.backend.delete(key)
        except CacheError as e:
            logger.warning("cache invalidation failed for %s*: %s", self.prefix, e)
            return
        logger.info("invalidated %d cache entries under %s", len(keys), self.prefix)


def make_backend(kind: str, redis_url: str, socket_timeout: float = 1.0) -> KeyValueCache:
    if kind == "memory":
        return InMemoryKeyValueCache()
    return RedisKeyValueCache.from_url(redis_url, socket_timeout=socket_timeout)
