"""
Cache-aside store in front of the relational database.

The cache is advisory: every read falls through to the loader on a miss or
on any redis failure, and every write is best-effort. Callers never see a
redis exception.
"""
import enum
import json
import logging
from typing import Any, Callable, Dict, Mapping, Optional
from urllib.parse import quote

import redis

from quizbank.core.config import Settings

logger = logging.getLogger(__name__)


class CacheTier(str, enum.Enum):
    """Expiration classes, longest retention first."""

    LONG = "long"
    STANDARD = "standard"
    FAST = "fast"
    BLAZING = "blazing"
    INSTANT = "instant"


DEFAULT_TTLS: Dict[CacheTier, int] = {
    CacheTier.LONG: 24 * 3600,
    CacheTier.STANDARD: 10 * 60,
    CacheTier.FAST: 5 * 60,
    CacheTier.BLAZING: 3 * 60,
    CacheTier.INSTANT: 60,
}

_MISSING = object()


def build_redis_client(settings: Settings) -> Optional[redis.Redis]:
    if not settings.CACHE_ENABLED:
        return None
    return redis.Redis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
        socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
        socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT,
    )


class CacheAsideStore:
    def __init__(
        self,
        client: Optional[redis.Redis],
        namespace: str = "quizbank",
        ttls: Optional[Mapping[Any, int]] = None,
    ):
        self.client = client
        self.namespace = namespace
        self.ttls = dict(DEFAULT_TTLS)
        for tier, seconds in (ttls or {}).items():
            self.ttls[CacheTier(tier)] = int(seconds)

    @classmethod
    def from_settings(cls, settings: Settings, client: Optional[redis.Redis]) -> "CacheAsideStore":
        return cls(client, namespace=settings.CACHE_NAMESPACE, ttls=settings.cache_ttls())

    # ---- key construction ----

    def make_key(self, kind: str, **params: Any) -> str:
        """
        Build ``<namespace>:<kind>|a=1|b=x`` from the non-empty params.

        Param names are sorted and values percent-encoded, so identical
        logical queries map to one key and distinct ones cannot collide.
        """
        parts = [f"{self.namespace}:{kind}"]
        for name in sorted(params):
            value = params[name]
            if value is None or value == "":
                continue
            parts.append(f"{name}={quote(str(value), safe='')}")
        return "|".join(parts)

    def ttl_for(self, tier: CacheTier) -> int:
        return self.ttls[CacheTier(tier)]

    # ---- primitive operations ----

    def get(self, key: str, default: Any = None) -> Any:
        """Get a decoded value; unavailable cache or bad payloads read as a miss."""
        if self.client is None:
            return default
        try:
            raw = self.client.get(key)
        except redis.RedisError as e:
            logger.warning(f"Cache degraded, get {key} failed: {e}")
            return default
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning(f"Cache entry {key} is not decodable, ignoring: {e}")
            return default

    def set(self, key: str, value: Any, tier: CacheTier = CacheTier.STANDARD) -> bool:
        if self.client is None:
            return False
        try:
            payload = json.dumps(value, default=str)
        except (TypeError, ValueError) as e:
            logger.warning(f"Cache set {key} skipped, value not serializable: {e}")
            return False
        try:
            return bool(self.client.set(key, payload, ex=self.ttl_for(tier)))
        except redis.RedisError as e:
            logger.warning(f"Cache degraded, set {key} failed: {e}")
            return False

    def delete(self, *keys: str) -> int:
        if self.client is None or not keys:
            return 0
        try:
            return int(self.client.delete(*keys))
        except redis.RedisError as e:
            logger.warning(f"Cache degraded, delete failed: {e}")
            return 0

    def invalidate(self, prefix: str) -> int:
        """Delete the entry at ``prefix`` and every ``prefix|...`` entry."""
        if self.client is None:
            return 0
        try:
            keys = [prefix]
            keys.extend(k for k in self.client.scan_iter(match=f"{prefix}|*", count=500))
            return int(self.client.delete(*keys))
        except redis.RedisError as e:
            logger.warning(f"Cache degraded, invalidate {prefix} failed: {e}")
            return 0

    # ---- generation counters ----

    def generation(self, key: str) -> int:
        """Current value of a counter advanced by ``bump``; 0 when absent."""
        try:
            return int(self.get(key, 0))
        except (TypeError, ValueError):
            return 0

    def bump(self, key: str, tier: CacheTier = CacheTier.LONG) -> Optional[int]:
        """
        Advance a generation counter.

        Entries whose keys embed the previous generation become unreachable
        and expire at their own TTL, so no key scan is needed.
        """
        if self.client is None:
            return None
        try:
            value = int(self.client.incr(key))
            self.client.expire(key, self.ttl_for(tier))
            return value
        except redis.RedisError as e:
            logger.warning(f"Cache degraded, bump {key} failed: {e}")
            return None

    # ---- read-through ----

    def get_or_load(self, key: str, loader: Callable[[], Any], tier: CacheTier) -> Any:
        """
        Return the cached value for ``key`` or compute it with ``loader``.

        Loader exceptions propagate untouched; a ``None`` result is returned
        but not cached.
        """
        cached = self.get(key, _MISSING)
        if cached is not _MISSING:
            return cached
        value = loader()
        if value is not None:
            self.set(key, value, tier)
        return value
