import json
import redis
from typing import Any, Callable, Iterator, List, Optional, Sequence, Union

from verao_fitness.core.config import settings
from verao_fitness.services.logger import logger


class DummyRedis:
    """No-op redis client used when Redis is unavailable."""

    def get(self, *args: Any, **kwargs: Any) -> Optional[str]:
        return None

    def setex(self, *args: Any, **kwargs: Any) -> None:
        return None

    def delete(self, *args: Any, **kwargs: Any) -> int:
        return 0

    def lpush(self, *args: Any, **kwargs: Any) -> None:
        return None

    def ltrim(self, *args: Any, **kwargs: Any) -> None:
        return None

    def lrange(self, *args: Any, **kwargs: Any) -> List[bytes]:
        return []

    def sadd(self, *args: Any, **kwargs: Any) -> None:
        return None

    def srem(self, *args: Any, **kwargs: Any) -> None:
        return None

    def smembers(self, *args: Any, **kwargs: Any):
        return set()

    def expire(self, *args: Any, **kwargs: Any) -> None:
        return None

    def scan_iter(self, *args: Any, **kwargs: Any) -> Iterator[bytes]:
        return iter(())

    def ping(self, *args: Any, **kwargs: Any) -> None:
        return None


_redis_client: Optional[redis.Redis] = None


def get_redis_client() -> Union[redis.Redis, DummyRedis]:
    """
    Lazily initialize and return a shared Redis client. Falls back to a no-op
    dummy instance when Redis is unavailable so callers can continue gracefully.
    """

    global _redis_client

    if _redis_client is not None:
        return _redis_client

    if not settings.REDIS_URL:
        _redis_client = DummyRedis()  # type: ignore[assignment]
        return _redis_client

    try:
        client = redis.from_url(settings.REDIS_URL)
        client.ping()
        _redis_client = client
    except Exception as exc:
        logger.warning(
            f"Redis connection failed ({exc}). Falling back to in-memory dummy client."
        )
        _redis_client = DummyRedis()  # type: ignore[assignment]

    return _redis_client


QueryKey = Sequence[str]


class QueryCache:
    """
    Cache of view query results keyed by query key.

    A query key is a sequence like ("proofs", "2024-01"). Invalidating a key
    drops that entry and every entry whose key starts with it, so invalidating
    ("proofs",) drops all months at once. Invalidation is idempotent.
    """

    namespace = "query"

    def __init__(self, redis_client: Any, default_ttl: Optional[int] = None):
        self.redis = redis_client
        self.default_ttl = default_ttl or settings.QUERY_CACHE_TTL_SECONDS

    def _redis_key(self, query_key: QueryKey) -> str:
        return ":".join([self.namespace, *query_key])

    def get(self, query_key: QueryKey) -> Optional[Any]:
        raw = self.redis.get(self._redis_key(query_key))
        if raw is None:
            return None
        return json.loads(raw)

    def set(self, query_key: QueryKey, value: Any, ttl: Optional[int] = None) -> None:
        self.redis.setex(
            self._redis_key(query_key),
            ttl or self.default_ttl,
            json.dumps(value, default=str),
        )

    def get_or_fetch(
        self,
        query_key: QueryKey,
        fetch: Callable[[], Any],
        ttl: Optional[int] = None,
    ) -> Any:
        cached = self.get(query_key)
        if cached is not None:
            return cached

        value = fetch()
        self.set(query_key, value, ttl=ttl)
        return value

    def invalidate(self, *query_keys: QueryKey) -> int:
        """Drop the given keys and everything nested under them."""
        removed = 0
        for query_key in query_keys:
            base = self._redis_key(query_key)
            removed += self.redis.delete(base) or 0
            for nested in list(self.redis.scan_iter(match=f"{base}:*")):
                removed += self.redis.delete(nested) or 0
        if removed:
            logger.debug(f"Invalidated {removed} cached queries for {list(query_keys)}")
        return removed


class QueryKeys:
    """Query keys owned by the read views."""

    COMPETITORS = ("competitors",)
    COMPETITORS_LIST = ("competitorsList",)
    RECENT_PROOFS = ("recentProofs",)
    PROOFS = ("proofs",)
    WEEKLY_LEADERBOARD = ("weeklyLeaderboard",)
    HALL_OF_FAME = ("hallOfFame",)
