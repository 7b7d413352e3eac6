"""
Application context.

Everything the request handlers share (the gateway, the query cache, the
realtime manager, the session registry) lives on one AppContext created at
startup and torn down at shutdown. Handlers receive it through ``get_context``
instead of reaching for module globals.
"""

from dataclasses import dataclass, field
from typing import Any, List

from starlette.requests import HTTPConnection

from verao_fitness.core.cache import QueryCache
from verao_fitness.core.notifications import Notifier
from verao_fitness.core.realtime import RealtimeSubscriptionManager


@dataclass
class AppContext:
    gateway: Any
    redis: Any
    cache: QueryCache
    realtime: RealtimeSubscriptionManager
    mounted_views: List[Any] = field(default_factory=list)

    @classmethod
    def build(cls, gateway: Any, redis_client: Any) -> "AppContext":
        return cls(
            gateway=gateway,
            redis=redis_client,
            cache=QueryCache(redis_client),
            realtime=RealtimeSubscriptionManager(gateway),
        )

    def notifier_for(self, user: dict) -> Notifier:
        return Notifier(self.redis, user["id"])


def get_context(connection: HTTPConnection) -> AppContext:
    return connection.app.state.context
