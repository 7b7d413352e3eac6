"""
Live views

Each read view owns one query key and depends on one or more tables. While a
view is mounted it listens to those tables through the realtime manager and
invalidates its key on any change, so the next request re-fetches. Views are
mounted at startup and unmounted at shutdown.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from verao_fitness.core.cache import QueryCache, QueryKey, QueryKeys
from verao_fitness.core.realtime import RealtimeSubscriptionManager, Subscription
from verao_fitness.services.logger import logger


@dataclass(frozen=True)
class LiveView:
    name: str
    tables: Tuple[str, ...]
    query_key: QueryKey


LIVE_VIEWS: Tuple[LiveView, ...] = (
    LiveView("leaderboard", ("competitors",), QueryKeys.COMPETITORS),
    LiveView("competitorsList", ("competitors",), QueryKeys.COMPETITORS_LIST),
    LiveView("hallOfFame", ("proofs", "competitors"), QueryKeys.HALL_OF_FAME),
    LiveView("perfectDays", ("proofs",), QueryKeys.PROOFS),
    LiveView("recentProofs", ("proofs",), QueryKeys.RECENT_PROOFS),
    LiveView("weeklyLeaderboard", ("proofs",), QueryKeys.WEEKLY_LEADERBOARD),
)


def watched_tables() -> List[str]:
    return sorted({table for view in LIVE_VIEWS for table in view.tables})


def keys_for_table(table: str) -> List[List[str]]:
    return [list(view.query_key) for view in LIVE_VIEWS if table in view.tables]


class MountedView:
    def __init__(
        self, view: LiveView, cache: QueryCache, realtime: RealtimeSubscriptionManager
    ):
        self.view = view
        self.cache = cache
        self.realtime = realtime
        self.subscriptions: List[Subscription] = []

    def on_change(self, change: Dict[str, Any]) -> None:
        self.cache.invalidate(self.view.query_key)

    async def mount(self) -> None:
        for table in self.view.tables:
            self.subscriptions.append(await self.realtime.acquire(table, self.on_change))

    async def unmount(self) -> None:
        subscriptions, self.subscriptions = self.subscriptions, []
        for subscription in subscriptions:
            await self.realtime.release(subscription)


async def mount_views(context: Any) -> List[MountedView]:
    for view in LIVE_VIEWS:
        mounted = MountedView(view, context.cache, context.realtime)
        await mounted.mount()
        context.mounted_views.append(mounted)
    logger.info(
        f"Mounted {len(context.mounted_views)} live views on {context.realtime.open_tables()}"
    )
    return context.mounted_views


async def unmount_views(context: Any) -> None:
    mounted, context.mounted_views = context.mounted_views, []
    for view in mounted:
        await view.unmount()
