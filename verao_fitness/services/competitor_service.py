"""Competitor management (admin)."""

from typing import Any, Dict

from verao_fitness.core.cache import QueryKeys
from verao_fitness.core.context import AppContext
from verao_fitness.core.errors import RemoteWriteError
from verao_fitness.core.mutations import run_mutation
from verao_fitness.core.notifications import Notifier

COMPETITOR_DEPENDENT_QUERIES = (
    QueryKeys.COMPETITORS,
    QueryKeys.COMPETITORS_LIST,
    QueryKeys.HALL_OF_FAME,
)


class CompetitorService:
    def __init__(self, context: AppContext):
        self.context = context
        self.gateway = context.gateway

    async def create_competitor(self, notifier: Notifier, name: str) -> Dict[str, Any]:
        def write() -> Dict[str, Any]:
            rows = self.gateway.insert("competitors", {"name": name})
            if not rows:
                raise RemoteWriteError(detail="Insert returned no row")
            return rows[0]

        return await run_mutation(
            notifier=notifier,
            cache=self.context.cache,
            write=write,
            invalidate=COMPETITOR_DEPENDENT_QUERIES,
            loading="Adding...",
            success="Competitor added!",
            error_message="Failed to add competitor.",
        )

    async def update_competitor(
        self, notifier: Notifier, competitor_id: str, name: str
    ) -> Dict[str, Any]:
        def write() -> Dict[str, Any]:
            rows = self.gateway.update("competitors", competitor_id, {"name": name})
            return rows[0] if rows else {"id": competitor_id, "name": name}

        return await run_mutation(
            notifier=notifier,
            cache=self.context.cache,
            write=write,
            invalidate=COMPETITOR_DEPENDENT_QUERIES,
            loading="Updating...",
            success="Competitor updated!",
            error_message="Failed to update competitor.",
        )

    async def delete_competitor(self, notifier: Notifier, competitor_id: str) -> None:
        # The backend cascades the delete to the competitor's proofs
        await run_mutation(
            notifier=notifier,
            cache=self.context.cache,
            write=lambda: self.gateway.delete("competitors", competitor_id),
            invalidate=COMPETITOR_DEPENDENT_QUERIES + (QueryKeys.RECENT_PROOFS, QueryKeys.PROOFS),
            loading="Removing...",
            success="Competitor removed!",
            error_message="Failed to remove competitor.",
        )
