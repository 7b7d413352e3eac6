"""
Ranking Service

Read side of the app: overall leaderboard, competitor list, recent proofs,
weekly leaderboard, hall of fame and the perfect day calendar. Results are
served from the query cache; a failed fetch is never cached and surfaces as a
RemoteReadError carrying the view's message.
"""

from datetime import date, datetime, time, timedelta
from typing import Any, Callable, Dict, List, Optional

from verao_fitness.core.cache import QueryKeys
from verao_fitness.core.config import settings
from verao_fitness.core.context import AppContext
from verao_fitness.core.errors import RemoteReadError
from verao_fitness.services.perfect_days import (
    compute_perfect_days,
    display_timezone,
    month_window,
)


def _read(message: str, fetch: Callable[[], Any]) -> Any:
    try:
        return fetch()
    except RemoteReadError as exc:
        exc.message = message
        raise


def _with_rank(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [{"rank": index + 1, **row} for index, row in enumerate(rows)]


def week_bounds(day: date) -> tuple:
    """Monday and Sunday of the week containing ``day``."""
    start = day - timedelta(days=day.weekday())
    return start, start + timedelta(days=6)


def today() -> date:
    return datetime.now(display_timezone()).date()


class RankingService:
    def __init__(self, context: AppContext):
        self.context = context
        self.gateway = context.gateway
        self.cache = context.cache

    def leaderboard(self) -> List[Dict[str, Any]]:
        rows = self.cache.get_or_fetch(
            QueryKeys.COMPETITORS,
            lambda: _read(
                "Could not load the ranking.",
                lambda: self.gateway.query(
                    "competitors", "id, name, score", order="score", desc=True
                ),
            ),
        )
        return _with_rank(rows)

    def competitors_list(self) -> List[Dict[str, Any]]:
        return self.cache.get_or_fetch(
            QueryKeys.COMPETITORS_LIST,
            lambda: _read(
                "Could not load the competitors.",
                lambda: self.gateway.query("competitors", "id, name", order="name"),
            ),
        )

    def recent_proofs(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        size = limit or settings.RECENT_PROOFS_LIMIT
        return self.cache.get_or_fetch(
            (*QueryKeys.RECENT_PROOFS, str(size)),
            lambda: _read(
                "Could not load the recent proofs.",
                lambda: self.gateway.query(
                    "proofs",
                    "*, competitors(name)",
                    order="created_at",
                    desc=True,
                    limit=size,
                ),
            ),
        )

    def hall_of_fame(self) -> List[Dict[str, Any]]:
        rows = self.cache.get_or_fetch(
            QueryKeys.HALL_OF_FAME,
            lambda: _read(
                "Could not load the hall of fame.",
                lambda: self.gateway.rpc("get_hall_of_fame"),
            ),
        )
        return _with_rank(rows)

    def weekly_leaderboard(self, week: Optional[date] = None) -> Dict[str, Any]:
        """Scores for the Monday-to-Sunday week containing ``week``."""
        zone = display_timezone()
        start, end = week_bounds(week or today())
        start_at = datetime.combine(start, time.min, tzinfo=zone)
        end_at = datetime.combine(end, time.max, tzinfo=zone)

        rows = self.cache.get_or_fetch(
            (*QueryKeys.WEEKLY_LEADERBOARD, start.isoformat()),
            lambda: _read(
                "Could not load this week's ranking.",
                lambda: self.gateway.rpc(
                    "get_weekly_leaderboard",
                    {
                        "start_date": start_at.isoformat(),
                        "end_date": end_at.isoformat(),
                    },
                ),
            ),
            ttl=settings.WEEKLY_LEADERBOARD_STALE_SECONDS,
        )

        return {
            "week_start": start.isoformat(),
            "week_end": end.isoformat(),
            "label": f"{start:%d/%m} - {end:%d/%m/%Y}",
            "is_current_week": start == week_bounds(today())[0],
            "competitors": _with_rank(rows),
        }

    def month_proofs(self, month: date) -> List[Dict[str, Any]]:
        start_at, end_at = month_window(month)
        return self.cache.get_or_fetch(
            (*QueryKeys.PROOFS, f"{month:%Y-%m}"),
            lambda: _read(
                "Could not load the calendar data.",
                lambda: self.gateway.query(
                    "proofs",
                    "created_at, event_type, points, competitor_id, competitors(id, name)",
                    filters=[
                        ("created_at", "gte", start_at.isoformat()),
                        ("created_at", "lte", end_at.isoformat()),
                    ],
                ),
            ),
        )

    def perfect_days(self, month: Optional[date] = None) -> Dict[str, Any]:
        target = month or today()
        proofs = self.month_proofs(target)
        return {
            "month": f"{target:%Y-%m}",
            "days": compute_perfect_days(proofs or []),
        }
