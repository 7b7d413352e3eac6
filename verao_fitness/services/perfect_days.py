"""
Perfect Day Aggregation

A competitor has a perfect day when, on one calendar day, their proofs meet
every minimum in the criteria table and none of those proofs has negative
points. The classification is recomputed from the proofs of a window every
time and never stored.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
from zoneinfo import ZoneInfo

from verao_fitness.core.config import settings
from verao_fitness.models.definitions import PERFECT_DAY_CRITERIA


def display_timezone() -> ZoneInfo:
    return ZoneInfo(settings.DISPLAY_TIMEZONE)


def parse_timestamp(value: str) -> datetime:
    """Parse a Supabase timestamp; naive values are taken as UTC."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def day_key(created_at: str, tz: ZoneInfo) -> str:
    return parse_timestamp(created_at).astimezone(tz).date().isoformat()


def month_window(month: date, tz: Optional[ZoneInfo] = None) -> Tuple[datetime, datetime]:
    """First and last instant (UTC) of ``month`` as seen in ``tz``."""
    zone = tz or display_timezone()
    start = datetime(month.year, month.month, 1, tzinfo=zone)
    if month.month == 12:
        next_start = datetime(month.year + 1, 1, 1, tzinfo=zone)
    else:
        next_start = datetime(month.year, month.month + 1, 1, tzinfo=zone)
    end = next_start - timedelta(microseconds=1)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


@dataclass
class _DayTally:
    name: str
    counts: Counter = field(default_factory=Counter)
    negative: int = 0

    def is_perfect(self, criteria: Mapping[str, int]) -> bool:
        return self.negative == 0 and all(
            self.counts[event] >= minimum for event, minimum in criteria.items()
        )


def _competitor_of(proof: Mapping[str, Any]) -> Optional[Tuple[str, str]]:
    competitor = proof.get("competitors")
    if not competitor:
        return None
    competitor_id = competitor.get("id") or proof.get("competitor_id")
    if not competitor_id:
        return None
    return str(competitor_id), competitor.get("name") or ""


def compute_perfect_days(
    proofs: Optional[Iterable[Mapping[str, Any]]],
    criteria: Optional[Mapping[str, int]] = None,
    tz: Optional[ZoneInfo] = None,
) -> Dict[str, List[str]]:
    """
    Map each calendar day (``YYYY-MM-DD``) to the initials of the competitors
    who had a perfect day on it.

    ``proofs`` are rows shaped like
    ``{"created_at", "event_type", "points", "competitors": {"id", "name"}}``.
    Rows without a competitor are ignored. Each initial appears once per day,
    in the order first seen. ``None`` is treated as an empty window.
    """
    rules = PERFECT_DAY_CRITERIA if criteria is None else criteria
    zone = tz or display_timezone()

    groups: Dict[Tuple[str, str], _DayTally] = {}
    for proof in proofs or []:
        competitor = _competitor_of(proof)
        if competitor is None:
            continue
        competitor_id, name = competitor

        key = (day_key(proof["created_at"], zone), competitor_id)
        tally = groups.setdefault(key, _DayTally(name=name))
        tally.counts[proof.get("event_type")] += 1
        if (proof.get("points") or 0) < 0:
            tally.negative += 1

    perfect_days: Dict[str, List[str]] = {}
    for (day, _), tally in groups.items():
        if not tally.is_perfect(rules):
            continue
        initial = tally.name[:1].upper()
        if not initial:
            continue
        initials = perfect_days.setdefault(day, [])
        if initial not in initials:
            initials.append(initial)

    return perfect_days
