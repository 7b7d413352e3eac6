"""Point events, perfect day criteria and the shapes returned by the API."""

from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel


class EventCategory(str, Enum):
    GAIN = "GAIN"
    LOSE = "LOSE"


class PointEvent(BaseModel):
    label: str
    value: str
    points: int


POINT_EVENTS: Dict[EventCategory, List[PointEvent]] = {
    EventCategory.GAIN: [
        PointEvent(label="Perfect meal", value="perfect_meal", points=1),
        PointEvent(label="Weight training", value="weight_training", points=10),
        PointEvent(label="Cardio", value="cardio", points=10),
        PointEvent(label="Water goal", value="water_goal", points=5),
    ],
    EventCategory.LOSE: [
        PointEvent(label="No training day", value="no_training_day", points=-5),
        PointEvent(label="Cheat meal", value="cheat_meal", points=-5),
        PointEvent(label="Crazy cheat meal", value="crazy_cheat_meal", points=-10),
    ],
}

# Minimum count per event label within one calendar day
PERFECT_DAY_CRITERIA: Dict[str, int] = {
    "Perfect meal": 5,
    "Weight training": 1,
    "Cardio": 1,
    "Water goal": 1,
}


def find_event(category: EventCategory, value: str) -> Optional[PointEvent]:
    return next((e for e in POINT_EVENTS[category] if e.value == value), None)


class CompetitorRef(BaseModel):
    id: Optional[str] = None
    name: str


class Competitor(BaseModel):
    id: str
    name: str
    score: Optional[int] = None


class RankedCompetitor(BaseModel):
    rank: int
    id: str
    name: str
    score: Optional[int] = 0


class HallOfFameEntry(BaseModel):
    rank: int
    id: str
    name: str
    wins: int


class Proof(BaseModel):
    id: Union[int, str]
    created_at: str
    competitor_id: Optional[str] = None
    event_type: str
    points: int
    photo_url: Optional[str] = None
    competitors: Optional[CompetitorRef] = None
