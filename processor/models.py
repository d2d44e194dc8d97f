"""Data models for timeline events and layout."""
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional, Tuple


class ViewMode(str, Enum):
    """How events are grouped on screen."""
    UNIFIED = 'unified'
    BY_ENTITY = 'by-entity'
    BY_GOAL = 'by-goal'

    @property
    def is_grouped(self) -> bool:
        return self is not ViewMode.UNIFIED


class Side(str, Enum):
    """Side of the baseline a label is drawn on."""
    ABOVE = 'above'
    BELOW = 'below'


@dataclass(frozen=True)
class TemporalValue:
    """Canonical date, range or ongoing interval resolved from deadline text."""
    start_date: date
    end_date: Optional[date] = None
    is_ongoing: bool = False

    @property
    def computed_date(self) -> date:
        return self.start_date

    @property
    def is_range(self) -> bool:
        return self.end_date is not None and not self.is_ongoing


@dataclass
class Event:
    """Timeline event with normalized groups and a derived temporal value."""
    id: str
    title: str
    goal: str
    deadline_text: str
    primary_groups: Tuple[str, ...]
    secondary_groups: Tuple[str, ...] = ()
    description: str = ''
    temporal: Optional[TemporalValue] = None
    created_at: str = ''


@dataclass
class Timeline:
    """Named, ordered collection of events."""
    id: str
    name: str
    events: list[Event] = field(default_factory=list)
    created_at: str = ''


@dataclass(frozen=True)
class ViewportState:
    """Zoom and pan of the drawing surface."""
    zoom: float = 1.0
    pan_x: float = 0.0
    pan_y: float = 0.0
    width: float = 1200.0
    height: float = 800.0


@dataclass(frozen=True)
class TimeWindow:
    """Padded content window, in ordinal days."""
    start: float
    end: float

    @property
    def span(self) -> float:
        return self.end - self.start


@dataclass(frozen=True)
class AxisTick:
    """Periodic date tick and the horizontal span its label occupies."""
    day: float
    x: float
    label: str
    span_start: float
    span_end: float


@dataclass(frozen=True)
class LayoutPlacement:
    """Where an event's marker and label go for the current render."""
    event: Event
    x: float
    x2: float
    level: int
    side: Side
    label_offset: float
    baseline_y: float
    row: Optional[str] = None
    is_primary: bool = True


@dataclass(frozen=True)
class LayoutFilters:
    """Active filters; empty values mean no filtering."""
    search: str = ''
    entity: str = ''
    goal: str = ''
