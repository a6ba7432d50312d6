"""Value records shared by the calendar logic and the engine."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Mapping

DateLike = date | datetime | str

_EVENT_FIELDS = ("id", "name", "date", "description", "color")


def _freeze(value: Any) -> Any:
    """Return a read-only deep copy: lists become tuples, dicts read-only maps."""
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    if isinstance(value, (set, frozenset)):
        return frozenset(_freeze(v) for v in value)
    return copy.deepcopy(value)


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    return value


class PopupPosition(str, Enum):
    """Placement hint for the day popup, relative to the clicked cell."""

    LEFT = "popup-left"
    RIGHT = "popup-right"
    CENTER_BOTTOM = "popup-center-bottom"
    CENTER_TOP = "popup-center-top"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class CalendarEvent:
    """A dated event. Only the calendar day of ``date`` is significant.

    Fields the calendar does not know about live in ``extra``, which is
    a read-only deep copy. Equality and hashing ignore ``extra``.
    """

    id: str | int
    name: str
    date: DateLike
    description: str | None = None
    color: str | None = None
    extra: Mapping[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "extra", _freeze(dict(self.extra)))

    def to_dict(self) -> dict[str, Any]:
        """Flatten to a plain dict, extra fields inlined."""
        data: dict[str, Any] = _thaw(self.extra)
        data.update({
            "id": self.id,
            "name": self.name,
            "date": self.date.isoformat() if isinstance(self.date, date) else self.date,
        })
        if self.description is not None:
            data["description"] = self.description
        if self.color is not None:
            data["color"] = self.color
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CalendarEvent:
        """Create from a mapping; unknown keys are kept in ``extra``."""
        return cls(
            id=data["id"],
            name=data["name"],
            date=data["date"],
            description=data.get("description"),
            color=data.get("color"),
            extra={k: v for k, v in data.items() if k not in _EVENT_FIELDS},
        )

    @classmethod
    def coerce(cls, event: CalendarEvent | Mapping[str, Any]) -> CalendarEvent:
        """Accept either an event or its mapping form."""
        if isinstance(event, cls):
            return event
        if isinstance(event, Mapping):
            return cls.from_dict(event)
        raise TypeError(f"expected CalendarEvent or mapping, got {type(event).__name__}")


@dataclass(frozen=True)
class CalendarDate:
    """One populated grid cell. Padding cells are ``None`` in the grid."""

    date: date
    is_current_month: bool
    is_today: bool
    has_events: bool
    events: tuple[CalendarEvent, ...] = ()


CalendarGrid = tuple[tuple[CalendarDate | None, ...], ...]


@dataclass(frozen=True)
class CalendarState:
    """Navigation position and selection, owned by the engine."""

    current_year: int
    current_month: int
    current_date: int
    selected_date: date | None = None
    selected_day_index: int | None = None
    tasks: tuple[CalendarEvent, ...] = ()


@dataclass(frozen=True)
class CalendarConfig:
    """Caller-supplied engine configuration."""

    events: tuple[CalendarEvent, ...] = ()
    initial_date: date | None = None
    min_year: int | None = None
    max_year: int | None = None
    week_starts_on: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "events", tuple(CalendarEvent.coerce(e) for e in self.events))
        if self.week_starts_on not in (0, 1):
            raise ValueError(f"week_starts_on must be 0 or 1, got {self.week_starts_on!r}")
        if (self.min_year is not None and self.max_year is not None
                and self.min_year > self.max_year):
            raise ValueError(f"min_year {self.min_year} is after max_year {self.max_year}")


@dataclass(frozen=True)
class CalendarViewModel(CalendarState):
    """State snapshot plus everything a renderer needs to draw one month."""

    months: tuple[str, ...] = ()
    days: tuple[str, ...] = ()
    years: tuple[int, ...] = ()
    month_and_year_text: str = ""
    schedule_day: str = ""
    calendar_dates: CalendarGrid = ()
    popup_position_class: PopupPosition = PopupPosition.CENTER_BOTTOM


@dataclass(frozen=True)
class CalendarActions:
    """Bound engine operations handed to adapters for wiring to gestures."""

    next: Callable[[], None]
    previous: Callable[[], None]
    jump: Callable[[int, int], None]
    select_date: Callable[..., None]
    clear_selection: Callable[[], None]
