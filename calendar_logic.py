"""Pure calendar calculations — no engine state, no UI dependencies."""

import calendar
import logging
from collections.abc import Iterable, Mapping
from datetime import date, datetime

from dateutil.parser import isoparse

from calendar_models import (
    CalendarDate,
    CalendarEvent,
    CalendarGrid,
    DateLike,
    PopupPosition,
)

logger = logging.getLogger(__name__)

MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
          "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

# Sunday first, regardless of week_starts_on
DAYS = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")

TODAY_CLASS = "today"
HAS_EVENTS_CLASS = "has-events"


# ------------------------------------------------------------------
# Day normalisation
# ------------------------------------------------------------------
def normalize_date(d: DateLike) -> date:
    """Return the calendar day of *d*, dropping any time of day.

    Strings are parsed as ISO 8601. Aware datetimes keep their own
    wall-clock day; no timezone conversion happens.
    """
    if isinstance(d, str):
        d = isoparse(d.strip())
    if isinstance(d, datetime):
        return d.date()
    if isinstance(d, date):
        return d
    raise TypeError(f"expected date, datetime or ISO string, got {type(d).__name__}")


def is_same_day(a: DateLike, b: DateLike) -> bool:
    return normalize_date(a) == normalize_date(b)


def is_today(d: DateLike) -> bool:
    return is_same_day(d, date.today())


def _event_day(event: CalendarEvent | Mapping) -> date | None:
    """Return the event's day, or None if its date cannot be parsed."""
    if isinstance(event, Mapping):
        event_id, raw = event.get("id"), event.get("date")
    else:
        event_id, raw = event.id, event.date
    try:
        return normalize_date(raw)
    except (ValueError, TypeError, OverflowError):
        logger.debug("Skipping event %r with unparsable date %r", event_id, raw)
        return None


# ------------------------------------------------------------------
# Year / month arithmetic (months are 0-based: 0 = January)
# ------------------------------------------------------------------
def generate_years(min_year: int | None = None, max_year: int | None = None) -> list[int]:
    """Return the inclusive, ascending year range for a year selector."""
    current = date.today().year
    lo = min_year if min_year is not None else current - 30
    hi = max_year if max_year is not None else current + 10
    return list(range(lo, hi + 1))


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month + 1)[1]


def prev_month(year: int, month: int) -> tuple[int, int]:
    """Return (year, month) for one month earlier."""
    if month == 0:
        return year - 1, 11
    return year, month - 1


def next_month(year: int, month: int) -> tuple[int, int]:
    """Return (year, month) for one month later."""
    if month == 11:
        return year + 1, 0
    return year, month + 1


# ------------------------------------------------------------------
# Event matching
# ------------------------------------------------------------------
def get_events_for_date(events: Iterable[CalendarEvent], d: DateLike) -> list[CalendarEvent]:
    """Return the events scheduled on the day of *d*, in input order.

    Events whose date cannot be parsed never match.
    """
    target = normalize_date(d)
    return [e for e in events if _event_day(e) == target]


def has_events(events: Iterable[CalendarEvent], d: DateLike) -> bool:
    return bool(get_events_for_date(events, d))


def _events_by_day(events: Iterable[CalendarEvent]) -> dict[date, list[CalendarEvent]]:
    by_day: dict[date, list[CalendarEvent]] = {}
    for event in events:
        day = _event_day(event)
        if day is not None:
            by_day.setdefault(day, []).append(event)
    return by_day


# ------------------------------------------------------------------
# Month grid
# ------------------------------------------------------------------
def generate_calendar_dates(
    year: int,
    month: int,
    events: Iterable[CalendarEvent] = (),
    week_starts_on: int = 0,
) -> CalendarGrid:
    """Return the month as rows of 7 cells.

    Each cell is a CalendarDate or None for days outside the month.
    Columns start on Sunday (week_starts_on=0) or Monday (1). Only rows
    holding at least one day of the month are emitted, so the grid has
    between 4 and 6 rows.
    """
    # calendar.Calendar counts weekdays from Monday=0
    cal = calendar.Calendar(firstweekday=6 if week_starts_on == 0 else 0)
    by_day = _events_by_day(events)
    today = date.today()

    grid: list[tuple[CalendarDate | None, ...]] = []
    row: list[CalendarDate | None] = []
    for d in cal.itermonthdays(year, month + 1):
        if d == 0:
            row.append(None)
        else:
            day = date(year, month + 1, d)
            day_events = tuple(by_day.get(day, ()))
            row.append(CalendarDate(
                date=day,
                is_current_month=True,
                is_today=day == today,
                has_events=bool(day_events),
                events=day_events,
            ))
        if len(row) == 7:
            grid.append(tuple(row))
            row = []
    return tuple(grid)


# ------------------------------------------------------------------
# Presentation hints
# ------------------------------------------------------------------
def get_popup_position_class(day_index: int | None) -> PopupPosition:
    """Place the popup away from the grid edge nearest the clicked column."""
    if day_index is None:
        return PopupPosition.CENTER_BOTTOM
    if day_index < 3:
        return PopupPosition.RIGHT
    if day_index > 4:
        return PopupPosition.LEFT
    return PopupPosition.CENTER_BOTTOM


def get_cell_classes(cell: CalendarDate | None) -> frozenset[str]:
    if cell is None:
        return frozenset()
    classes: set[str] = set()
    if cell.is_today:
        classes.add(TODAY_CLASS)
    if cell.has_events:
        classes.add(HAS_EVENTS_CLASS)
    return frozenset(classes)


def format_date_for_display(d: DateLike) -> str:
    """Return e.g. ``"Monday 15"``."""
    day = normalize_date(d)
    # date.weekday() is Monday=0; DAYS is Sunday-first
    return f"{DAYS[(day.weekday() + 1) % 7]} {day.day}"


def get_month_year_text(year: int, month: int) -> str:
    """Return e.g. ``"Jan 2024"``."""
    return f"{MONTHS[month]} {year}"
