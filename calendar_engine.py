"""Observable calendar state machine.

The engine owns navigation (year/month) and selection (day, column, tasks)
and derives a view model on demand. Renderers subscribe to change
notifications and re-read the view model; they never hold a mutable
reference to engine state.
"""

from __future__ import annotations

import logging
from dataclasses import fields, replace
from datetime import date
from typing import Any, Callable, Iterable, Mapping

from calendar_logic import (
    DAYS,
    MONTHS,
    format_date_for_display,
    generate_calendar_dates,
    generate_years,
    get_events_for_date,
    get_month_year_text,
    get_popup_position_class,
    next_month,
    normalize_date,
    prev_month,
)
from calendar_models import (
    CalendarActions,
    CalendarConfig,
    CalendarEvent,
    CalendarState,
    CalendarViewModel,
    DateLike,
)

logger = logging.getLogger(__name__)

Listener = Callable[[], None]


class CalendarError(Exception):
    """Base class for engine errors."""


class EngineDestroyedError(CalendarError, RuntimeError):
    """Raised when a destroyed engine is asked to change state."""


class ReentrantUpdateError(CalendarError, RuntimeError):
    """Raised when a listener mutates the engine during a notification."""


class Notifier:
    """Ordered listener registry with snapshot-based notification."""

    def __init__(self) -> None:
        self._listeners: dict[object, Listener] = {}
        self._notifying = False

    def __len__(self) -> int:
        return len(self._listeners)

    @property
    def notifying(self) -> bool:
        return self._notifying

    def add(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; return a function that removes this registration."""
        token = object()
        self._listeners[token] = listener

        def unsubscribe() -> None:
            self._listeners.pop(token, None)

        return unsubscribe

    def clear(self) -> None:
        self._listeners.clear()

    def notify(self) -> None:
        # Copy first: listeners may unsubscribe while we iterate
        listeners = list(self._listeners.items())
        self._notifying = True
        try:
            for token, listener in listeners:
                # Removed earlier in this round, or cleared by destroy()
                if token not in self._listeners:
                    continue
                listener()
        finally:
            self._notifying = False


class CalendarEngine:
    """Single source of truth for one calendar widget."""

    def __init__(self, config: CalendarConfig | None = None) -> None:
        self._config = config or CalendarConfig()
        self._events: tuple[CalendarEvent, ...] = self._config.events
        self._notifier = Notifier()
        self._destroyed = False

        initial = normalize_date(self._config.initial_date or date.today())
        self._state = CalendarState(
            current_year=initial.year,
            current_month=initial.month - 1,
            current_date=initial.day,
        )

    # ------------------------------------------------------------------
    # Subscription
    # ------------------------------------------------------------------
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call *listener* after every state change until unsubscribed."""
        self._check_alive()
        return self._notifier.add(listener)

    def destroy(self) -> None:
        """Drop all listeners and refuse further state changes."""
        if self._destroyed:
            return
        self._notifier.clear()
        self._destroyed = True
        logger.debug("Calendar engine destroyed")

    @property
    def is_destroyed(self) -> bool:
        return self._destroyed

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------
    @property
    def config(self) -> CalendarConfig:
        return replace(self._config, events=self._events)

    def get_state(self) -> CalendarState:
        return self._state

    def get_view_model(self) -> CalendarViewModel:
        state = self._state
        return CalendarViewModel(
            **_state_fields(state),
            months=MONTHS,
            days=DAYS,
            years=tuple(generate_years(self._config.min_year, self._config.max_year)),
            month_and_year_text=get_month_year_text(state.current_year, state.current_month),
            schedule_day=(format_date_for_display(state.selected_date)
                          if state.selected_date is not None else ""),
            calendar_dates=generate_calendar_dates(
                state.current_year, state.current_month,
                self._events, self._config.week_starts_on,
            ),
            popup_position_class=get_popup_position_class(state.selected_day_index),
        )

    def get_actions(self) -> CalendarActions:
        return CalendarActions(
            next=self.next,
            previous=self.previous,
            jump=self.jump,
            select_date=self.select_date,
            clear_selection=self.clear_selection,
        )

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------
    def next(self) -> None:
        """Show the following month."""
        self.jump(*next_month(self._state.current_year, self._state.current_month))

    def previous(self) -> None:
        """Show the preceding month."""
        self.jump(*prev_month(self._state.current_year, self._state.current_month))

    def jump(self, year: int, month: int) -> None:
        """Show *month* (0-11) of *year* and drop any selection."""
        self._check_mutable()
        logger.debug("Navigating to %d-%02d", year, month + 1)
        self._commit(replace(
            self._state,
            current_year=year,
            current_month=month,
            selected_date=None,
            selected_day_index=None,
            tasks=(),
        ))

    def go_to_date(self, d: DateLike) -> None:
        day = normalize_date(d)
        self.jump(day.year, day.month - 1)

    def go_to_today(self) -> None:
        self.go_to_date(date.today())

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------
    def select_date(self, d: DateLike, day_index: int | None = None) -> None:
        """Select the day of *d* and show its month.

        *day_index* is the grid column of the clicked cell, used only to
        place the popup.
        """
        self._check_mutable()
        selected = d if not isinstance(d, str) else normalize_date(d)
        day = normalize_date(selected)
        logger.debug("Selecting %s (column %s)", day.isoformat(), day_index)
        self._commit(replace(
            self._state,
            current_year=day.year,
            current_month=day.month - 1,
            current_date=day.day,
            selected_date=selected,
            selected_day_index=day_index,
            tasks=self._tasks_for(selected),
        ))

    def handle_date_click(self, d: DateLike, day_index: int | None = None) -> None:
        self.select_date(d, day_index)

    def clear_selection(self) -> None:
        self._check_mutable()
        self._commit(replace(
            self._state,
            selected_date=None,
            selected_day_index=None,
            tasks=(),
        ))

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------
    def update_events(self, events: Iterable[CalendarEvent | Mapping[str, Any]]) -> None:
        """Replace the event list and refresh the selected day's tasks."""
        self._check_mutable()
        self._events = tuple(CalendarEvent.coerce(e) for e in events)
        logger.debug("Event list replaced (%d events)", len(self._events))
        self._commit(replace(self._state, tasks=self._tasks_for(self._state.selected_date)))

    def get_events_for_date(self, d: DateLike) -> list[CalendarEvent]:
        return get_events_for_date(self._events, d)

    def has_events_for_date(self, d: DateLike) -> bool:
        return bool(self.get_events_for_date(d))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _tasks_for(self, selected: date | None) -> tuple[CalendarEvent, ...]:
        if selected is None:
            return ()
        return tuple(get_events_for_date(self._events, selected))

    def _check_alive(self) -> None:
        if self._destroyed:
            raise EngineDestroyedError("calendar engine has been destroyed")

    def _check_mutable(self) -> None:
        self._check_alive()
        if self._notifier.notifying:
            raise ReentrantUpdateError("cannot change calendar state from a change listener")

    def _commit(self, state: CalendarState) -> None:
        self._state = state
        self._notifier.notify()


def _state_fields(state: CalendarState) -> dict:
    # dataclasses.asdict would deep-copy the event records
    return {f.name: getattr(state, f.name) for f in fields(CalendarState)}
