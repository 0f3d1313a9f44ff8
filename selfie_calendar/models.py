"""Data models for calendar expansion - selfie_calendar.

``Event`` and ``Activity`` mirror the rows of the hosted backend and are
immutable input to the expansion engine. ``Occurrence`` is the engine output,
rebuilt on every expansion and never persisted.
"""

import logging
from datetime import date, datetime, timedelta
from enum import Enum, IntEnum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator

logger = logging.getLogger(__name__)


class Weekday(IntEnum):
    """Closed weekday enumeration, Sunday-based like the calendar grid."""

    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6


class RecurrenceType(str, Enum):
    """Supported recurrence rules."""

    NONE = "none"
    WEEKLY_DAYS = "weeklyDays"
    FIXED_COUNT = "fixedCount"
    DEADLINE = "deadline"
    INDEFINITE = "indefinite"

    @property
    def is_recurring(self) -> bool:
        return self is not RecurrenceType.NONE


# Codes written by the original web client into the events table
LEGACY_RECURRENCE_CODES: dict[str, RecurrenceType] = {
    "giornisettimana": RecurrenceType.WEEKLY_DAYS,
    "numerofisso": RecurrenceType.FIXED_COUNT,
    "scadenza": RecurrenceType.DEADLINE,
    "indeterminato": RecurrenceType.INDEFINITE,
}

_RECURRENCE_LOOKUP: dict[str, RecurrenceType] = {
    **{member.value.lower(): member for member in RecurrenceType},
    **LEGACY_RECURRENCE_CODES,
}


class OccurrenceKind(str, Enum):
    """Source of a rendered occurrence."""

    EVENT = "event"
    ACTIVITY = "activity"


ACTIVITY_DONE_STATUS = "done"


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _date_to_text(value: Any) -> Any:
    """Keep date-like values as text; validation happens at expansion time."""
    value = _blank_to_none(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


class Event(BaseModel):
    """Recurring or one-shot calendar item."""

    model_config = ConfigDict(frozen=True)

    id: Union[int, str] = Field(..., description="Opaque identifier, stable across calls")
    title: str = Field(default="", description="Display title")
    place: Optional[str] = Field(default=None, description="Display location")

    start_date: Optional[str] = Field(default=None, description="First possible occurrence date")
    end_date: Optional[str] = Field(default=None, description="Last day of a multi-day event")
    start_time: Optional[str] = Field(default=None, description="HH:MM[:SS] start time")
    end_time: Optional[str] = Field(default=None, description="HH:MM[:SS] end time")

    recurrence_type: RecurrenceType = Field(default=RecurrenceType.NONE)
    days_of_week: tuple[str, ...] = Field(default=(), description="Weekday names, declaration order preserved")
    occurrence_limit: Optional[int] = Field(default=None, description="Series length for fixedCount")
    series_deadline: Optional[str] = Field(default=None, description="Last allowed date for deadline")

    @model_validator(mode="before")
    @classmethod
    def _accept_store_columns(cls, data: Any) -> Any:
        """Map the backend column names onto the model fields."""
        if not isinstance(data, dict):
            return data
        row = dict(data)
        for column, field in (
            ("days_recurrence", "days_of_week"),
            ("number_recurrence", "occurrence_limit"),
            ("due_date", "series_deadline"),
        ):
            if column in row and field not in row:
                row[field] = row.pop(column)
        return row

    @field_validator("title", mode="before")
    @classmethod
    def _title_text(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("place", "start_time", "end_time", mode="before")
    @classmethod
    def _optional_text(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("start_date", "end_date", "series_deadline", mode="before")
    @classmethod
    def _date_text(cls, value: Any) -> Any:
        return _date_to_text(value)

    @field_validator("recurrence_type", mode="before")
    @classmethod
    def _recurrence_code(cls, value: Any) -> Any:
        if isinstance(value, RecurrenceType):
            return value
        value = _blank_to_none(value)
        if value is None:
            return RecurrenceType.NONE
        member = _RECURRENCE_LOOKUP.get(str(value).strip().lower())
        if member is None:
            logger.warning(
                "Unknown recurrence type %r; treating it as a weekly series bounded by the window",
                value,
            )
            return RecurrenceType.WEEKLY_DAYS
        return member

    @field_validator("days_of_week", mode="before")
    @classmethod
    def _day_names(cls, value: Any) -> Any:
        value = _blank_to_none(value)
        if value is None:
            return ()
        if isinstance(value, str):
            return tuple(part.strip() for part in value.split(",") if part.strip())
        return tuple(str(part) for part in value)

    @field_validator("occurrence_limit", mode="before")
    @classmethod
    def _limit(cls, value: Any) -> Any:
        value = _blank_to_none(value)
        if value is None or isinstance(value, bool):
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning("Ignoring non-integer occurrence limit %r", value)
            return None

    @property
    def is_recurring(self) -> bool:
        return self.recurrence_type.is_recurring

    @property
    def is_all_day(self) -> bool:
        return not self.start_time and not self.end_time


class Activity(BaseModel):
    """One-shot due-date item, never recurring."""

    model_config = ConfigDict(frozen=True)

    id: Union[int, str]
    title: str = ""
    due_date: Optional[str] = None
    status: Optional[str] = None
    finished_at: Optional[str] = None
    created_at: Optional[str] = None

    @field_validator("title", mode="before")
    @classmethod
    def _title_text(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("due_date", mode="before")
    @classmethod
    def _date_text(cls, value: Any) -> Any:
        return _date_to_text(value)

    @field_validator("status", mode="before")
    @classmethod
    def _status_text(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("finished_at", "created_at", mode="before")
    @classmethod
    def _timestamp(cls, value: Any) -> Any:
        return _date_to_text(value)

    @property
    def is_done(self) -> bool:
        return (self.status or "").strip().lower() == ACTIVITY_DONE_STATUS


class Occurrence(BaseModel):
    """One concrete dated rendering of an event or activity."""

    key: str = Field(..., description="Deterministic identity used for deduplication")
    kind: OccurrenceKind
    source_id: Union[int, str]
    title: str
    place: Optional[str] = None
    start: datetime
    end: Optional[datetime] = None
    all_day: bool = False
    color_hint: Optional[str] = None

    model_config = ConfigDict(use_enum_values=False)

    @field_serializer("start")
    def serialize_start(self, dt: datetime) -> str:
        return dt.isoformat()

    @field_serializer("end", when_used="unless-none")
    def serialize_end(self, dt: datetime) -> str:
        return dt.isoformat()

    @field_serializer("kind")
    def serialize_kind(self, kind: OccurrenceKind) -> str:
        return kind.value


def as_date(value: Union[date, datetime]) -> date:
    """Truncate a window bound to its calendar date."""
    if isinstance(value, datetime):
        return value.date()
    return value


class Window(BaseModel):
    """Half-open date interval ``[start, end)`` visible in the calendar."""

    model_config = ConfigDict(frozen=True)

    start: date
    end: date

    @field_validator("start", "end", mode="before")
    @classmethod
    def _truncate(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return value.date()
        return value

    @property
    def is_empty(self) -> bool:
        return self.end <= self.start

    @property
    def days(self) -> int:
        return max((self.end - self.start).days, 0)

    def contains(self, day: Union[date, datetime]) -> bool:
        """Return True when ``day`` falls inside ``[start, end)``."""
        return self.start <= as_date(day) < self.end

    def shift(self, days: int) -> "Window":
        """Return the same-length window moved by ``days``."""
        delta = timedelta(days=days)
        return Window(start=self.start + delta, end=self.end + delta)
