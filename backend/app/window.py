# backend/app/window.py
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from backend.app.errors import ValidationError


def parse_bound(value: Optional[str], field: str, end: bool = False) -> Optional[datetime]:
    """
    Parse an ISO-8601 date or datetime query value into a naive UTC datetime.

    A bare date as the end bound covers the whole day.
    """
    if value is None or str(value).strip() == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.max if end else time.min)
    else:
        text = str(value).strip()
        try:
            if len(text) == 10:
                day = date.fromisoformat(text)
                parsed = datetime.combine(day, time.max if end else time.min)
            else:
                parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError(f"Invalid date '{text}'", field=field)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


@dataclass(frozen=True)
class DateWindow:
    """Inclusive [start, end] range; a missing bound is unbounded on that side."""

    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def __post_init__(self):
        if self.start and self.end and self.start > self.end:
            raise ValidationError("startDate must not be after endDate", field="startDate")

    @classmethod
    def from_params(cls, start_date: Optional[str] = None, end_date: Optional[str] = None) -> "DateWindow":
        return cls(
            start=parse_bound(start_date, "startDate"),
            end=parse_bound(end_date, "endDate", end=True),
        )

    @property
    def is_bounded(self) -> bool:
        return self.start is not None and self.end is not None

    def previous(self) -> Optional["DateWindow"]:
        """The window of equal length that ends right before this one starts."""
        if not self.is_bounded:
            return None
        length = self.end - self.start
        try:
            prev_end = self.start - timedelta(microseconds=1)
            return DateWindow(start=prev_end - length, end=prev_end)
        except OverflowError:
            # no earlier window fits before datetime.min
            return None

    def conditions(self, column) -> list:
        clauses = []
        if self.start is not None:
            clauses.append(column >= self.start)
        if self.end is not None:
            clauses.append(column <= self.end)
        return clauses


def month_start(moment: datetime, months_back: int = 0) -> datetime:
    """First instant of the calendar month ``months_back`` months before ``moment``."""
    index = moment.year * 12 + (moment.month - 1) - months_back
    return datetime(index // 12, index % 12 + 1, 1)
