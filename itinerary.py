from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar, Union

from dateutil.relativedelta import relativedelta

DateLike = Union[date, datetime]
T = TypeVar("T")

# Colour slots for location bars, cycled by position in the trip
LOCATION_COLORS = ["amber", "sky", "rose", "emerald", "violet", "orange"]

DAYS_OF_WEEK = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


@dataclass
class DateRange:
    """
    A possibly incomplete date range.

    Ranges missing either end are never matched by overlap checks.
    """
    start_date: Optional[DateLike] = None
    end_date: Optional[DateLike] = None

    @property
    def has_dates(self) -> bool:
        return self.start_date is not None and self.end_date is not None


@dataclass
class TripLocation(DateRange):
    """
    One leg of a trip (a city or region the travellers stay in).

    order_index: position of the leg in the itinerary
    """
    id: str = ""
    destination: str = ""
    order_index: int = 0

    def __post_init__(self):
        if self.has_dates and self.end_date < self.start_date:
            raise ValueError("Location end date cannot be before start date.")


@dataclass
class Tripbit(DateRange):
    """An itinerary item (flight, stay, reservation, ...)."""
    id: str = ""
    category: str = "other"
    title: str = ""
    description: Optional[str] = None
    url: Optional[str] = None
    location_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class WeekBar:
    """
    Placement of a dated item inside one calendar week row.

    start_col is 1-based (grid columns), span counts days covered.
    """
    item: Any
    start_col: int
    span: int
    starts_in_week: bool
    ends_in_week: bool
    color_index: int


def _overlap(a_start: DateLike, a_end: DateLike, b_start: DateLike, b_end: DateLike) -> Optional[Tuple[DateLike, DateLike]]:
    """Return overlapping range [start, end] inclusive, else None."""
    start = max(a_start, b_start)
    end = min(a_end, b_end)
    if start > end:
        return None
    return start, end


def find_overlapping(
    query_start: Optional[DateLike],
    query_end: Optional[DateLike],
    candidates: Sequence[T],
) -> List[T]:
    """
    Candidates whose [start_date, end_date] intersects the query interval.

    - no query_start or no candidates -> []
    - query_end defaults to query_start (a single day)
    - candidates missing either date are skipped
    - endpoints are inclusive and values are compared as given
    Input order is preserved.
    """
    if query_start is None or not candidates:
        return []

    q_end = query_end if query_end is not None else query_start

    matches = []
    for candidate in candidates:
        start = candidate.start_date
        end = candidate.end_date
        if start is None or end is None:
            continue
        if query_start <= end and q_end >= start:
            matches.append(candidate)
    return matches


def _as_day(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def is_multi_day(item: DateRange) -> bool:
    if not item.has_dates:
        return False
    return _as_day(item.start_date) != _as_day(item.end_date)


def items_on_day(day: date, items: Iterable[T]) -> List[T]:
    """Single-day items that start on `day` (multi-day items are drawn as bars)."""
    result = []
    for item in items:
        if item.start_date is None or is_multi_day(item):
            continue
        if _as_day(item.start_date) == day:
            result.append(item)
    return result


def month_grid(month_start: date) -> List[List[Optional[date]]]:
    """
    Week rows (Sunday first) for the month containing `month_start`.
    Days outside the month are None.
    """
    cal = calendar.Calendar(firstweekday=6)
    weeks = []
    for week in cal.monthdayscalendar(month_start.year, month_start.month):
        weeks.append([
            date(month_start.year, month_start.month, d) if d else None
            for d in week
        ])
    return weeks


def bars_for_week(
    week: Sequence[Optional[date]],
    items: Sequence[T],
    palette_size: int = len(LOCATION_COLORS),
) -> List[WeekBar]:
    """
    Lay out dated items as horizontal bars across one week row.

    Items starting before the week begin at its first real day; items
    ending after it stop at its last real day. Items without both dates
    are skipped.
    """
    real_cols = [i for i, d in enumerate(week) if d is not None]
    if not real_cols:
        return []

    week_start = week[real_cols[0]]
    week_end = week[real_cols[-1]]

    bars = []
    for idx, item in enumerate(items):
        if not item.has_dates:
            continue
        item_start = _as_day(item.start_date)
        item_end = _as_day(item.end_date)
        if _overlap(week_start, week_end, item_start, item_end) is None:
            continue

        starts_in_week = week_start <= item_start <= week_end
        ends_in_week = week_start <= item_end <= week_end

        start_col = week.index(item_start) if starts_in_week else real_cols[0]
        end_col = week.index(item_end) if ends_in_week else real_cols[-1]

        bars.append(
            WeekBar(
                item=item,
                start_col=start_col + 1,
                span=end_col - start_col + 1,
                starts_in_week=starts_in_week,
                ends_in_week=ends_in_week,
                color_index=idx % palette_size,
            )
        )
    return bars


def months_spanned(
    start: DateLike,
    end: DateLike,
    extra: Iterable[DateRange] = (),
) -> List[date]:
    """
    First day of every month touched by the trip or any of `extra`'s dates.
    """
    min_day = _as_day(start)
    max_day = _as_day(end)
    for item in extra:
        for value in (item.start_date, item.end_date):
            if value is None:
                continue
            day = _as_day(value)
            min_day = min(min_day, day)
            max_day = max(max_day, day)

    current = min_day.replace(day=1)
    last = max_day.replace(day=1)
    months = []
    while current <= last:
        months.append(current)
        current += relativedelta(months=1)
    return months
