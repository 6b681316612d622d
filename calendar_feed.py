from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Collection, Iterable, List, Literal, Optional, Tuple

from itinerary import DateRange, find_overlapping
from visibility import (
    DisplayAs,
    DisplayPolicy,
    VisibilityLevel,
    display_policy,
    resolve_effective,
)

logger = logging.getLogger("seeya.calendar")

TripRole = Literal["owner", "accepted", "invited", "viewing"]

# First colour is reserved for the viewer's own trips
PAL_COLORS = [
    "#FFE066",
    "#7DD3FC",
    "#A5D6A7",
    "#FFAB91",
    "#CE93D8",
    "#F48FB1",
    "#80DEEA",
    "#BCAAA4",
]

LEGEND_COLORS = {
    "owner": "#FFE066",
    "accepted": "#A5D6A7",
    "invited": "#FFAB91",
    "viewing": "#E5E7EB",
    "today": "#9333EA",
}

BUSY_LABEL = "Busy"


def pal_color(index: int) -> str:
    return PAL_COLORS[index % len(PAL_COLORS)]


def role_for(owner_id: str, viewer_id: str, participant_status: Optional[str]) -> TripRole:
    """
    Relationship of the viewer to a trip.

    participant_status is the viewer's trip_participants.status (invited,
    confirmed or declined; None if they are not a participant).
    """
    if owner_id == viewer_id:
        return "owner"
    if participant_status == "confirmed":
        return "accepted"
    if participant_status == "invited":
        return "invited"
    return "viewing"


@dataclass
class CalendarTrip:
    """
    A trip as loaded for the calendar, before visibility is applied.

    visibility:          owner's setting for the trip
    traveler_id:         whose calendar the trip appears on (defaults to
                         the owner)
    personal_visibility: that traveler's override (None = follow the
                         trip setting)
    """
    id: str
    name: str
    owner_id: str
    visibility: VisibilityLevel
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    personal_visibility: Optional[VisibilityLevel] = None
    destination: Optional[str] = None
    role: TripRole = "viewing"
    color: str = LEGEND_COLORS["viewing"]
    traveler_id: Optional[str] = None

    def __post_init__(self):
        if self.traveler_id is None:
            self.traveler_id = self.owner_id


@dataclass(frozen=True)
class CalendarEntry:
    trip_id: str
    owner_id: str
    traveler_id: str
    label: str
    destination: Optional[str]
    start_date: Optional[date]
    end_date: Optional[date]
    display_as: DisplayAs
    role: TripRole
    color: str


_FULL = display_policy(VisibilityLevel.FULL_DETAILS)


def policy_for(trip: CalendarTrip) -> DisplayPolicy:
    # Trips the viewer owns or takes part in are never redacted for them.
    if trip.role != "viewing":
        return _FULL
    return display_policy(resolve_effective(trip.visibility, trip.personal_visibility))


def redact(trip: CalendarTrip) -> Optional[CalendarEntry]:
    """Apply the trip's effective visibility; None if it must not be shown."""
    policy = policy_for(trip)
    if policy.display_as == "hidden":
        return None

    return CalendarEntry(
        trip_id=trip.id,
        owner_id=trip.owner_id,
        traveler_id=trip.traveler_id,
        label=trip.name if policy.show_name else BUSY_LABEL,
        destination=trip.destination if policy.show_destination else None,
        start_date=trip.start_date if policy.show_dates else None,
        end_date=trip.end_date if policy.show_dates else None,
        display_as=policy.display_as,
        role=trip.role,
        color=trip.color,
    )


def _sort_key(entry: CalendarEntry) -> Tuple[bool, date]:
    start = entry.start_date
    if start is None:
        return True, date.min
    if isinstance(start, datetime):
        start = start.date()
    return False, start


def build_feed(
    trips: Iterable[CalendarTrip],
    enabled_pals: Optional[Collection[str]] = None,
) -> List[CalendarEntry]:
    """
    Redacted calendar entries for the viewer, earliest first.

    - enabled_pals limits pal trips to those travelers; None shows every pal
    - a trip the viewer is part of appears once, unredacted, even if a pal
      is also on it; a pal trip appears once per pal
    - entries without dates go last
    """
    trips = list(trips)
    own_ids = {t.id for t in trips if t.role != "viewing"}

    entries = []
    seen = set()
    hidden = 0
    for trip in trips:
        if trip.role == "viewing":
            if trip.id in own_ids:
                continue
            if enabled_pals is not None and trip.traveler_id not in enabled_pals:
                continue
            key = (trip.id, trip.traveler_id)
        else:
            key = (trip.id, None)
        if key in seen:
            continue
        seen.add(key)

        entry = redact(trip)
        if entry is None:
            hidden += 1
            continue
        entries.append(entry)

    if hidden:
        logger.debug("Hid %d trip(s) from calendar feed", hidden)

    entries.sort(key=_sort_key)
    return entries


def _day(value):
    return value.date() if isinstance(value, datetime) else value


def entries_in_window(entries: Iterable[CalendarEntry], window_start: date, window_end: date) -> List[CalendarEntry]:
    """
    Entries overlapping [window_start, window_end], then every undated entry.

    An entry with a start but no end is treated as a single day.
    """
    dated, undated = [], []
    for entry in entries:
        if entry.start_date is None:
            undated.append(entry)
            continue
        end = entry.end_date if entry.end_date is not None else entry.start_date
        span = DateRange(_day(entry.start_date), _day(end))
        if find_overlapping(window_start, window_end, [span]):
            dated.append(entry)
    return dated + undated


def upcoming(entries: Iterable[CalendarEntry], today: date, limit: int = 5) -> List[Tuple[CalendarEntry, int]]:
    """Dated entries starting today or later, with days until departure."""
    result = []
    for entry in entries:
        undated, start = _sort_key(entry)
        if undated or start < today:
            continue
        result.append((entry, (start - today).days))
    result.sort(key=lambda pair: pair[1])
    return result[:limit]
