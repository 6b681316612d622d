from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Optional, Union

from dateutil.parser import isoparse, isoparser

from calendar_feed import CalendarTrip, LEGEND_COLORS, role_for
from itinerary import TripLocation, Tripbit
from visibility import InvalidVisibilityError, parse_visibility

_ISO = isoparser()


def parse_date(value: Any) -> Optional[Union[date, datetime]]:
    """
    Supabase returns `date` columns as "YYYY-MM-DD" and timestamps as
    ISO-8601 strings. Date-only strings stay dates; timestamps keep their
    time and offset exactly as sent.
    """
    if value is None or value == "":
        return None
    if isinstance(value, (date, datetime)):
        return value
    text = str(value).strip()
    try:
        return _ISO.parse_isodate(text)
    except ValueError:
        return isoparse(text)


def row_to_location(row: Dict[str, Any]) -> TripLocation:
    return TripLocation(
        id=str(row["id"]),
        destination=(row.get("destination") or "").strip(),
        start_date=parse_date(row.get("start_date")),
        end_date=parse_date(row.get("end_date")),
        order_index=int(row.get("order_index") or 0),
    )


def row_to_tripbit(row: Dict[str, Any]) -> Tripbit:
    return Tripbit(
        id=str(row["id"]),
        category=row.get("category") or "other",
        title=(row.get("title") or "").strip(),
        description=row.get("description"),
        url=row.get("url"),
        location_id=row.get("location_id"),
        start_date=parse_date(row.get("start_date")),
        end_date=parse_date(row.get("end_date")),
        metadata=row.get("metadata") or {},
    )


def row_to_calendar_trip(
    row: Dict[str, Any],
    viewer_id: str,
    participant_status: Optional[str] = None,
    color: Optional[str] = None,
    traveler_id: Optional[str] = None,
) -> CalendarTrip:
    """
    Build a CalendarTrip from a `trips` row.

    - visibility is NOT NULL in the schema; missing or unknown values raise
    - personal_visibility comes from the trip_participants row, if joined
    """
    visibility = parse_visibility(row.get("visibility"))
    if visibility is None:
        raise InvalidVisibilityError(f"Trip {row.get('id')} has no visibility level.")
    role = role_for(str(row["owner_id"]), viewer_id, participant_status)

    return CalendarTrip(
        id=str(row["id"]),
        name=(row.get("name") or "").strip(),
        owner_id=str(row["owner_id"]),
        visibility=visibility,
        start_date=parse_date(row.get("start_date")),
        end_date=parse_date(row.get("end_date")),
        personal_visibility=parse_visibility(row.get("personal_visibility")),
        destination=row.get("destination"),
        role=role,
        color=color or LEGEND_COLORS[role],
        traveler_id=traveler_id,
    )
