from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence

from calendar_feed import CalendarTrip, pal_color
from itinerary import TripLocation, Tripbit
from models import row_to_calendar_trip, row_to_location, row_to_tripbit
from visibility import VisibilityInput, VisibilityLevel, parse_visibility

logger = logging.getLogger("seeya.db")


class DataAccessError(RuntimeError):
    """A Supabase query failed."""


def _extract_data(res: Any) -> List[Dict[str, Any]]:
    """
    st_supabase_connection sometimes returns a dict like {"data": [...], "count": ...}
    supabase-py returns an APIResponse object with attribute `.data`.
    """
    if res is None:
        return []
    if isinstance(res, dict):
        return res.get("data", []) or []
    data = getattr(res, "data", None)
    return data or []


def _execute(query: Any, what: str, action: str = "load") -> List[Dict[str, Any]]:
    try:
        res = query.execute()
    except Exception as exc:
        logger.error("Supabase query failed (%s): %s", what, exc)
        raise DataAccessError(f"Could not {action} {what}.") from exc
    return _extract_data(res)


def _require_user(user_id: str) -> None:
    if not user_id:
        raise ValueError("user_id is required.")


# -----------------------------
# Itinerary
# -----------------------------

def fetch_trip_locations(supabase, trip_id: str) -> List[TripLocation]:
    """Locations (legs) of one trip, in itinerary order."""
    q = (
        supabase.table("trip_locations")
        .select("*")
        .eq("trip_id", trip_id)
        .order("order_index")
    )
    return [row_to_location(r) for r in _execute(q, "trip locations")]


def fetch_tripbits(supabase, trip_id: str) -> List[Tripbit]:
    """Tripbits of one trip, earliest first; undated ones come last."""
    q = (
        supabase.table("trip_resources")
        .select("*")
        .eq("trip_id", trip_id)
        .order("start_date")
    )
    return [row_to_tripbit(r) for r in _execute(q, "tripbits")]


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def insert_trip_location(
    supabase,
    trip_id: str,
    destination: str,
    start: Optional[date] = None,
    end: Optional[date] = None,
    order_index: Optional[int] = None,
) -> TripLocation:
    """
    Add a leg to a trip.
    Without order_index the leg goes after the trip's current last leg.
    """
    destination = (destination or "").strip()
    if not destination:
        raise ValueError("destination is required.")
    # raises on end < start
    TripLocation(id="", destination=destination, start_date=start, end_date=end)

    if order_index is None:
        existing = fetch_trip_locations(supabase, trip_id)
        order_index = max((loc.order_index for loc in existing), default=-1) + 1

    payload: Dict[str, Any] = {
        "trip_id": trip_id,
        "destination": destination,
        "start_date": _iso(start),
        "end_date": _iso(end),
        "order_index": order_index,
    }
    data = _execute(supabase.table("trip_locations").insert(payload), "trip location", action="save")
    if not data:
        raise DataAccessError("Could not save trip location.")
    logger.info("Added location %r to trip %s at position %d", destination, trip_id, order_index)
    return row_to_location(data[0])


def delete_trip_location(supabase, location_id: str, trip_id: str) -> None:
    """Delete one leg, scoped to its trip."""
    _execute(
        supabase.table("trip_locations").delete().eq("id", location_id).eq("trip_id", trip_id),
        "trip location",
        action="delete",
    )
    logger.info("Deleted location %s from trip %s", location_id, trip_id)


# -----------------------------
# Trips
# -----------------------------

def insert_trip(
    supabase,
    owner_id: str,
    name: str,
    destination: str,
    start: Optional[date] = None,
    end: Optional[date] = None,
    visibility: VisibilityInput = VisibilityLevel.FULL_DETAILS,
    description: str = "",
) -> CalendarTrip:
    """
    Insert one trip owned by owner_id.
    Bad input (missing name or destination, end before start, unknown
    visibility) raises before anything is written.
    """
    _require_user(owner_id)
    name = (name or "").strip()
    destination = (destination or "").strip()
    if not name:
        raise ValueError("name is required to insert a trip.")
    if not destination:
        raise ValueError("destination is required to insert a trip.")
    if start is not None and end is not None and end < start:
        raise ValueError("end date must be on or after start date.")
    level = parse_visibility(visibility)
    if level is None:
        raise ValueError("visibility is required to insert a trip.")

    payload: Dict[str, Any] = {
        "owner_id": owner_id,
        "name": name,
        "destination": destination,
        "start_date": _iso(start),
        "end_date": _iso(end),
        "visibility": level.wire,
        "description": description or None,
    }
    data = _execute(supabase.table("trips").insert(payload), "trip", action="save")
    if not data:
        raise DataAccessError("Could not save trip.")
    logger.info("Trip %s created by %s", data[0]["id"], owner_id)
    return row_to_calendar_trip(data[0], owner_id)


def delete_trip(supabase, trip_id: str, owner_id: str) -> None:
    """
    Delete one trip, scoped to its owner.
    """
    _require_user(owner_id)

    _execute(
        supabase.table("trips").delete().eq("id", trip_id).eq("owner_id", owner_id),
        "trip",
        action="delete",
    )
    logger.info("Trip %s deleted by %s", trip_id, owner_id)


# -----------------------------
# Calendar
# -----------------------------

def _fetch_trips_by_id(supabase, trip_ids: Sequence[str]) -> List[Dict[str, Any]]:
    if not trip_ids:
        return []
    q = supabase.table("trips").select("*").in_("id", list(trip_ids))
    return _execute(q, "trips")


def fetch_viewer_trips(supabase, viewer_id: str) -> List[CalendarTrip]:
    """
    Trips the viewer owns or has been invited to.

    The viewer's own personal_visibility is attached to trips they take
    part in, so the UI can show their current override.
    """
    _require_user(viewer_id)

    participations = _execute(
        supabase.table("trip_participants")
        .select("trip_id, status, personal_visibility")
        .eq("user_id", viewer_id),
        "trip participations",
    )
    by_trip = {str(p["trip_id"]): p for p in participations if p.get("status") != "declined"}

    owned = _execute(
        supabase.table("trips").select("*").eq("owner_id", viewer_id),
        "owned trips",
    )
    owned_ids = {str(r["id"]) for r in owned}

    joined = _fetch_trips_by_id(supabase, [tid for tid in by_trip if tid not in owned_ids])

    trips = []
    for row in owned + joined:
        participation = by_trip.get(str(row["id"])) or {}
        merged = dict(row, personal_visibility=participation.get("personal_visibility"))
        trips.append(
            row_to_calendar_trip(merged, viewer_id, participant_status=participation.get("status"))
        )

    logger.info(
        "Loaded %d trip(s) for viewer %s (%d owned, %d joined)",
        len(trips), viewer_id, len(owned), len(joined),
    )
    return trips


def fetch_travel_pal_ids(supabase, viewer_id: str) -> List[str]:
    """User ids with an accepted friendship with the viewer."""
    _require_user(viewer_id)

    rows = _execute(
        supabase.table("friendships")
        .select("requester_id, addressee_id")
        .eq("status", "accepted")
        .or_(f"requester_id.eq.{viewer_id},addressee_id.eq.{viewer_id}"),
        "travel pals",
    )

    pal_ids: List[str] = []
    for row in rows:
        requester = str(row["requester_id"])
        pal = str(row["addressee_id"]) if requester == viewer_id else requester
        if pal not in pal_ids:
            pal_ids.append(pal)
    return pal_ids


def fetch_pal_trips(supabase, viewer_id: str, pal_ids: Iterable[str]) -> List[CalendarTrip]:
    """
    Trips of the viewer's pals, not yet redacted.

    Covers trips a pal owns and trips a pal has confirmed joining. For the
    latter the pal's personal_visibility is attached so it can narrow what
    the viewer sees.
    """
    _require_user(viewer_id)
    pal_ids = list(pal_ids)
    if not pal_ids:
        return []

    colors = {pal: pal_color(i + 1) for i, pal in enumerate(pal_ids)}

    owned = _execute(
        supabase.table("trips").select("*").in_("owner_id", pal_ids),
        "pal trips",
    )

    participations = _execute(
        supabase.table("trip_participants")
        .select("trip_id, user_id, status, personal_visibility")
        .in_("user_id", pal_ids)
        .eq("status", "confirmed"),
        "pal participations",
    )
    joined = {str(r["id"]): r for r in _fetch_trips_by_id(
        supabase, sorted({str(p["trip_id"]) for p in participations})
    )}

    trips = []
    for row in owned:
        owner = str(row["owner_id"])
        trips.append(
            row_to_calendar_trip(row, viewer_id, color=colors.get(owner), traveler_id=owner)
        )

    for p in participations:
        row = joined.get(str(p["trip_id"]))
        if row is None:
            continue
        traveler = str(p["user_id"])
        merged = dict(row, personal_visibility=p.get("personal_visibility"))
        trips.append(
            row_to_calendar_trip(merged, viewer_id, color=colors.get(traveler), traveler_id=traveler)
        )

    return trips


def update_personal_visibility(
    supabase,
    trip_id: str,
    user_id: str,
    visibility: Optional[VisibilityInput],
) -> None:
    """
    Set (or clear, with None) the user's override for one trip.
    Unknown levels raise before anything is written.
    """
    _require_user(user_id)
    level = parse_visibility(visibility)

    _execute(
        supabase.table("trip_participants")
        .update({"personal_visibility": level.wire if level is not None else None})
        .eq("trip_id", trip_id)
        .eq("user_id", user_id),
        "visibility",
        action="save",
    )
    logger.info(
        "Personal visibility for trip %s set to %s by %s",
        trip_id, level.wire if level is not None else "follow", user_id,
    )
