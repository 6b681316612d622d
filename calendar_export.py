from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Iterable, List, Optional

from icalendar import Calendar, Event

from itinerary import DateLike, TripLocation, Tripbit

UID_DOMAIN = "seeya.app"
PRODID = "-//Seeya//Trip Itinerary//EN"

CATEGORY_EMOJIS = {
    "flight": "✈️",
    "accommodation": "🏨",
    "rental_car": "🚗",
    "transportation": "🚌",
    "activity": "🎯",
    "restaurant": "🍽️",
    "reservation": "📅",
    "document": "📄",
    "money": "💰",
    "communication": "📱",
    "other": "📌",
}


def _as_day(value: DateLike) -> date:
    return value.date() if isinstance(value, datetime) else value


def _instant(value: DateLike) -> datetime:
    """
    Aware datetimes go out in UTC; naive ones stay floating local time.
    Plain dates become midnight.
    """
    if not isinstance(value, datetime):
        return datetime(value.year, value.month, value.day)
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc)
    return value


def _event(
    uid: str,
    summary: str,
    start: DateLike,
    end: DateLike,
    all_day: bool,
    stamp: datetime,
    description: Optional[str] = None,
    location: Optional[str] = None,
) -> Event:
    ev = Event()
    ev.add("uid", f"{uid}@{UID_DOMAIN}")
    ev.add("dtstamp", _instant(stamp))
    if all_day:
        # DTEND is exclusive for all-day events
        ev.add("dtstart", _as_day(start))
        ev.add("dtend", _as_day(end) + timedelta(days=1))
    else:
        ev.add("dtstart", _instant(start))
        ev.add("dtend", _instant(end))
    ev.add("summary", summary)
    if description:
        ev.add("description", description)
    if location:
        ev.add("location", location)
    return ev


def _tripbit_details(tripbit: Tripbit) -> List[str]:
    meta = tripbit.metadata or {}
    parts = []
    if tripbit.category == "flight":
        if meta.get("airline"):
            parts.append(f"Airline: {meta['airline']}")
        if meta.get("flight_number"):
            parts.append(f"Flight: {meta['flight_number']}")
        if meta.get("confirmation_number"):
            parts.append(f"Confirmation: {meta['confirmation_number']}")
        if meta.get("departure_airport") and meta.get("arrival_airport"):
            parts.append(f"Route: {meta['departure_airport']} → {meta['arrival_airport']}")
    elif tripbit.category == "accommodation":
        if meta.get("confirmation_number"):
            parts.append(f"Confirmation: {meta['confirmation_number']}")
        if meta.get("check_in_time"):
            parts.append(f"Check-in: {meta['check_in_time']}")
        if meta.get("check_out_time"):
            parts.append(f"Check-out: {meta['check_out_time']}")
        if meta.get("address"):
            parts.append(f"Address: {meta['address']}")
    return parts


def _tripbit_description(tripbit: Tripbit) -> Optional[str]:
    blocks = []
    if tripbit.description:
        blocks.append(tripbit.description)
    if tripbit.url:
        blocks.append(f"URL: {tripbit.url}")
    details = _tripbit_details(tripbit)
    if details:
        blocks.append("\n".join(details))
    return "\n\n".join(blocks) or None


def _tripbit_location(tripbit: Tripbit) -> Optional[str]:
    meta = tripbit.metadata or {}
    if tripbit.category == "flight" and meta.get("departure_airport") and meta.get("arrival_airport"):
        return f"{meta['departure_airport']} → {meta['arrival_airport']}"
    return meta.get("address") or meta.get("location") or None


def build_calendar(
    trip_name: str,
    locations: Iterable[TripLocation],
    tripbits: Iterable[Tripbit] = (),
    stamp: Optional[datetime] = None,
) -> Calendar:
    """
    Itinerary as an icalendar Calendar.

    - each location with both dates becomes an all-day event
    - each tripbit with a start date becomes an event; it is all-day when
      neither of its dates carries a time, and ends at its start when it
      has no end date
    """
    stamp = stamp or datetime.now(timezone.utc)

    cal = Calendar()
    cal.add("prodid", PRODID)
    cal.add("version", "2.0")
    cal.add("calscale", "GREGORIAN")
    cal.add("method", "PUBLISH")
    cal.add("x-wr-calname", trip_name)

    for leg, loc in enumerate(locations, start=1):
        if not loc.has_dates:
            continue
        cal.add_component(
            _event(
                uid=f"loc-{loc.id}",
                summary=f"📍 {loc.destination}",
                start=loc.start_date,
                end=loc.end_date,
                all_day=True,
                stamp=stamp,
                description=f"Leg {leg} of {trip_name}",
                location=loc.destination,
            )
        )

    for tripbit in tripbits:
        if tripbit.start_date is None:
            continue
        end = tripbit.end_date if tripbit.end_date is not None else tripbit.start_date
        all_day = not isinstance(tripbit.start_date, datetime) and not isinstance(end, datetime)
        emoji = CATEGORY_EMOJIS.get(tripbit.category, CATEGORY_EMOJIS["other"])
        cal.add_component(
            _event(
                uid=f"tripbit-{tripbit.id}",
                summary=f"{emoji} {tripbit.title}",
                start=tripbit.start_date,
                end=end,
                all_day=all_day,
                stamp=stamp,
                description=_tripbit_description(tripbit),
                location=_tripbit_location(tripbit),
            )
        )

    return cal


def trip_to_ics(
    trip_name: str,
    locations: Iterable[TripLocation],
    tripbits: Iterable[Tripbit] = (),
    stamp: Optional[datetime] = None,
) -> str:
    """Serialised .ics text; escaping and line folding are done by icalendar."""
    return build_calendar(trip_name, locations, tripbits, stamp).to_ical().decode("utf-8")
