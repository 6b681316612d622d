from datetime import date, datetime, timedelta, timezone

import pytest

from models import parse_date, row_to_calendar_trip, row_to_location, row_to_tripbit
from visibility import InvalidVisibilityError, VisibilityLevel


class TestParseDate:
    def test_date_only_string_stays_a_date(self):
        assert parse_date("2024-06-01") == date(2024, 6, 1)
        assert type(parse_date("2024-06-01")) is date

    def test_basic_format_date_stays_a_date(self):
        assert type(parse_date("20240601")) is date
        assert parse_date("20240601") == date(2024, 6, 1)
        assert type(parse_date(" 2024-06-01 ")) is date

    def test_timestamp_keeps_time_and_offset(self):
        value = parse_date("2024-06-01T08:30:00+02:00")
        assert value == datetime(2024, 6, 1, 8, 30, tzinfo=timezone(timedelta(hours=2)))

    def test_postgres_space_separator(self):
        assert parse_date("2024-06-01 08:30:00+00") == datetime(2024, 6, 1, 8, 30, tzinfo=timezone.utc)

    def test_empty_values(self):
        assert parse_date(None) is None
        assert parse_date("") is None

    def test_date_objects_pass_through(self):
        d = date(2024, 6, 1)
        assert parse_date(d) is d

    def test_garbage_raises(self):
        with pytest.raises(ValueError):
            parse_date("next tuesday")


def test_row_to_location():
    location = row_to_location(
        {"id": 7, "destination": " Porto ", "start_date": "2024-06-05", "end_date": None, "order_index": None}
    )
    assert location.id == "7"
    assert location.destination == "Porto"
    assert location.start_date == date(2024, 6, 5)
    assert location.has_dates is False
    assert location.order_index == 0


def test_row_to_tripbit_defaults():
    tripbit = row_to_tripbit({"id": "r1", "title": "Dinner", "category": None, "metadata": None})
    assert tripbit.category == "other"
    assert tripbit.metadata == {}
    assert tripbit.start_date is None


class TestRowToCalendarTrip:
    def row(self, **kwargs):
        row = {
            "id": "t2", "owner_id": "u2", "name": "Tokyo", "destination": "Tokyo, Japan",
            "start_date": "2024-07-01", "end_date": "2024-07-14", "visibility": "dates_only",
        }
        row.update(kwargs)
        return row

    def test_pal_trip(self):
        trip = row_to_calendar_trip(self.row(personal_visibility="busy_only"), viewer_id="u1")
        assert trip.role == "viewing"
        assert trip.visibility is VisibilityLevel.DATES_ONLY
        assert trip.personal_visibility is VisibilityLevel.BUSY_ONLY
        assert trip.traveler_id == "u2"
        assert trip.start_date == date(2024, 7, 1)

    def test_owned_trip_gets_owner_colour(self):
        trip = row_to_calendar_trip(self.row(owner_id="u1"), viewer_id="u1")
        assert trip.role == "owner"
        assert trip.color == "#FFE066"

    def test_explicit_colour_and_traveler(self):
        trip = row_to_calendar_trip(self.row(), viewer_id="u1", color="#7DD3FC", traveler_id="u5")
        assert trip.color == "#7DD3FC"
        assert trip.traveler_id == "u5"

    def test_unknown_visibility_raises(self):
        with pytest.raises(InvalidVisibilityError):
            row_to_calendar_trip(self.row(visibility="friends"), viewer_id="u1")

    def test_missing_visibility_raises(self):
        with pytest.raises(InvalidVisibilityError):
            row_to_calendar_trip(self.row(visibility=None), viewer_id="u1")
