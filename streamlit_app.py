import logging
import re
from datetime import date

import streamlit as st
from dateutil.relativedelta import relativedelta

from auth import current_user, get_supabase, sign_in_email_password, sign_out
from calendar_export import trip_to_ics
from calendar_feed import build_feed, entries_in_window, upcoming
from config import configure_logging, load_settings, streamlit_secrets
from db import (
    DataAccessError,
    delete_trip,
    delete_trip_location,
    fetch_pal_trips,
    fetch_travel_pal_ids,
    fetch_trip_locations,
    fetch_tripbits,
    fetch_viewer_trips,
    insert_trip,
    insert_trip_location,
    update_personal_visibility,
)
from itinerary import DAYS_OF_WEEK, LOCATION_COLORS, bars_for_week, find_overlapping, month_grid, months_spanned
from visibility import VisibilityLevel, calendar_choice, calendar_override

settings = load_settings(streamlit_secrets())
configure_logging(settings.log_level)
logger = logging.getLogger("seeya.app")


def format_date(d) -> str:
    return d.strftime("%a %d %b %Y") if d else "—"


def format_range(start, end) -> str:
    if not start:
        return "Dates hidden"
    if not end or end == start:
        return format_date(start)
    return f"{format_date(start)} → {format_date(end)}"


# -------------------------
# PAGE CONFIG
# -------------------------
st.set_page_config(page_title="Seeya — Trip Calendar", page_icon="🧳")

supabase = get_supabase(settings.supabase_conn_name)


# -------------------------
# Helper: friendlier auth errors
# -------------------------
def _friendly_auth_error(e: Exception) -> str:
    msg = str(e).lower()

    m = re.search(r"after\s+(\d+)\s+seconds", msg)
    if m:
        return f"Please wait {m.group(1)} seconds and try again."
    if "rate limit" in msg or "too many requests" in msg or "429" in msg:
        return "Too many attempts in a short time. Please wait a bit and try again."
    if "email not confirmed" in msg:
        return "Please confirm your email first (check your inbox), then sign in."
    if "invalid login credentials" in msg:
        return "Incorrect email or password."
    return "Something went wrong. Please try again."


def _show_error(message: str, exc: Exception) -> None:
    st.error(message)
    if settings.show_dev_details:
        with st.expander("Details (developer)"):
            st.exception(exc)


# -------------------------
# AUTH GATE
# -------------------------
user = current_user(supabase)

st.title("🧳 Seeya — Trip Calendar")
st.caption("See where your travel pals are heading, as much as they choose to share.")

if not user:
    st.info("Please sign in to see your calendar.")
    with st.form("sign_in_form"):
        email = st.text_input("Email", placeholder="you@example.com")
        password = st.text_input("Password", type="password")
        if st.form_submit_button("Sign in", use_container_width=True):
            try:
                sign_in_email_password(supabase, email=email.strip(), password=password)
                st.rerun()
            except Exception as e:
                logger.info("Sign-in failed for %s: %s", email.strip(), e)
                _show_error(_friendly_auth_error(e), e)
    st.stop()


# -------------------------
# LOAD DATA
# -------------------------
try:
    my_trips = fetch_viewer_trips(supabase, viewer_id=user.id)
    pal_ids = fetch_travel_pal_ids(supabase, viewer_id=user.id)
    pal_trips = fetch_pal_trips(supabase, viewer_id=user.id, pal_ids=pal_ids)
except DataAccessError as e:
    _show_error(str(e), e)
    st.stop()


# -------------------------
# SIDEBAR (LOGGED IN)
# -------------------------
with st.sidebar:
    st.markdown("### Account")
    st.write(f"Signed in as: **{user.email or '(no email)'}**")
    if st.button("Sign out"):
        sign_out(supabase)
        st.rerun()

    st.markdown("### Travel pals")
    enabled_pals = [pal for pal in pal_ids if st.checkbox(pal, value=True, key=f"pal_{pal}")]


# -------------------------
# 1. CALENDAR
# -------------------------
st.header("1. Calendar")

today = date.today()
months = st.select_slider("Months to show", options=[1, 3, 6, 12], value=settings.calendar_months)
window_end = today.replace(day=1) + relativedelta(months=months) - relativedelta(days=1)

feed = build_feed(my_trips + pal_trips, enabled_pals=enabled_pals)

soon = upcoming(feed, today)
if soon:
    st.markdown("**Coming up:** " + ", ".join(f"{e.label} in {days} day(s)" for e, days in soon))

in_window = entries_in_window(feed, today, window_end)

if not in_window:
    st.info("Nothing on the calendar for this period.")

for entry in in_window:
    who = "You" if entry.role != "viewing" else entry.traveler_id
    where = f" · {entry.destination}" if entry.destination else ""
    st.markdown(
        f"<span style='color:{entry.color}'>■</span> **{entry.label}**{where} — "
        f"{format_range(entry.start_date, entry.end_date)} _({who}, {entry.display_as})_",
        unsafe_allow_html=True,
    )


# -------------------------
# 2. MY CALENDAR SHARING
# -------------------------
st.header("2. How my trips show to pals")

choices = ["follow", "hide", "busy", "dates", "location"]
for trip in my_trips:
    if trip.role == "owner":
        col_trip, col_btn = st.columns([6, 1])
        col_trip.write(f"**{trip.name}** — you own this trip: {trip.visibility.label}")
        if col_btn.button("Delete", key=f"del_{trip.id}"):
            try:
                delete_trip(supabase, trip.id, owner_id=user.id)
                st.rerun()
            except DataAccessError as e:
                _show_error(str(e), e)
        continue
    current = calendar_choice(trip.personal_visibility)
    picked = st.selectbox(
        f"{trip.name} (trip setting: {trip.visibility.label})",
        choices,
        index=choices.index(current),
        key=f"vis_{trip.id}",
    )
    if picked != current:
        try:
            update_personal_visibility(supabase, trip.id, user.id, calendar_override(picked))
            st.rerun()
        except DataAccessError as e:
            _show_error(str(e), e)


# -------------------------
# 3. ADD NEW TRIP
# -------------------------
st.header("3. Add a new trip")

with st.form("add_trip_form"):
    name = st.text_input("Trip name", placeholder="Summer in Portugal")
    destination = st.text_input("Destination", placeholder="Lisbon, Portugal")

    col1, col2 = st.columns(2)
    start = col1.date_input("Start date", value=date.today(), format="DD/MM/YYYY")
    end = col2.date_input("End date", value=date.today(), format="DD/MM/YYYY")

    levels = list(VisibilityLevel)
    level = st.selectbox(
        "Who can see it",
        levels,
        index=levels.index(VisibilityLevel.FULL_DETAILS),
        format_func=lambda lv: f"{lv.label}: {lv.description}",
    )
    submitted = st.form_submit_button("Add trip")

    if submitted:
        try:
            insert_trip(
                supabase,
                owner_id=user.id,
                name=name,
                destination=destination,
                start=start,
                end=end,
                visibility=level,
            )
            st.success("Trip added.")
            st.rerun()
        except DataAccessError as e:
            _show_error(str(e), e)
        except ValueError as e:
            st.error(str(e))


# -------------------------
# 4. ITINERARY
# -------------------------
st.header("4. Itinerary")

dated_trips = [t for t in my_trips if t.start_date and t.end_date]
if not dated_trips:
    st.info("None of your trips have dates yet.")
    st.stop()

trip = st.selectbox("Trip", dated_trips, format_func=lambda t: t.name)

try:
    locations = fetch_trip_locations(supabase, trip.id)
    tripbits = fetch_tripbits(supabase, trip.id)
except DataAccessError as e:
    _show_error(str(e), e)
    st.stop()

can_edit = trip.role == "owner"
for loc in locations:
    col_loc, col_btn = st.columns([6, 1])
    col_loc.write(f"{loc.order_index + 1}. **{loc.destination}** — {format_range(loc.start_date, loc.end_date)}")
    if can_edit and col_btn.button("Remove", key=f"del_loc_{loc.id}"):
        try:
            delete_trip_location(supabase, loc.id, trip.id)
            st.rerun()
        except DataAccessError as e:
            _show_error(str(e), e)

if can_edit:
    with st.form("add_location_form"):
        leg = st.text_input("Add a leg", placeholder="Porto")
        col1, col2 = st.columns(2)
        leg_start = col1.date_input("Arrive", value=trip.start_date, format="DD/MM/YYYY")
        leg_end = col2.date_input("Leave", value=trip.end_date, format="DD/MM/YYYY")
        if st.form_submit_button("Add leg"):
            try:
                insert_trip_location(supabase, trip.id, leg, start=leg_start, end=leg_end)
                st.rerun()
            except DataAccessError as e:
                _show_error(str(e), e)
            except ValueError as e:
                st.error(str(e))

for month_start in months_spanned(trip.start_date, trip.end_date, locations + tripbits):
    st.subheader(month_start.strftime("%B %Y"))
    for week in month_grid(month_start):
        st.text("  ".join(f"{DAYS_OF_WEEK[i]} {d.day:>2}" if d else " " * 6 for i, d in enumerate(week)))
        for bar in bars_for_week(week, locations):
            edge = ("[" if bar.starts_in_week else "<") + "=" * (bar.span * 8 - 3) + ("]" if bar.ends_in_week else ">")
            st.text(" " * ((bar.start_col - 1) * 8) + f"{edge} {bar.item.destination} ({LOCATION_COLORS[bar.color_index]})")

day = st.date_input("Where am I on…", value=trip.start_date, format="DD/MM/YYYY")
matches = find_overlapping(day, None, locations)
if matches:
    st.write(", ".join(loc.destination for loc in matches))
else:
    st.write("No location planned for that day.")

st.download_button(
    "Download .ics",
    data=trip_to_ics(trip.name, locations, tripbits),
    file_name=f"{trip.name or 'trip'}.ics",
    mime="text/calendar",
)

st.markdown("---")
st.caption(f"Visibility levels: {', '.join(level.label for level in VisibilityLevel)}.")
