from datetime import date

import streamlit as st
from dateutil.relativedelta import relativedelta

from calculator import (
    SCHENGEN_MAX_DAYS,
    availability_summary,
    compute_compliance,
    is_schengen_country,
    residency_status,
    travel_summary,
)
from models import trip_from_record, trip_to_record, trips_from_records
from validation import validate_no_overlap, validate_trip_record


def _secret(name: str, default=None):
    try:
        return st.secrets.get(name, default)
    except Exception:
        # No secrets.toml at all
        return default


# Toggle for dev-only details (set in .streamlit/secrets.toml)
SHOW_DEV_DETAILS = bool(_secret("SHOW_DEV_DETAILS", False))

HORIZON_LABELS = {
    "next_month": "Next month",
    "next_3_months": "Next 3 months",
    "next_6_months": "Next 6 months",
}


def format_date(d: date) -> str:
    """Format date with weekday, e.g. Mon 03/06/2024."""
    return d.strftime("%a %d/%m/%Y")


# -------------------------
# PAGE CONFIG
# -------------------------
st.set_page_config(page_title="Stay Compliance Tracker", page_icon="🧳")

st.markdown(
    """
    <style>
    div[data-testid="InputInstructions"] {
        display: none !important;
    }

    div.block-container {
        max-width: 880px;
        padding-top: 2.2rem;
    }

    div[data-testid="stButton"] > button {
        border-radius: 999px !important;
        padding: 0.65rem 1rem !important;
    }
    </style>
    """,
    unsafe_allow_html=True,
)

st.title("🧳 Stay Compliance Tracker")
st.caption("Schengen 90/180 allowance and 183-day residency, from your own trip log.")


# -------------------------
# SESSION STATE
# -------------------------
if "trip_records" not in st.session_state:
    st.session_state.trip_records = []
if "next_trip_id" not in st.session_state:
    st.session_state.next_trip_id = 1


def load_trips():
    try:
        return trips_from_records(st.session_state.trip_records)
    except ValueError as e:
        st.error(f"A saved trip could not be read: {e}")
        return []


trips = load_trips()


# -------------------------
# 1. SHOW TRIPS
# -------------------------
st.header("1. Your trips")

if trips:
    for idx, trip in enumerate(sorted(trips, key=lambda t: t.start, reverse=True), start=1):
        col_trip, col_btn = st.columns([6, 1])

        with col_trip:
            zone = "Schengen" if is_schengen_country(trip.country) else "non-Schengen"
            st.markdown(
                f"**Trip {idx}:** {trip.country} ({zone}) · {format_date(trip.start)} → {format_date(trip.end)}"
            )
            st.write(f"- Days counted: **{trip.days()}**")

        with col_btn:
            if st.button("Delete", key=f"del_{trip.id}"):
                st.session_state.trip_records = [
                    r for r in st.session_state.trip_records if r.get("id") != trip.id
                ]
                st.rerun()
else:
    st.info("No trips yet.")


# -------------------------
# 2. ADD NEW TRIP
# -------------------------
st.header("2. Add a trip")

with st.form("add_trip_form"):
    country = st.text_input("Country (ISO 3-letter code)", placeholder="FRA", max_chars=3)
    col1, col2 = st.columns(2)
    start = col1.date_input("First day in the country", value=date.today(), format="DD/MM/YYYY")
    end = col2.date_input("Last day in the country", value=date.today(), format="DD/MM/YYYY")
    submitted = st.form_submit_button("Add trip")

    if submitted:
        record = {
            "id": st.session_state.next_trip_id,
            "country": country.strip().upper(),
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
        }
        errors = validate_trip_record(record)
        if errors:
            for msg in errors:
                st.error(msg)
        else:
            try:
                candidate = trip_from_record(record)
            except ValueError as e:
                st.error(str(e))
            else:
                check = validate_no_overlap(candidate, trips)
                if not check.is_valid:
                    for msg in check.errors:
                        st.error(msg)
                else:
                    st.session_state.trip_records.append(trip_to_record(candidate))
                    st.session_state.next_trip_id += 1
                    st.success("Trip added.")
                    st.rerun()


# -------------------------
# 3. SCHENGEN STATUS
# -------------------------
st.header("3. Schengen 90/180 status")

today = st.date_input("Assume today's date is", value=date.today(), format="DD/MM/YYYY")
st.caption(f"Using today as: {format_date(today)}")

compliance = compute_compliance(trips, today)

col_used, col_left = st.columns(2)
col_used.metric("Days used", f"{compliance.used_days} / {SCHENGEN_MAX_DAYS}")
col_left.metric("Days remaining", str(compliance.remaining_days))

if compliance.used_days:
    st.write(
        f"- Busiest 180-day window: **{format_date(compliance.window_start)}** → "
        f"**{format_date(compliance.window_end)}**"
    )
if compliance.remaining_days == 0:
    st.error("You have reached the 90-day limit in the Schengen area.")


# -------------------------
# 4. FORECAST
# -------------------------
st.header("4. Availability ahead")
st.caption("Worst point in each period, assuming no further trips beyond those logged.")

summary = availability_summary(trips, today)
cols = st.columns(len(summary))
for col, (key, projection) in zip(cols, summary.items()):
    col.metric(HORIZON_LABELS.get(key, key), f"{projection.available_days} days")


# -------------------------
# 5. RESIDENCY
# -------------------------
st.header("5. 183-day residency")

year_options = list(range(today.year, (today - relativedelta(years=5)).year - 1, -1))
year = st.selectbox("Calendar year", year_options, index=0)

statuses = residency_status(trips, year)
if statuses:
    for status in statuses.values():
        flag = "meets the 183-day threshold" if status.meets_threshold else f"{status.days_remaining} days short"
        st.write(f"- **{status.country}**: {status.days_in_year} days ({flag})")
else:
    st.info(f"No days logged in {year}.")


# -------------------------
# DEV DEBUG
# -------------------------
if SHOW_DEV_DETAILS:
    with st.expander("🐞 Developer debug"):
        st.write(travel_summary(trips))
        st.json(compliance.to_dict())

st.markdown("---")
st.caption(
    "This tool is for information only and does not constitute legal, immigration or tax advice."
)
