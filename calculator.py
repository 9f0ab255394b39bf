from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from dateutil import tz
from dateutil.parser import isoparse

logger = logging.getLogger(__name__)


# Source list, reproduced as-is (LIE is not included).
SCHENGEN_COUNTRIES: Tuple[str, ...] = (
    "AUT", "BEL", "CZE", "DNK", "EST", "FIN", "FRA", "DEU", "GRC",
    "HUN", "ISL", "ITA", "LVA", "LTU", "LUX", "MLT", "NLD", "NOR",
    "POL", "PRT", "SVK", "SVN", "ESP", "SWE", "CHE", "HRV",
)
_SCHENGEN_SET = frozenset(SCHENGEN_COUNTRIES)

SCHENGEN_MAX_DAYS = 90
SCHENGEN_WINDOW_DAYS = 180
RESIDENCY_THRESHOLD_DAYS = 183

# (key, days ahead of the reference date)
FORECAST_HORIZONS: Tuple[Tuple[str, int], ...] = (
    ("next_month", 30),
    ("next_3_months", 90),
    ("next_6_months", 180),
)

DateLike = Union[date, datetime, str]


class InvalidDateFormat(ValueError):
    """A value could not be read as a calendar date."""


class InvalidRange(ValueError):
    """A range ends before it starts."""


def to_calendar_date(value: DateLike) -> date:
    """
    Reduce a date, datetime or ISO-8601 string to a plain calendar date.

    Aware datetimes are converted to UTC first; naive ones are taken as UTC
    already. The local time zone is never consulted.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(tz.UTC)
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise InvalidDateFormat("Date is empty. Use YYYY-MM-DD.")
        try:
            parsed = isoparse(text)
        except (ValueError, OverflowError) as exc:
            raise InvalidDateFormat(f"Invalid date format: {value!r}. Use YYYY-MM-DD.") from exc
        return to_calendar_date(parsed)
    raise InvalidDateFormat(f"Cannot read a date from {type(value).__name__}.")


def is_schengen_country(country: str) -> bool:
    return (country or "").strip().upper() in _SCHENGEN_SET


def schengen_countries() -> List[str]:
    return list(SCHENGEN_COUNTRIES)


# -----------------------------
# Domain values
# -----------------------------

@dataclass(frozen=True)
class Trip:
    """
    One stay in a country, inclusive of both start and end day.

    country: ISO 3166 alpha-3 code (normalized to upper case)
    start:   first calendar day in the country
    end:     last calendar day in the country
    id:      row id from whoever stores the trip; absent for ad-hoc checks

    A trip that starts and ends on the same day counts as one day.
    """
    country: str
    start: date
    end: date
    id: Optional[int] = None

    def __post_init__(self):
        country = (self.country or "").strip().upper()
        if not country:
            raise ValueError("Trip country code is required.")
        start = to_calendar_date(self.start)
        end = to_calendar_date(self.end)
        if end < start:
            raise InvalidRange("Trip end date cannot be before start date.")

        object.__setattr__(self, "country", country)
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    def days(self) -> int:
        return (self.end - self.start).days + 1


@dataclass(frozen=True)
class DateWindow:
    start: date
    end: date

    def days(self) -> int:
        if self.end < self.start:
            return 0
        return (self.end - self.start).days + 1


@dataclass(frozen=True)
class ComplianceResult:
    used_days: int
    remaining_days: int
    window_start: date
    window_end: date

    @property
    def window(self) -> DateWindow:
        return DateWindow(self.window_start, self.window_end)

    def to_dict(self) -> Dict[str, object]:
        return {
            "used": self.used_days,
            "remaining": self.remaining_days,
            "windowStart": self.window_start.isoformat(),
            "windowEnd": self.window_end.isoformat(),
        }


@dataclass(frozen=True)
class ForecastPoint:
    date: date
    used_days: int
    remaining_days: int


@dataclass(frozen=True)
class Forecast:
    """
    Day-by-day projection plus its worst point.

    used_days is the highest usage over all points; available_days is what
    is left at that worst point.
    """
    points: Tuple[ForecastPoint, ...]
    used_days: int
    available_days: int

    def to_dict(self) -> Dict[str, object]:
        return {
            "available": self.available_days,
            "used": self.used_days,
            "remaining": self.available_days,
            "details": [
                {"date": p.date.isoformat(), "used": p.used_days, "remaining": p.remaining_days}
                for p in self.points
            ],
        }


@dataclass(frozen=True)
class ResidencyStatus:
    country: str
    days_in_year: int
    meets_threshold: bool
    threshold: int = RESIDENCY_THRESHOLD_DAYS

    @property
    def days_remaining(self) -> int:
        return max(0, self.threshold - self.days_in_year)

    def to_dict(self) -> Dict[str, object]:
        return {"days": self.days_in_year, "meetsThreshold": self.meets_threshold}


@dataclass(frozen=True)
class TravelSummary:
    total_trips: int
    total_days_traveled: int
    countries_visited: int
    most_visited_country: Optional[str]
    country_breakdown: Dict[str, int]


# -----------------------------
# Interval arithmetic
# -----------------------------

def _overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> Optional[Tuple[date, date]]:
    """Return overlapping date range [start, end] inclusive, else None."""
    start = max(a_start, b_start)
    end = min(a_end, b_end)
    if start > end:
        return None
    return start, end


def overlap_days(a_start: DateLike, a_end: DateLike, b_start: DateLike, b_end: DateLike) -> int:
    """
    Number of calendar days shared by [a_start, a_end] and [b_start, b_end].

    Both ends are inclusive, so a one-day range inside the other counts as 1.
    Disjoint ranges give 0.
    """
    overlap = _overlap(
        to_calendar_date(a_start),
        to_calendar_date(a_end),
        to_calendar_date(b_start),
        to_calendar_date(b_end),
    )
    if overlap is None:
        return 0
    o_start, o_end = overlap
    return (o_end - o_start).days + 1


def count_days_in_range(
    trips: Iterable[Trip],
    range_start: DateLike,
    range_end: DateLike,
    country: Optional[str] = None,
) -> int:
    """
    Count trip days falling inside [range_start, range_end] inclusive.

    An inverted range counts as empty rather than an error. With ``country``
    set, only trips to that country are counted.
    """
    range_start = to_calendar_date(range_start)
    range_end = to_calendar_date(range_end)
    if range_end < range_start:
        return 0

    wanted = country.strip().upper() if country else None
    total = 0
    for trip in trips:
        if wanted and trip.country != wanted:
            continue
        total += overlap_days(trip.start, trip.end, range_start, range_end)
    return total


def _schengen_trips(trips: Iterable[Trip]) -> List[Trip]:
    return [t for t in trips if t.country in _SCHENGEN_SET]


def _window_ending(window_end: date, window_days: int) -> DateWindow:
    return DateWindow(window_end - timedelta(days=window_days - 1), window_end)


# -----------------------------
# Schengen 90/180
# -----------------------------

def current_window_usage(
    trips: Sequence[Trip],
    reference_date: DateLike,
    window_days: int = SCHENGEN_WINDOW_DAYS,
) -> int:
    """Schengen days inside the single window ending on reference_date."""
    window = _window_ending(to_calendar_date(reference_date), window_days)
    return count_days_in_range(_schengen_trips(trips), window.start, window.end)


def compute_compliance(
    trips: Sequence[Trip],
    reference_date: DateLike,
    max_days: int = SCHENGEN_MAX_DAYS,
    window_days: int = SCHENGEN_WINDOW_DAYS,
) -> ComplianceResult:
    """
    Schengen days used and remaining as of reference_date.

    Every window of ``window_days`` ending between reference_date and
    reference_date - window_days (181 windows for the default rule) is
    counted, and the busiest one is reported. When several windows tie, the
    most recent one is kept. If no window holds any Schengen day the reported
    window collapses to [reference_date, reference_date].
    """
    ref = to_calendar_date(reference_date)
    if not trips:
        return ComplianceResult(used_days=0, remaining_days=max_days, window_start=ref, window_end=ref)

    schengen = _schengen_trips(trips)

    best_used = 0
    best_window: Optional[DateWindow] = None
    for days_back in range(window_days + 1):
        window = _window_ending(ref - timedelta(days=days_back), window_days)
        used = count_days_in_range(schengen, window.start, window.end)
        if used > best_used:
            best_used = used
            best_window = window

    if best_window is None:
        best_window = DateWindow(ref, ref)

    result = ComplianceResult(
        used_days=best_used,
        remaining_days=max(0, max_days - best_used),
        window_start=best_window.start,
        window_end=best_window.end,
    )
    logger.debug(
        "Schengen compliance as of %s: %d used, %d remaining (window %s..%s)",
        ref, result.used_days, result.remaining_days, result.window_start, result.window_end,
    )
    return result


def forecast(
    trips: Sequence[Trip],
    range_start: DateLike,
    range_end: DateLike,
    max_days: int = SCHENGEN_MAX_DAYS,
    window_days: int = SCHENGEN_WINDOW_DAYS,
) -> Forecast:
    """
    Project Schengen usage for each day of [range_start, range_end].

    Each day is judged on the single window ending that day, assuming no
    trips beyond the ones given. The summary figures come from the worst day.
    """
    current = to_calendar_date(range_start)
    last = to_calendar_date(range_end)
    schengen = _schengen_trips(trips)

    points: List[ForecastPoint] = []
    worst = 0
    while current <= last:
        window = _window_ending(current, window_days)
        used = count_days_in_range(schengen, window.start, window.end)
        worst = max(worst, used)
        points.append(ForecastPoint(date=current, used_days=used, remaining_days=max(0, max_days - used)))
        current += timedelta(days=1)

    return Forecast(points=tuple(points), used_days=worst, available_days=max(0, max_days - worst))


def availability_summary(
    trips: Sequence[Trip],
    reference_date: DateLike,
    max_days: int = SCHENGEN_MAX_DAYS,
    window_days: int = SCHENGEN_WINDOW_DAYS,
) -> Dict[str, Forecast]:
    """Forecasts for the next month, 3 months and 6 months from reference_date."""
    ref = to_calendar_date(reference_date)
    return {
        key: forecast(trips, ref, ref + timedelta(days=ahead), max_days=max_days, window_days=window_days)
        for key, ahead in FORECAST_HORIZONS
    }


# -----------------------------
# 183-day residency
# -----------------------------

def residency_status(
    trips: Iterable[Trip],
    year: int,
    threshold: int = RESIDENCY_THRESHOLD_DAYS,
) -> Dict[str, ResidencyStatus]:
    """
    Days per country within calendar ``year`` and whether each reaches
    ``threshold``.

    All countries count, not only Schengen ones. Countries with no day in the
    year are left out; the mapping follows the order countries first appear
    in ``trips``.
    """
    year_start = date(year, 1, 1)
    year_end = date(year, 12, 31)

    days_by_country: Dict[str, int] = {}
    for trip in trips:
        days = overlap_days(trip.start, trip.end, year_start, year_end)
        if days:
            days_by_country[trip.country] = days_by_country.get(trip.country, 0) + days

    return {
        country: ResidencyStatus(
            country=country,
            days_in_year=days,
            meets_threshold=days >= threshold,
            threshold=threshold,
        )
        for country, days in days_by_country.items()
    }


def travel_summary(trips: Sequence[Trip]) -> TravelSummary:
    counts = Counter(t.country for t in trips)
    # Counter.most_common keeps first-seen order among equal counts.
    most_visited = counts.most_common(1)[0][0] if counts else None
    return TravelSummary(
        total_trips=len(trips),
        total_days_traveled=sum(t.days() for t in trips),
        countries_visited=len(counts),
        most_visited_country=most_visited,
        country_breakdown=dict(counts),
    )
