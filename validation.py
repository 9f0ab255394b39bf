"""Checks run when a trip is created or edited."""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, List, Mapping, Optional

from calculator import InvalidDateFormat, Trip, to_calendar_date

logger = logging.getLogger(__name__)


class OverlapType(str, enum.Enum):
    exact_match = "exact_match"
    contains = "completely_contains"
    contained_by = "completely_contained"
    overlaps_start = "overlaps_start"
    overlaps_end = "overlaps_end"


@dataclass(frozen=True)
class OverlapFinding:
    conflicting_trip_id: Optional[int]
    country: str
    start: date
    end: date
    overlap_type: OverlapType
    is_same_dates: bool
    is_same_country: bool


@dataclass(frozen=True)
class OverlapCheckResult:
    is_valid: bool
    conflicts: List[OverlapFinding] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


def dates_overlap(start1: date, end1: date, start2: date, end2: date) -> bool:
    """
    True when the two inclusive ranges share a calendar day.

    Leaving one country and arriving in the next on the same day is allowed:
    a range ending on the day the other starts does not overlap it.
    """
    if end1 == start2 or end2 == start1:
        return False
    return start1 <= end2 and start2 <= end1


def overlap_type(start1: date, end1: date, start2: date, end2: date) -> OverlapType:
    """How range 1 sits against range 2. Only used to word the message."""
    if start1 <= start2 and end1 >= end2:
        return OverlapType.contains
    if start2 <= start1 and end2 >= end1:
        return OverlapType.contained_by
    if start1 < start2 and end1 >= start2:
        return OverlapType.overlaps_start
    if start1 <= end2 and end1 > end2:
        return OverlapType.overlaps_end
    return OverlapType.exact_match


def validate_no_overlap(
    candidate: Trip,
    existing_trips: Iterable[Trip],
    exclude_id: Optional[int] = None,
) -> OverlapCheckResult:
    """
    Compare a new or edited trip against the traveller's other trips.

    Identical date ranges are always a conflict, whatever the countries.
    Otherwise any shared calendar day is a conflict, except the boundary day
    of same-day transit. Pass ``exclude_id`` when editing so the trip is not
    compared with its own stored version.

    Conflicts come back in the result; nothing is raised for them.
    """
    conflicts: List[OverlapFinding] = []

    for other in existing_trips:
        if exclude_id is not None and other.id == exclude_id:
            continue

        same_country = other.country == candidate.country

        if candidate.start == other.start and candidate.end == other.end:
            conflicts.append(
                OverlapFinding(
                    conflicting_trip_id=other.id,
                    country=other.country,
                    start=other.start,
                    end=other.end,
                    overlap_type=OverlapType.exact_match,
                    is_same_dates=True,
                    is_same_country=same_country,
                )
            )
            continue

        if dates_overlap(candidate.start, candidate.end, other.start, other.end):
            conflicts.append(
                OverlapFinding(
                    conflicting_trip_id=other.id,
                    country=other.country,
                    start=other.start,
                    end=other.end,
                    overlap_type=overlap_type(candidate.start, candidate.end, other.start, other.end),
                    is_same_dates=False,
                    is_same_country=same_country,
                )
            )

    errors = _conflict_messages(candidate, conflicts)
    if conflicts:
        logger.debug(
            "Trip %s %s..%s conflicts with %d existing trip(s)",
            candidate.country, candidate.start, candidate.end, len(conflicts),
        )
    return OverlapCheckResult(is_valid=not errors, conflicts=conflicts, errors=errors)


def _conflict_messages(candidate: Trip, conflicts: List[OverlapFinding]) -> List[str]:
    if not conflicts:
        return []

    same_dates = [c for c in conflicts if c.is_same_dates]
    same_country = [c for c in conflicts if c.is_same_country and not c.is_same_dates]

    if same_dates:
        return [
            "You cannot have multiple trips on the exact same dates "
            f"({candidate.start.isoformat()} to {candidate.end.isoformat()})"
        ]
    if same_country:
        return [f"This trip overlaps with {len(same_country)} existing trip(s) in {candidate.country}"]
    return [f"This trip overlaps with {len(conflicts)} existing trip(s) on overlapping dates"]


def validate_trip_record(record: Mapping[str, Any]) -> List[str]:
    """
    Field-level checks on a raw trip record before it becomes a Trip.

    Returns human-readable messages; an empty list means the record is fine.
    """
    errors: List[str] = []

    country = record.get("country")
    if not country or not str(country).strip():
        errors.append("Country is required")
    else:
        code = str(country).strip()
        if len(code) != 3 or not code.isalpha():
            errors.append("Country must be a 3-letter ISO code")

    start_raw = record.get("start_date")
    end_raw = record.get("end_date")
    if not start_raw:
        errors.append("Start date is required")
    if not end_raw:
        errors.append("End date is required")

    if start_raw and end_raw:
        start = _try_date(start_raw)
        end = _try_date(end_raw)
        if start is None:
            errors.append("Invalid start date format")
        if end is None:
            errors.append("Invalid end date format")
        if start is not None and end is not None and start > end:
            errors.append("Start date cannot be after end date")

    return errors


def _try_date(value: Any) -> Optional[date]:
    try:
        return to_calendar_date(value)
    except InvalidDateFormat:
        return None
