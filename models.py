from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping

from calculator import Trip


def trip_from_record(row: Mapping[str, Any]) -> Trip:
    """
    Build a Trip from a stored record:
    - id: row id (optional; absent for ad-hoc checks)
    - country: ISO alpha-3 code
    - start_date / end_date: ISO date strings or date objects

    Raises ValueError for a missing field and the calculator's
    InvalidDateFormat / InvalidRange for bad dates.
    """
    missing = [key for key in ("country", "start_date", "end_date") if not row.get(key)]
    if missing:
        raise ValueError(f"Trip record is missing: {', '.join(missing)}")

    raw_id = row.get("id")
    return Trip(
        country=str(row["country"]),
        start=row["start_date"],
        end=row["end_date"],
        id=int(raw_id) if raw_id is not None else None,
    )


def trips_from_records(rows: Iterable[Mapping[str, Any]]) -> List[Trip]:
    return [trip_from_record(r) for r in rows]


def trip_to_record(trip: Trip) -> Dict[str, Any]:
    return {
        "id": trip.id,
        "country": trip.country,
        "start_date": trip.start.isoformat(),
        "end_date": trip.end.isoformat(),
    }
