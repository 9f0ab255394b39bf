from datetime import date, timedelta

import pytest

from alerts import (
    ALERT_THRESHOLDS,
    AlertRecord,
    InMemoryAlertLedger,
    select_alert_threshold,
    should_send_alert,
)
from calculator import ComplianceResult, Trip, compute_compliance

TODAY = date(2024, 6, 15)


def result_with(remaining: int) -> ComplianceResult:
    return ComplianceResult(
        used_days=90 - remaining,
        remaining_days=remaining,
        window_start=TODAY - timedelta(days=179),
        window_end=TODAY,
    )


@pytest.fixture
def ledger():
    return InMemoryAlertLedger()


def test_thresholds():
    assert tuple(ALERT_THRESHOLDS) == (15, 7, 3, 0)


@pytest.mark.parametrize(
    "remaining, expected",
    [(90, None), (16, None), (15, 15), (8, 15), (7, 7), (5, 7), (3, 3), (1, 3), (0, 0)],
)
def test_tightest_reached_threshold_is_selected(ledger, remaining, expected):
    assert select_alert_threshold(result_with(remaining), "u1", TODAY, ledger) == expected


def test_selection_does_not_write_the_ledger(ledger):
    select_alert_threshold(result_with(5), "u1", TODAY, ledger)
    assert ledger.get("u1") is None


def test_same_threshold_same_day_is_suppressed(ledger):
    ledger.record("u1", AlertRecord(threshold=7, sent_on=TODAY))

    assert select_alert_threshold(result_with(5), "u1", TODAY, ledger) is None
    assert select_alert_threshold(result_with(5), "u1", TODAY + timedelta(days=1), ledger) == 7
    assert select_alert_threshold(result_with(5), "u2", TODAY, ledger) == 7


def test_tighter_threshold_same_day_still_sent(ledger):
    ledger.record("u1", AlertRecord(threshold=15, sent_on=TODAY))
    assert select_alert_threshold(result_with(2), "u1", TODAY, ledger) == 3


def test_limit_reached_alert_sent_once_per_day(ledger):
    ledger.record("u1", AlertRecord(threshold=3, sent_on=TODAY))

    assert not should_send_alert(ledger, "u1", 0, TODAY)
    assert should_send_alert(ledger, "u1", 0, TODAY + timedelta(days=1))


def test_prune_drops_old_records(ledger):
    ledger.record("u1", AlertRecord(threshold=7, sent_on=TODAY - timedelta(days=2)))
    ledger.record("u2", AlertRecord(threshold=3, sent_on=TODAY))

    assert ledger.prune(before=TODAY) == 1
    assert len(ledger) == 1
    assert ledger.get("u1") is None
    assert ledger.get("u2") == AlertRecord(threshold=3, sent_on=TODAY)


def test_works_from_a_computed_result(ledger):
    trips = [Trip("FRA", TODAY - timedelta(days=84), TODAY)]

    result = compute_compliance(trips, TODAY)

    assert result.remaining_days == 5
    assert select_alert_threshold(result, 42, TODAY, ledger) == 7
