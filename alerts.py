"""
Deciding when a traveller should be warned about their Schengen allowance.

The daily job that calls into this module owns scheduling and delivery. What
lives here is the decision itself plus the record of what was already sent,
which is passed in rather than kept in module state.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, Hashable, Optional, Protocol, Sequence

from calculator import ComplianceResult

logger = logging.getLogger(__name__)

ALERT_THRESHOLDS: Sequence[int] = (15, 7, 3, 0)


@dataclass(frozen=True)
class AlertRecord:
    threshold: int
    sent_on: date


class AlertLedger(Protocol):
    def get(self, user_id: Hashable) -> Optional[AlertRecord]:
        ...

    def record(self, user_id: Hashable, alert: AlertRecord) -> None:
        ...


class InMemoryAlertLedger:
    """Last alert per user, kept in a dict. Use prune() to drop stale entries."""

    def __init__(self) -> None:
        self._last: Dict[Hashable, AlertRecord] = {}

    def get(self, user_id: Hashable) -> Optional[AlertRecord]:
        return self._last.get(user_id)

    def record(self, user_id: Hashable, alert: AlertRecord) -> None:
        self._last[user_id] = alert

    def prune(self, before: date) -> int:
        """Forget alerts sent before ``before``. Returns how many were dropped."""
        stale = [uid for uid, rec in self._last.items() if rec.sent_on < before]
        for uid in stale:
            del self._last[uid]
        return len(stale)

    def __len__(self) -> int:
        return len(self._last)


def should_send_alert(ledger: AlertLedger, user_id: Hashable, threshold: int, on_date: date) -> bool:
    last = ledger.get(user_id)
    if last is None:
        return True
    if last.sent_on != on_date:
        return True
    if last.threshold == threshold:
        return False
    # Limit reached: at most one alert of any kind that day.
    if threshold == 0:
        return False
    return True


def select_alert_threshold(
    result: ComplianceResult,
    user_id: Hashable,
    on_date: date,
    ledger: AlertLedger,
    thresholds: Sequence[int] = ALERT_THRESHOLDS,
) -> Optional[int]:
    """
    The tightest threshold the remaining allowance has reached, if an alert
    for it is due; otherwise None.

    Nothing is written to the ledger. Record the alert once it has actually
    been delivered.
    """
    reached = [t for t in thresholds if result.remaining_days <= t]
    if not reached:
        return None

    threshold = min(reached)
    if not should_send_alert(ledger, user_id, threshold, on_date):
        logger.info("Alert for user %s at %d days already sent on %s", user_id, threshold, on_date)
        return None

    logger.info(
        "Alert due for user %s: %d days remaining (threshold %d)",
        user_id, result.remaining_days, threshold,
    )
    return threshold
