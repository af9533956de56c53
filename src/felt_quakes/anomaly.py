"""Data-quality checks applied to normalized earthquakes."""

from __future__ import annotations

from datetime import datetime

from felt_quakes.models import AnomalyReason, ensure_utc


def detect_anomaly(occurred_at: datetime, now: datetime) -> AnomalyReason | None:
    """Tag events that happen after ``now``.

    BMKG occasionally publishes an event with the wrong year. There is no safe
    automatic fix, so the event is kept as-is and only tagged for review.
    """
    if ensure_utc(occurred_at) > ensure_utc(now):
        return AnomalyReason.FUTURE_EVENT
    return None
