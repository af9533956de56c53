"""Repairs for already persisted snapshots.

Each function takes snapshot records and returns new records; nothing is
modified in place and no field other than the ones named is touched.
"""

from __future__ import annotations

import copy
import logging
from datetime import datetime
from typing import Any, Mapping, Sequence

from felt_quakes.ids import compute_earthquake_id, shake_map_url
from felt_quakes.models import AnomalyReason, EarthquakeId, ensure_utc, parse_timestamp

logger = logging.getLogger(__name__)


def recompute_ids(records: Sequence[Mapping[str, Any]]) -> tuple[list[dict[str, Any]], int]:
    """Recompute ``id`` and ``shakeMapUrl`` from ``occurredAt``.

    Older snapshots were written by an id computation that did not zero pad
    month and day (``2022191...``), giving ids that match no shake map.
    Returns the records and how many ids changed.
    """
    fixed: list[dict[str, Any]] = []
    changed = 0
    for record in records:
        new = copy.deepcopy(dict(record))
        earthquake_id = compute_earthquake_id(parse_timestamp(record["occurredAt"]))
        if record.get("id") != earthquake_id:
            changed += 1
        new["id"] = str(earthquake_id)
        new["shakeMapUrl"] = shake_map_url(earthquake_id)
        fixed.append(new)
    logger.info("Recomputed ids: %d of %d changed", changed, len(fixed))
    return fixed, changed


def flag_future_events(
    records: Sequence[Mapping[str, Any]],
    cutoff: datetime,
) -> tuple[list[dict[str, Any]], int]:
    """Tag every record that occurred after ``cutoff`` as a future event.

    Meant to be run with ``cutoff`` set to the time of the run: anything later
    cannot be a real observation. Timestamps are left as they are.
    """
    cutoff = ensure_utc(cutoff)
    flagged: list[dict[str, Any]] = []
    affected = 0
    for record in records:
        new = copy.deepcopy(dict(record))
        if parse_timestamp(record["occurredAt"]) > cutoff:
            new["anomaly"] = AnomalyReason.FUTURE_EVENT.value
            affected += 1
        flagged.append(new)
    logger.info("Flagged %d future event(s)", affected)
    return flagged, affected


def refresh_shake_map_urls(records: Sequence[Mapping[str, Any]]) -> tuple[list[dict[str, Any]], int]:
    """Rebuild ``shakeMapUrl`` from ``id``.

    BMKG stopped serving shake maps from ews.bmkg.go.id; static.bmkg.go.id
    serves both old and new images, so every URL is moved there.
    """
    refreshed: list[dict[str, Any]] = []
    changed = 0
    for record in records:
        new = copy.deepcopy(dict(record))
        url = shake_map_url(EarthquakeId(record["id"]))
        if record.get("shakeMapUrl") != url:
            changed += 1
        new["shakeMapUrl"] = url
        refreshed.append(new)
    logger.info("Refreshed shake map URLs: %d of %d changed", changed, len(refreshed))
    return refreshed, changed
