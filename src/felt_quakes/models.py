"""Data models for normalized BMKG felt earthquakes."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

_ID_PATTERN = re.compile(r"[0-9]{14}")


class EarthquakeId(str):
    """BMKG earthquake identifier: the WIB timestamp as ``YYYYMMDDHHMMSS``.

    BMKG keys its shake map images by this value (``kode_shakemap``), so it is
    also the identity used to merge re-fetched events.
    """

    __slots__ = ()

    def __new__(cls, value: str) -> EarthquakeId:
        if not isinstance(value, str) or not _ID_PATTERN.fullmatch(value):
            raise ValueError(f"invalid earthquake id {value!r}, expected 14 digits")
        return super().__new__(cls, value)


class AnomalyReason(str, enum.Enum):
    """Known data-quality problems an event can be tagged with."""

    FUTURE_EVENT = "FUTURE_EVENT"


class MergeKey(str, enum.Enum):
    """Record field used to match fresh events against persisted ones."""

    ID = "id"
    # Legacy: snapshots written before the computed id was trusted were
    # keyed by content fingerprint.
    FINGERPRINT = "fingerprint"


def ensure_utc(value: datetime) -> datetime:
    """Convert to an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Render an instant as UTC ISO-8601 with milliseconds, e.g. ``2025-12-24T05:30:34.000Z``."""
    utc = ensure_utc(value)
    return f"{utc:%Y-%m-%dT%H:%M:%S}.{utc.microsecond // 1000:03d}Z"


def parse_timestamp(text: str) -> datetime:
    """Inverse of :func:`format_timestamp`; accepts any explicit offset.

    Raises ``ValueError`` for malformed text, and for instants whose UTC time
    falls outside years 1-9999 (e.g. ``0001-01-01T00:00:00+07:00``).
    """
    parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    try:
        return ensure_utc(parsed)
    except OverflowError:
        raise ValueError(f"{text!r} has no UTC time in years 1-9999") from None


@dataclass(frozen=True)
class Earthquake:
    """One felt earthquake from the BMKG feed, fully normalized."""

    earthquake_id: EarthquakeId
    fingerprint: str            # SHA-1 over time, coordinates, magnitude, depth

    occurred_at: datetime       # Always UTC
    latitude: float             # [-90, 90]
    longitude: float            # [-180, 180]
    magnitude: float
    depth_km: float

    location_text: str          # Indonesian, e.g. "Pusat gempa berada di laut ..."
    felt_stations_text: str     # Unstable: BMKG keeps updating it for days
    shake_map_url: str

    anomaly: Optional[AnomalyReason] = None

    def to_record(self) -> dict[str, Any]:
        """Snapshot representation (camelCase keys, JSON-ready values)."""
        record: dict[str, Any] = {
            "id": str(self.earthquake_id),
            "fingerprint": self.fingerprint,
            "occurredAt": format_timestamp(self.occurred_at),
            "latitude": self.latitude,
            "longitude": self.longitude,
            "magnitude": self.magnitude,
            "depthKm": self.depth_km,
            "locationText": self.location_text,
            "feltStationsText": self.felt_stations_text,
            "shakeMapUrl": self.shake_map_url,
        }
        if self.anomaly is not None:
            record["anomaly"] = self.anomaly.value
        return record
