"""Earthquake identifier and shake map URL computation."""

from __future__ import annotations

from datetime import datetime, timedelta

from felt_quakes.models import EarthquakeId

# WIB (Waktu Indonesia Barat) is UTC+7 all year round.
WIB_OFFSET = timedelta(hours=7)

SHAKE_MAP_URL_TEMPLATE = "https://static.bmkg.go.id/{earthquake_id}.mmi.jpg"
# Served shake maps until BMKG moved them to static.bmkg.go.id.
LEGACY_SHAKE_MAP_URL_TEMPLATE = "https://ews.bmkg.go.id/TEWS/data/{earthquake_id}.mmi.jpg"


def compute_earthquake_id(occurred_at: datetime) -> EarthquakeId:
    """Compute the BMKG earthquake id for an instant.

    The id is the WIB wall-clock time formatted as ``YYYYMMDDHHMMSS``, every
    component zero padded. Naive datetimes are treated as UTC.

    The wall clock is reached by shifting the local fields directly, never
    through UTC, so any instant whose WIB time falls in years 1-9999 has an
    id. Raises ``ValueError`` for the few hours outside that range, which no
    four-digit year can represent.
    """
    offset = occurred_at.utcoffset() or timedelta(0)
    try:
        wib = occurred_at.replace(tzinfo=None) + (WIB_OFFSET - offset)
    except OverflowError:
        raise ValueError(
            f"{occurred_at.isoformat()} has no WIB wall-clock time in years 1-9999"
        ) from None
    return EarthquakeId(
        f"{wib.year:04d}{wib.month:02d}{wib.day:02d}"
        f"{wib.hour:02d}{wib.minute:02d}{wib.second:02d}"
    )


def shake_map_url(earthquake_id: EarthquakeId) -> str:
    """URL of the MMI shake map image BMKG publishes for an earthquake."""
    return SHAKE_MAP_URL_TEMPLATE.format(earthquake_id=earthquake_id)
