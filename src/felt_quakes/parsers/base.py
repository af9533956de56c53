"""Abstract base parser with post-normalization invariant checks."""

from __future__ import annotations

import abc
import logging
import math
import re
from datetime import datetime
from typing import Any

from felt_quakes.anomaly import detect_anomaly
from felt_quakes.errors import NormalizationError
from felt_quakes.fingerprint import compute_fingerprint
from felt_quakes.ids import compute_earthquake_id, shake_map_url
from felt_quakes.models import Earthquake, format_timestamp

logger = logging.getLogger(__name__)

_FINGERPRINT_PATTERN = re.compile(r"[0-9a-f]{40}")


class EventParser(abc.ABC):
    """Abstract parser that converts a raw feed document → list of Earthquake."""

    @abc.abstractmethod
    def parse(self, raw_payload: str | bytes | Any, now: datetime) -> list[Earthquake]:
        """Parse a raw feed response into normalized earthquakes.

        Args:
            raw_payload: The response body, as text or as decoded JSON.
            now: Reference instant for anomaly detection. Never read from
                the clock here, callers pass it in.

        Returns:
            One Earthquake per feed entry, in feed order.
        """

    def build_event(
        self,
        where: str,
        occurred_at: datetime,
        latitude: float,
        longitude: float,
        magnitude: float,
        depth_km: float,
        location_text: str,
        felt_stations_text: str,
        now: datetime,
    ) -> Earthquake:
        """Derive id, fingerprint, shake map URL and anomaly tag, then check invariants.

        ``where`` names the raw entry (e.g. ``gempa[3]``) in error messages.
        Raises NormalizationError if the values break an invariant.
        """
        try:
            earthquake_id = compute_earthquake_id(occurred_at)
        except ValueError as exc:
            raise NormalizationError(f"{where}: {exc}") from exc

        occurred_at_iso = format_timestamp(occurred_at)
        event = Earthquake(
            earthquake_id=earthquake_id,
            # BMKG exposes no event id of its own, so the physical parameters
            # are fingerprinted to recognize the event on later fetches.
            fingerprint=compute_fingerprint(
                occurred_at_iso, latitude, longitude, magnitude, depth_km,
            ),
            occurred_at=occurred_at,
            latitude=latitude,
            longitude=longitude,
            magnitude=magnitude,
            depth_km=depth_km,
            location_text=location_text,
            felt_stations_text=felt_stations_text,
            shake_map_url=shake_map_url(earthquake_id),
            anomaly=detect_anomaly(occurred_at, now),
        )

        problems = self.validate(event)
        if problems:
            raise NormalizationError(f"{where}: {'; '.join(problems)}")

        if event.anomaly is not None:
            logger.warning(
                "Earthquake %s flagged %s (occurred_at %s is after %s)",
                event.earthquake_id, event.anomaly.value, occurred_at_iso,
                format_timestamp(now),
            )
        return event

    @staticmethod
    def validate(event: Earthquake) -> list[str]:
        """Check value invariants of an Earthquake. Returns error messages (empty = valid)."""
        errors: list[str] = []

        # Overlong digit strings parse to inf, which JSON cannot carry.
        for name in ("latitude", "longitude", "magnitude", "depth_km"):
            value = getattr(event, name)
            if not math.isfinite(value):
                errors.append(f"{name} {value} is not a finite number")
        if errors:
            return errors

        if not -90 <= event.latitude <= 90:
            errors.append(f"latitude {event.latitude} out of range [-90, 90]")

        if not -180 <= event.longitude <= 180:
            errors.append(f"longitude {event.longitude} out of range [-180, 180]")

        if not event.magnitude >= 0:
            errors.append(f"magnitude {event.magnitude} is negative")

        if not event.depth_km >= 0:
            errors.append(f"depth_km {event.depth_km} is negative")

        if event.occurred_at.tzinfo is None:
            errors.append("occurred_at is not timezone-aware")

        if not _FINGERPRINT_PATTERN.fullmatch(event.fingerprint):
            errors.append(f"fingerprint {event.fingerprint!r} is not 40 lowercase hex chars")

        if event.shake_map_url != shake_map_url(event.earthquake_id):
            errors.append(f"shake_map_url does not match id {event.earthquake_id}")

        return errors
