"""Parser for the BMKG "gempa dirasakan" (felt earthquakes) JSON feed.

The feed looks like::

    {"Infogempa": {"gempa": [
        {"Tanggal": "24 Des 2025", "Jam": "12:30:34 WIB",
         "DateTime": "2025-12-24T05:30:34+00:00",
         "Coordinates": "-4.46,102.60", "Lintang": "4.46 LS", "Bujur": "102.60 BT",
         "Magnitude": "4.6", "Kedalaman": "30 km",
         "Wilayah": "Pusat gempa berada di laut 34 km barat Bengkulu Selatan",
         "Dirasakan": "II-III Bengkulu Utara, II-III Bengkulu Selatan"},
        ...
    ]}}

Only the machine-readable fields are used; ``Tanggal``, ``Jam``, ``Lintang``
and ``Bujur`` duplicate ``DateTime`` and ``Coordinates`` in display form.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime
from typing import Any

from felt_quakes.errors import NormalizationError, ValidationError
from felt_quakes.models import Earthquake, parse_timestamp
from felt_quakes.parsers.base import EventParser

logger = logging.getLogger(__name__)

_NUMBER = r"[-+]?(?:\d+(?:\.\d*)?|\.\d+)"
_NUMBER_RE = re.compile(_NUMBER)
_COORDINATES_RE = re.compile(rf"({_NUMBER}),({_NUMBER})")
_DEPTH_RE = re.compile(rf"({_NUMBER}) km")
_DATETIME_RE = re.compile(
    r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d+)?(?:Z|[+-]\d{2}:\d{2})"
)

# Raw field → format it must match (None = any string)
_ENTRY_FIELDS: dict[str, re.Pattern[str] | None] = {
    "DateTime": _DATETIME_RE,
    "Coordinates": _COORDINATES_RE,
    "Magnitude": _NUMBER_RE,
    "Kedalaman": _DEPTH_RE,
    "Wilayah": None,
    "Dirasakan": None,
}


def parse_coordinates(text: str) -> tuple[float, float]:
    """Parse ``"<lat>,<lon>"``, e.g. ``"-8.06,119.24"`` → ``(-8.06, 119.24)``."""
    match = _COORDINATES_RE.fullmatch(text)
    if match is None:
        raise ValidationError([f"Coordinates: expected '<lat>,<lon>', got {text!r}"])
    return float(match.group(1)), float(match.group(2))


def parse_depth(text: str) -> float:
    """Parse ``"<number> km"``, e.g. ``"102 km"`` → ``102.0``."""
    match = _DEPTH_RE.fullmatch(text)
    if match is None:
        raise ValidationError([f"Kedalaman: expected '<number> km', got {text!r}"])
    return float(match.group(1))


def parse_magnitude(text: str) -> float:
    """Parse a bare decimal magnitude, e.g. ``"4.6"`` → ``4.6``."""
    if _NUMBER_RE.fullmatch(text) is None:
        raise ValidationError([f"Magnitude: expected a number, got {text!r}"])
    return float(text)


def validate_entry(entry: Any, index: int) -> list[str]:
    """Structural check of one raw feed entry. Returns error messages (empty = valid)."""
    if not isinstance(entry, dict):
        return [f"gempa[{index}]: expected an object, got {type(entry).__name__}"]

    errors: list[str] = []
    for key, pattern in _ENTRY_FIELDS.items():
        if key not in entry:
            errors.append(f"gempa[{index}].{key}: missing")
            continue
        value = entry[key]
        if not isinstance(value, str):
            errors.append(
                f"gempa[{index}].{key}: expected a string, got {type(value).__name__}"
            )
        elif pattern is not None and pattern.fullmatch(value) is None:
            errors.append(f"gempa[{index}].{key}: malformed value {value!r}")
    return errors


def _extract_entries(document: Any) -> list[Any]:
    if not isinstance(document, dict):
        raise ValidationError([f"feed: expected an object, got {type(document).__name__}"])
    info = document.get("Infogempa")
    if not isinstance(info, dict):
        raise ValidationError(["Infogempa: missing or not an object"])
    entries = info.get("gempa")
    if not isinstance(entries, list):
        raise ValidationError(["Infogempa.gempa: missing or not an array"])
    return entries


class BMKGFeltParser(EventParser):
    """Parse the BMKG felt earthquakes feed → list of Earthquake.

    All or nothing: the first invalid entry aborts the batch, nothing is
    silently dropped.
    """

    def parse(self, raw_payload: str | bytes | dict[str, Any], now: datetime) -> list[Earthquake]:
        if isinstance(raw_payload, (str, bytes)):
            try:
                document = json.loads(raw_payload)
            except ValueError as exc:
                raise ValidationError([f"feed: not valid JSON ({exc})"]) from exc
        else:
            document = raw_payload

        entries = _extract_entries(document)
        events = [self.parse_entry(entry, index, now) for index, entry in enumerate(entries)]

        flagged = sum(1 for e in events if e.anomaly is not None)
        logger.debug("Normalized %d felt earthquake(s), %d flagged", len(events), flagged)
        return events

    def parse_entry(self, entry: Any, index: int, now: datetime) -> Earthquake:
        """Validate then normalize a single raw entry."""
        errors = validate_entry(entry, index)
        if errors:
            raise ValidationError(errors, index=index)

        try:
            occurred_at = parse_timestamp(entry["DateTime"])
        except ValueError as exc:
            raise NormalizationError(
                f"gempa[{index}].DateTime: {entry['DateTime']!r} is not a valid instant"
            ) from exc

        latitude, longitude = parse_coordinates(entry["Coordinates"])
        return self.build_event(
            f"gempa[{index}]",
            occurred_at,
            latitude,
            longitude,
            parse_magnitude(entry["Magnitude"]),
            parse_depth(entry["Kedalaman"]),
            location_text=entry["Wilayah"],
            felt_stations_text=entry["Dirasakan"],
            now=now,
        )
