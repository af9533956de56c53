"""Parser for rows scraped from BMKG's older HTML felt earthquakes table.

Before the JSON feed carried ``DateTime`` and ``Coordinates``, events were
scraped from the rendered table, one object per row::

    [{"Waktu Gempa": "19/12/202212:50:14 WIB",
      "Lintang - Bujur": "8.28 LS 115.82 BT",
      "Magnitudo": "4.2",
      "Kedalaman": "10 Km",
      "Dirasakan (Skala MMI)": "Pusat gempa berada di laut TimurLaut Karangasem\\nIII\\tKarangasem\\n..."},
     ...]

Such dumps are backfilled with ``felt-quakes normalize --source
bmkg_felt_legacy`` followed by ``felt-quakes merge``.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from typing import Any

from felt_quakes.errors import ValidationError
from felt_quakes.ids import WIB_OFFSET
from felt_quakes.models import Earthquake
from felt_quakes.parsers.base import EventParser
from felt_quakes.parsers.bmkg_felt import parse_magnitude

logger = logging.getLogger(__name__)

_WIB_DATE_RE = re.compile(r"(\d{2})/(\d{2})/(\d{4})(\d{2}):(\d{2}):(\d{2})(?: WIB)?")

_ROW_FIELDS = (
    "Waktu Gempa",
    "Lintang - Bujur",
    "Magnitudo",
    "Kedalaman",
    "Dirasakan (Skala MMI)",
)


def parse_wib_text_date(text: str) -> datetime:
    """Parse ``DD/MM/YYYYHH:MM:SS WIB`` (no separator between date and time) → UTC."""
    match = _WIB_DATE_RE.fullmatch(text.strip())
    if match is None:
        raise ValidationError([f"expected 'DD/MM/YYYYHH:MM:SS WIB', got {text!r}"])
    day, month, year, hour, minute, second = (int(g) for g in match.groups())
    try:
        wib = datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)
        return wib - WIB_OFFSET
    except (ValueError, OverflowError) as exc:
        raise ValidationError([f"{text!r} is not a representable WIB time ({exc})"]) from exc


def parse_latitude_longitude_text(text: str) -> tuple[float, float]:
    """Parse ``"2.09 LU 98.94 BT"`` → ``(2.09, 98.94)``.

    LU (Lintang Utara) is north, LS (Lintang Selatan) south; BT (Bujur Timur)
    is east, BB (Bujur Barat) west.
    """
    parts = text.split()
    if len(parts) != 4:
        raise ValidationError([f"expected '<lat> LU|LS <lon> BT|BB', got {text!r}"])
    raw_lat, lat_hemisphere, raw_lon, lon_hemisphere = parts
    try:
        unsigned_lat = float(raw_lat)
        unsigned_lon = float(raw_lon)
    except ValueError as exc:
        raise ValidationError([f"non-numeric coordinate in {text!r}"]) from exc

    lat_sign = 1 if lat_hemisphere.upper() == "LU" else -1
    lon_sign = 1 if lon_hemisphere.upper() == "BT" else -1
    return unsigned_lat * lat_sign, unsigned_lon * lon_sign


def parse_depth_text(text: str) -> float:
    """Parse ``"59 Km"`` → ``59.0``."""
    if " Km" not in text:
        raise ValidationError([f"unexpected depth unit, received {text!r}, expected 'xx Km'"])
    try:
        return float(text.split(" ")[0])
    except ValueError as exc:
        raise ValidationError([f"non-numeric depth in {text!r}"]) from exc


def parse_felt_on_text(text: str) -> tuple[str, list[str]]:
    """Split a "felt on" cell into the location line and the station lines."""
    lines = [line for line in text.split("\n") if line.strip()]
    if not lines:
        raise ValidationError(["felt-on text is empty"])
    location_text, *raw_stations = lines
    stations = [s.replace("\t", " ").strip() for s in raw_stations]
    return location_text.strip(), stations


def validate_row(row: Any, index: int) -> list[str]:
    """Check that a scraped row has every column as text. Returns error messages."""
    if not isinstance(row, dict):
        return [f"row[{index}]: expected an object, got {type(row).__name__}"]
    errors = []
    for key in _ROW_FIELDS:
        if key not in row:
            errors.append(f"row[{index}].{key}: missing")
        elif not isinstance(row[key], str):
            errors.append(f"row[{index}].{key}: expected a string, got {type(row[key]).__name__}")
    return errors


class BMKGLegacyTableParser(EventParser):
    """Parse a JSON array of scraped table rows → list of Earthquake.

    All or nothing, like the feed parser. Station lines are joined with
    ``", "`` so ``feltStationsText`` reads the same as in the JSON feed.
    """

    def parse(self, raw_payload: str | bytes | Any, now: datetime) -> list[Earthquake]:
        if isinstance(raw_payload, (str, bytes)):
            try:
                rows = json.loads(raw_payload)
            except ValueError as exc:
                raise ValidationError([f"rows: not valid JSON ({exc})"]) from exc
        else:
            rows = raw_payload

        if not isinstance(rows, list):
            raise ValidationError([f"rows: expected an array, got {type(rows).__name__}"])

        events = [self.parse_row(row, index, now) for index, row in enumerate(rows)]
        logger.debug("Normalized %d legacy row(s)", len(events))
        return events

    def parse_row(self, row: Any, index: int, now: datetime) -> Earthquake:
        errors = validate_row(row, index)
        if errors:
            raise ValidationError(errors, index=index)

        try:
            occurred_at = parse_wib_text_date(row["Waktu Gempa"])
            latitude, longitude = parse_latitude_longitude_text(row["Lintang - Bujur"])
            magnitude = parse_magnitude(row["Magnitudo"].strip())
            depth_km = parse_depth_text(row["Kedalaman"])
            location_text, stations = parse_felt_on_text(row["Dirasakan (Skala MMI)"])
        except ValidationError as exc:
            raise ValidationError(
                [f"row[{index}]: {message}" for message in exc.errors], index=index,
            ) from exc

        return self.build_event(
            f"row[{index}]",
            occurred_at,
            latitude,
            longitude,
            magnitude,
            depth_km,
            location_text=location_text,
            felt_stations_text=", ".join(stations),
            now=now,
        )
