"""Content fingerprint for recognizing the same earthquake across fetches."""

from __future__ import annotations

import hashlib
import json


def compute_fingerprint(
    occurred_at_iso: str,
    latitude: float,
    longitude: float,
    magnitude: float,
    depth_km: float,
) -> str:
    """SHA-1 hex digest over the physical parameters of an earthquake.

    The fields are hashed together with their names, as canonical JSON with
    sorted keys, so argument order never matters but swapping two values does.
    Descriptive text (location, felt stations) is deliberately left out: BMKG
    edits it after the fact and that must not turn into a new fingerprint.
    """
    material = json.dumps(
        {
            "earthquakeAt": occurred_at_iso,
            "latitude": latitude,
            "longitude": longitude,
            "magnitude": magnitude,
            "depthInKm": depth_km,
        },
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.sha1(material.encode("utf-8")).hexdigest()
