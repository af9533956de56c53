"""Source registry and runtime settings for the BMKG feeds."""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass
class SourceConfig:
    """Configuration for a single BMKG feed."""

    name: str
    url: str
    max_retries: int
    retry_backoff_base: float
    timeout_seconds: int
    save_path: str              # Snapshot the feed is merged into


SOURCES: dict[str, SourceConfig] = {
    "bmkg_felt": SourceConfig(
        name="bmkg_felt",
        url="https://data.bmkg.go.id/DataMKG/TEWS/gempadirasakan.json",
        max_retries=3,
        retry_backoff_base=2.0,
        timeout_seconds=20,
        save_path=os.getenv(
            "FELT_QUAKES_SAVE_PATH",
            "./earthquakes/bmkg_earthquakes_felt.json",
        ),
    ),
}

DEFAULT_SOURCE = "bmkg_felt"

# "id" or, for snapshots predating reliable ids, "fingerprint"
MERGE_KEY = os.getenv("FELT_QUAKES_MERGE_KEY", "id")
