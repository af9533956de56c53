"""Core cycle: fetch → normalize → merge → store.

Each invocation (triggered by the scheduled workflow) fetches the felt
earthquakes feed, normalizes it, merges it into the persisted snapshot and
writes the snapshot back. Any failure aborts the cycle before the write, so the
snapshot on disk is either the previous one or the fully merged one.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Sequence

from felt_quakes.clients.bmkg_client import BMKGClient
from felt_quakes.merge import MergeStats, merge_with_stats
from felt_quakes.models import Earthquake, MergeKey
from felt_quakes.parsers import PARSER_MAP
from felt_quakes.sources import SourceConfig
from felt_quakes.storage import read_snapshot, write_snapshot

logger = logging.getLogger(__name__)


@dataclass
class CycleResult:
    """Outcome of one normalize + merge cycle."""

    fresh: list[Earthquake]
    records: list[dict[str, Any]]
    stats: MergeStats = field(default_factory=MergeStats)

    @property
    def anomalies(self) -> list[Earthquake]:
        return [e for e in self.fresh if e.anomaly is not None]

    def summary(self) -> dict[str, Any]:
        return {
            "fresh": len(self.fresh),
            "total": len(self.records),
            "added": self.stats.added,
            "updated": self.stats.updated,
            "unchanged": self.stats.unchanged,
            "anomalies": len(self.anomalies),
        }


def run_cycle(
    raw_payload: str | bytes | dict[str, Any],
    stale: Sequence[Mapping[str, Any]],
    now: datetime,
    merge_key: MergeKey | str = MergeKey.ID,
    source: str = "bmkg_felt",
) -> CycleResult:
    """Normalize a raw feed document and merge it into ``stale``. No I/O."""
    parser = PARSER_MAP[source]
    fresh = parser.parse(raw_payload, now)
    records, stats = merge_with_stats(stale, fresh, merge_key)
    return CycleResult(fresh=fresh, records=records, stats=stats)


def scrape(
    config: SourceConfig,
    save_path: str | None = None,
    now: datetime | None = None,
    merge_key: MergeKey | str = MergeKey.ID,
    client: BMKGClient | None = None,
) -> CycleResult:
    """Execute one full cycle against the network and the snapshot file."""
    run_id = str(uuid.uuid4())[:8]
    t0 = time.monotonic()
    save_path = save_path or config.save_path
    if now is None:
        now = datetime.now(timezone.utc)

    logger.info("[%s] Cycle starting: %s → %s", run_id, config.url, save_path)

    if client is None:
        with BMKGClient(config) as owned:
            raw = owned.fetch_feed()
    else:
        raw = client.fetch_feed()
    logger.debug("[%s] Raw feed: %s", run_id, raw)

    stale = read_snapshot(save_path)
    result = run_cycle(raw, stale, now, merge_key=merge_key, source=config.name)
    logger.debug(
        "[%s] stale=%d fresh=%d updated=%d",
        run_id, len(stale), len(result.fresh), len(result.records),
    )

    write_snapshot(save_path, result.records)

    duration = time.monotonic() - t0
    logger.info("[%s] Cycle complete in %.1fs: %s", run_id, duration, result.summary())
    return result
