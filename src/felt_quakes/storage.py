"""JSON file persistence for the earthquake snapshot."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Mapping, Sequence

from felt_quakes.errors import SnapshotError

logger = logging.getLogger(__name__)


def read_snapshot(path: str | os.PathLike) -> list[dict[str, Any]]:
    """Load the persisted records. A missing file is an empty snapshot."""
    path = Path(path)
    if not path.exists():
        logger.info("No snapshot at %s, starting empty", path)
        return []
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise SnapshotError(f"cannot read snapshot {path}: {exc}") from exc
    if not isinstance(data, list) or not all(isinstance(r, dict) for r in data):
        raise SnapshotError(f"snapshot {path} is not a JSON array of objects")
    return data


def write_snapshot(path: str | os.PathLike, records: Sequence[Mapping[str, Any]]) -> None:
    """Replace the snapshot atomically (temp file in the same directory + rename)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(list(records), ensure_ascii=False, indent=2) + "\n"

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(payload)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    logger.info("Wrote %d record(s) to %s", len(records), path)
