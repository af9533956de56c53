"""Incremental merge of freshly fetched earthquakes into the persisted snapshot.

Records are matched by a merge key (``id`` by default). A matched record keeps
every field it already had and takes every field the fresh record carries;
list and dict values are taken whole from the fresh record, never merged
element by element. Nothing is ever deleted: an event missing from the fresh
fetch simply stays as it was.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence, Union

from felt_quakes.errors import MergeConfigurationError
from felt_quakes.models import Earthquake, MergeKey

logger = logging.getLogger(__name__)

Record = dict[str, Any]


@dataclass
class MergeStats:
    """What a merge did to the snapshot."""
    added: int = 0
    updated: int = 0
    unchanged: int = 0

    @property
    def changed(self) -> bool:
        return self.added > 0 or self.updated > 0


def resolve_merge_key(merge_key: MergeKey | str) -> MergeKey:
    """Coerce a merge key given as text (e.g. from config) to :class:`MergeKey`."""
    if isinstance(merge_key, MergeKey):
        return merge_key
    try:
        return MergeKey(merge_key)
    except ValueError:
        allowed = ", ".join(k.value for k in MergeKey)
        raise MergeConfigurationError(
            f"unknown merge key {merge_key!r}, expected one of: {allowed}"
        ) from None


def merge_records(old: Mapping[str, Any], fresh: Mapping[str, Any]) -> Record:
    """Field-level union of two records, fresh values winning."""
    merged = copy.deepcopy(dict(old))
    for field_name, value in fresh.items():
        merged[field_name] = copy.deepcopy(value)
    return merged


def _as_record(item: Union[Earthquake, Mapping[str, Any]]) -> Record:
    if isinstance(item, Earthquake):
        return item.to_record()
    return dict(item)


def _key_of(record: Mapping[str, Any], merge_key: MergeKey, label: str, index: int) -> Any:
    try:
        return record[merge_key.value]
    except KeyError:
        raise MergeConfigurationError(
            f"{label} record {index} has no {merge_key.value!r} field"
        ) from None


def merge_with_stats(
    stale: Sequence[Mapping[str, Any]],
    fresh: Iterable[Union[Earthquake, Mapping[str, Any]]],
    merge_key: MergeKey | str = MergeKey.ID,
) -> tuple[list[Record], MergeStats]:
    """Merge ``fresh`` into ``stale``; see :func:`merge_felt_earthquakes`."""
    key = resolve_merge_key(merge_key)
    stats = MergeStats()

    merged: dict[Any, Record] = {}
    for index, record in enumerate(stale):
        k = _key_of(record, key, "stale", index)
        if k in merged:
            logger.warning("Stale snapshot has duplicate %s %r, folding together", key.value, k)
            merged[k] = merge_records(merged[k], record)
        else:
            merged[k] = copy.deepcopy(dict(record))

    for index, item in enumerate(fresh):
        record = _as_record(item)
        k = _key_of(record, key, "fresh", index)
        old = merged.get(k)
        if old is None:
            merged[k] = copy.deepcopy(record)
            stats.added += 1
            continue

        updated = merge_records(old, record)
        if updated == old:
            stats.unchanged += 1
        else:
            stats.updated += 1
        merged[k] = updated

    logger.debug(
        "Merged by %s: %d stale, %d added, %d updated, %d unchanged",
        key.value, len(stale), stats.added, stats.updated, stats.unchanged,
    )
    return list(merged.values()), stats


def merge_felt_earthquakes(
    stale: Sequence[Mapping[str, Any]],
    fresh: Iterable[Union[Earthquake, Mapping[str, Any]]],
    merge_key: MergeKey | str = MergeKey.ID,
) -> list[Record]:
    """Merge freshly normalized earthquakes into a persisted snapshot.

    Args:
        stale: Records of the persisted snapshot, in stored order.
        fresh: Newly normalized earthquakes (``Earthquake`` or record dicts).
        merge_key: Field used to match records. ``MergeKey.FINGERPRINT`` only
            exists for snapshots that predate reliable ids.

    Returns:
        A new list: stale records in their order (updated in place of the
        original), followed by new fresh records in fetch order. Inputs are
        left untouched.

    Raises:
        MergeConfigurationError: Unknown merge key, or a record without it.
    """
    records, _ = merge_with_stats(stale, fresh, merge_key)
    return records
