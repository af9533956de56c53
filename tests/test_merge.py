"""Tests for merging fresh earthquakes into the persisted snapshot."""

from __future__ import annotations

import copy
from datetime import datetime, timezone

import pytest

from felt_quakes.errors import MergeConfigurationError
from felt_quakes.merge import merge_felt_earthquakes, merge_with_stats, resolve_merge_key
from felt_quakes.models import MergeKey
from felt_quakes.parsers import BMKGFeltParser


def _make_record(earthquake_id="20251224123034", fingerprint="abc123", **overrides):
    record = {
        "id": earthquake_id,
        "fingerprint": fingerprint,
        "occurredAt": "2025-12-24T05:30:34.000Z",
        "latitude": -4.46,
        "longitude": 102.6,
        "magnitude": 4.6,
        "depthKm": 30,
        "locationText": "Location",
        "feltStationsText": "Stations",
        "shakeMapUrl": f"https://static.bmkg.go.id/{earthquake_id}.mmi.jpg",
    }
    record.update(overrides)
    return record


# ── Key-based merge tests ────────────────────────────────────────────────


class TestMergeById:
    def test_fresh_fields_win(self):
        stale = [_make_record(locationText="Old location", feltStationsText="Old stations")]
        fresh = [_make_record(
            fingerprint="def456", locationText="New location", feltStationsText="New stations",
        )]
        result = merge_felt_earthquakes(stale, fresh, MergeKey.ID)
        assert len(result) == 1
        assert result[0]["locationText"] == "New location"
        assert result[0]["feltStationsText"] == "New stations"
        assert result[0]["fingerprint"] == "def456"

    def test_default_key_is_id(self):
        stale = [_make_record(fingerprint="abc123")]
        fresh = [_make_record(fingerprint="other")]
        assert len(merge_felt_earthquakes(stale, fresh)) == 1

    def test_new_key_is_appended(self):
        stale = [_make_record()]
        fresh = [_make_record("20251223111036", "def456", occurredAt="2025-12-23T04:10:36.000Z")]
        result = merge_felt_earthquakes(stale, fresh)
        assert [r["id"] for r in result] == ["20251224123034", "20251223111036"]

    def test_one_new_one_matching(self):
        stale = [_make_record("20251201000000"), _make_record("20251224123034")]
        fresh = [_make_record("20251224123034", locationText="New"), _make_record("20251225000000")]
        result = merge_felt_earthquakes(stale, fresh)
        assert len(result) == len(stale) + 1
        assert [r["id"] for r in result] == ["20251201000000", "20251224123034", "20251225000000"]
        assert result[1]["locationText"] == "New"

    def test_empty_fresh_returns_stale(self):
        stale = [_make_record(), _make_record("20251223111036")]
        assert merge_felt_earthquakes(stale, []) == stale

    def test_empty_stale_returns_fresh(self):
        fresh = [_make_record(), _make_record("20251223111036"), _make_record("20251222230211")]
        assert merge_felt_earthquakes([], fresh) == fresh

    def test_absent_fresh_never_deletes(self):
        stale = [_make_record("20251201000000"), _make_record("20251202000000")]
        fresh = [_make_record("20251202000000")]
        assert len(merge_felt_earthquakes(stale, fresh)) == 2


class TestMergeByFingerprint:
    def test_matches_on_fingerprint(self):
        stale = [_make_record(locationText="Old location")]
        fresh = [_make_record(locationText="New location")]
        result = merge_felt_earthquakes(stale, fresh, MergeKey.FINGERPRINT)
        assert len(result) == 1
        assert result[0]["locationText"] == "New location"
        assert result[0]["fingerprint"] == "abc123"

    def test_same_id_different_fingerprint_kept_apart(self):
        stale = [_make_record(fingerprint="abc123")]
        fresh = [_make_record(fingerprint="def456")]
        assert len(merge_felt_earthquakes(stale, fresh, "fingerprint")) == 2


# ── Field-level merge tests ──────────────────────────────────────────────


class TestFieldMerge:
    def test_stale_only_field_kept(self):
        stale = [_make_record(anomaly="FUTURE_EVENT", note="checked manually")]
        fresh = [_make_record(locationText="New")]
        merged = merge_felt_earthquakes(stale, fresh)[0]
        assert merged["anomaly"] == "FUTURE_EVENT"
        assert merged["note"] == "checked manually"
        assert merged["locationText"] == "New"

    def test_lists_replaced_wholesale(self):
        stale = [_make_record(stations=["Bima", "Dompu", "Mataram"])]
        fresh = [_make_record(stations=["Bima"])]
        assert merge_felt_earthquakes(stale, fresh)[0]["stations"] == ["Bima"]

    def test_mappings_replaced_wholesale(self):
        stale = [_make_record(meta={"erroneousDataReason": "FUTURE_EARTHQUAKE", "seen": 2})]
        fresh = [_make_record(meta={"seen": 3})]
        assert merge_felt_earthquakes(stale, fresh)[0]["meta"] == {"seen": 3}

    def test_inputs_not_mutated(self):
        stale = [_make_record(stations=["Bima"])]
        fresh = [_make_record(locationText="New", stations=["Dompu"])]
        stale_before, fresh_before = copy.deepcopy(stale), copy.deepcopy(fresh)
        result = merge_felt_earthquakes(stale, fresh)
        result[0]["stations"].append("Mataram")
        assert stale == stale_before
        assert fresh == fresh_before

    def test_duplicate_stale_keys_fold_into_first(self):
        stale = [
            _make_record("20251201000000", locationText="first", note="a"),
            _make_record("20251202000000"),
            _make_record("20251201000000", locationText="second"),
        ]
        result = merge_felt_earthquakes(stale, [])
        assert [r["id"] for r in result] == ["20251201000000", "20251202000000"]
        assert result[0]["locationText"] == "second"
        assert result[0]["note"] == "a"


# ── Idempotence and stats ────────────────────────────────────────────────


class TestIdempotence:
    def test_merge_twice_is_noop(self):
        stale = [_make_record("20251201000000"), _make_record(note="kept")]
        fresh = [_make_record(locationText="New"), _make_record("20251225000000")]
        once = merge_felt_earthquakes(stale, fresh)
        assert merge_felt_earthquakes(once, fresh) == once

    def test_normalized_feed_twice(self, felt_sample):
        now = datetime(2025, 12, 25, tzinfo=timezone.utc)
        fresh = BMKGFeltParser().parse(felt_sample, now)
        once = merge_felt_earthquakes([], fresh)
        assert merge_felt_earthquakes(once, fresh) == once
        assert [r["id"] for r in once] == [e.earthquake_id for e in fresh]

    def test_stats(self):
        stale = [_make_record("20251201000000"), _make_record()]
        fresh = [_make_record(), _make_record("20251201000000", locationText="New"),
                 _make_record("20251225000000")]
        _, stats = merge_with_stats(stale, fresh)
        assert (stats.added, stats.updated, stats.unchanged) == (1, 1, 1)
        assert stats.changed

    def test_stats_unchanged(self):
        stale = [_make_record()]
        _, stats = merge_with_stats(stale, [_make_record()])
        assert not stats.changed


# ── Configuration errors ─────────────────────────────────────────────────


class TestMergeConfiguration:
    def test_string_key_accepted(self):
        assert resolve_merge_key("id") is MergeKey.ID
        assert resolve_merge_key("fingerprint") is MergeKey.FINGERPRINT

    @pytest.mark.parametrize("key", ["bmkgEarthquakeId", "", "ID"])
    def test_unknown_key(self, key):
        with pytest.raises(MergeConfigurationError, match="unknown merge key"):
            merge_felt_earthquakes([], [], key)

    def test_record_without_key(self):
        legacy = _make_record()
        del legacy["id"]
        with pytest.raises(MergeConfigurationError, match="stale record 0"):
            merge_felt_earthquakes([legacy], [_make_record()])
