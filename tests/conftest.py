"""Shared fixtures for felt-quakes tests."""

from __future__ import annotations

import copy
import json
from pathlib import Path

import pytest

SAMPLE_PATH = Path(__file__).parent / "data" / "bmkg_felt_response_sample.json"
_SAMPLE = json.loads(SAMPLE_PATH.read_text(encoding="utf-8"))


@pytest.fixture
def felt_sample() -> dict:
    """Decoded sample of the BMKG felt earthquakes feed (3 entries)."""
    return copy.deepcopy(_SAMPLE)
