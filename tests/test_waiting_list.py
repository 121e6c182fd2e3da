"""Tests for the waiting-list counter and the board rules."""

import os
import tempfile
from datetime import datetime, timezone

import pytest
import yaml

from waitboard.algorithms.rules import DEFAULT_RULES_PATH, BoardRules, get_rules
from waitboard.algorithms.waiting_list import (
    CHECKIN_DELTA,
    STAFF_DELTAS,
    WaitingListEntry,
    apply_delta,
    new_entry,
    wait_level,
)

T0 = datetime(2026, 3, 1, 9, 0, 0, tzinfo=timezone.utc)
T1 = datetime(2026, 3, 1, 9, 5, 0, tzinfo=timezone.utc)


def _entry(count, when=T0):
    return WaitingListEntry(hospital_id="h-1", count=count, last_updated=when)


# ---- apply_delta ------------------------------------------------------------


class TestApplyDelta:
    def test_decrement_at_zero_stays_zero(self):
        assert apply_delta(_entry(0), -1, now=T1).count == 0

    def test_decrement(self):
        assert apply_delta(_entry(3), -1, now=T1).count == 2

    def test_increment(self):
        assert apply_delta(_entry(3), 1, now=T1).count == 4

    def test_checkin_adds_one(self):
        assert apply_delta(_entry(7), CHECKIN_DELTA, now=T1).count == 8

    def test_floor_makes_deltas_non_invertible(self):
        """-1 then +1 from zero lands on one: the floor absorbed the -1."""
        after = apply_delta(apply_delta(_entry(0), -1, now=T1), 1, now=T1)
        assert after.count == 1

    def test_large_negative_delta_clamps(self):
        assert apply_delta(_entry(2), -10, now=T1).count == 0

    def test_refreshes_timestamp(self):
        assert apply_delta(_entry(1), 1, now=T1).last_updated == T1

    def test_default_timestamp_is_now(self):
        before = datetime.now(timezone.utc)
        updated = apply_delta(_entry(1), 1)
        assert updated.last_updated >= before

    def test_does_not_mutate_input(self):
        original = _entry(5)
        apply_delta(original, -1, now=T1)
        assert original.count == 5
        assert original.last_updated == T0

    def test_keeps_hospital_id(self):
        assert apply_delta(_entry(0), 1, now=T1).hospital_id == "h-1"


class TestNewEntry:
    def test_starts_at_zero(self):
        entry = new_entry("h-9", now=T0)
        assert entry.count == 0
        assert entry.hospital_id == "h-9"
        assert entry.last_updated == T0

    def test_to_dict(self):
        assert new_entry("h-9", now=T0).to_dict() == {
            "hospital_id": "h-9",
            "waiting_count": 0,
            "last_updated": "2026-03-01T09:00:00+00:00",
        }

    def test_to_dict_without_timestamp(self):
        assert WaitingListEntry(hospital_id="h-9").to_dict()["last_updated"] is None


def test_staff_deltas_are_plus_minus_one():
    assert set(STAFF_DELTAS) == {-1, 1}


# ---- wait_level -------------------------------------------------------------


class TestWaitLevel:
    @pytest.mark.parametrize(
        "count,level",
        [
            (0, "none"),
            (1, "short"),
            (5, "short"),
            (6, "moderate"),
            (10, "moderate"),
            (11, "long"),
            (250, "long"),
        ],
    )
    def test_default_thresholds(self, count, level):
        assert wait_level(count, BoardRules()) == level

    def test_custom_thresholds(self):
        rules = BoardRules(wait_thresholds={"short": 1, "moderate": 2})
        assert wait_level(2, rules) == "moderate"
        assert wait_level(3, rules) == "long"


# ---- BoardRules -------------------------------------------------------------


class TestBoardRules:
    def test_defaults(self):
        rules = BoardRules()
        assert rules.nearby_radius_km == 50.0
        assert rules.wait_thresholds == {"short": 5, "moderate": 10}

    def test_from_yaml(self):
        data = {
            "location": {"nearby_radius_km": 25},
            "wait_levels": {"short": 3, "moderate": 8},
        }
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            yaml.dump(data, f)
            path = f.name

        try:
            rules = BoardRules.from_yaml(path)
            assert rules.nearby_radius_km == 25.0
            assert rules.wait_thresholds["short"] == 3
            assert rules.wait_thresholds["moderate"] == 8
        finally:
            os.unlink(path)

    def test_from_partial_yaml_keeps_defaults(self):
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            yaml.dump({"wait_levels": {"short": 2}}, f)
            path = f.name

        try:
            rules = BoardRules.from_yaml(path)
            assert rules.nearby_radius_km == 50.0
            assert rules.wait_thresholds == {"short": 2, "moderate": 10}
        finally:
            os.unlink(path)

    def test_from_project_yaml(self):
        assert DEFAULT_RULES_PATH.exists()
        rules = BoardRules.from_yaml(DEFAULT_RULES_PATH)
        assert rules.nearby_radius_km == 50.0
        assert rules.wait_thresholds == {"short": 5, "moderate": 10}

    def test_get_rules_is_cached(self):
        assert get_rules() is get_rules()
