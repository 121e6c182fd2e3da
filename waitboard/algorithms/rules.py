"""
Hospital Wait Board — Board Rules

Tunable numbers shared by the filter pipeline and the waiting-list badge:
the default "nearby" radius and the waiting-count thresholds that map a
count onto a wait level.

Dependencies:
    pip install pyyaml
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml


# ---------------------------------------------------------------------------
# Defaults (overridden by board_rules.yaml at runtime)
# ---------------------------------------------------------------------------

DEFAULT_RULES_PATH = Path(__file__).resolve().parent / "board_rules.yaml"

_DEFAULT_NEARBY_RADIUS_KM = 50.0

_DEFAULT_WAIT_THRESHOLDS = {
    "short": 5,
    "moderate": 10,
}


@dataclass
class BoardRules:
    """Loaded board configuration from board_rules.yaml."""

    nearby_radius_km: float = _DEFAULT_NEARBY_RADIUS_KM
    wait_thresholds: dict[str, int] = field(default_factory=lambda: dict(_DEFAULT_WAIT_THRESHOLDS))

    @classmethod
    def from_yaml(cls, path: str | Path) -> "BoardRules":
        """Load configuration from a YAML file."""
        with open(path, "r") as f:
            raw = yaml.safe_load(f) or {}

        location = raw.get("location", {})
        thresholds_raw = raw.get("wait_levels", {})

        return cls(
            nearby_radius_km=float(location.get("nearby_radius_km", _DEFAULT_NEARBY_RADIUS_KM)),
            wait_thresholds={
                "short": int(thresholds_raw.get("short", _DEFAULT_WAIT_THRESHOLDS["short"])),
                "moderate": int(thresholds_raw.get("moderate", _DEFAULT_WAIT_THRESHOLDS["moderate"])),
            },
        )


_RULES: BoardRules | None = None


def get_rules() -> BoardRules:
    """Return the process-wide rules, loading board_rules.yaml on first use."""
    global _RULES  # noqa: PLW0603
    if _RULES is None:
        if DEFAULT_RULES_PATH.exists():
            _RULES = BoardRules.from_yaml(DEFAULT_RULES_PATH)
        else:
            _RULES = BoardRules()
    return _RULES
