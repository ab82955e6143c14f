"""Path helpers for validation inputs and outputs."""

from __future__ import annotations

from pathlib import Path


REPO_ROOT = Path(__file__).resolve().parents[2]
CONFIG_BASE = REPO_ROOT / "silverqc" / "config"
RULES_PATH = CONFIG_BASE / "rules.yml"
DATA_MARTS_BASE = REPO_ROOT / "data" / "marts"
