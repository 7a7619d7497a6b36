"""Configuration paths and default scoring policy for BlastRadius."""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(os.environ.get("BLASTRADIUS_HOME", str(Path.home() / ".blastradius"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"
RUNS_DIR = BASE_DIR / "runs"

INDEXES_DIRNAME = "indexes"
CONVENTIONS_DIRNAME = "project-dna"

# Scoring policy defaults. Empirical values, overridable through [scoring] in config.toml.
TERM_WEIGHT = 0.4
SYMBOL_WEIGHT = 0.6
DEPTH_DECAY = 0.5
GRAPH_MAX_DEPTH = 2
SCORE_THRESHOLD = 0.05
MAX_IMPACT_FILES = 40
PRIMARY_THRESHOLD = 0.55
SECONDARY_THRESHOLD = 0.25
LOW_CONFIDENCE_THRESHOLD = 0.4
MIN_PRIMARY_FILES = 2
MAX_QUESTIONS = 8

DEFAULT_ENGINE = "heuristic"


def ensure_base_dirs() -> None:
    """Create base directories for local storage if needed."""
    BASE_DIR.mkdir(parents=True, exist_ok=True)
    RUNS_DIR.mkdir(parents=True, exist_ok=True)
