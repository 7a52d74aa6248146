"""
constants.py — shared constants used across the pipeline.

Artifact names, fiscal-year field candidates and typed literals are defined
here so the pipeline, the CLI and the tests stay in sync.
"""

from __future__ import annotations

from typing import Final, Literal

# ---------------------------------------------------------------------------
# Retrieval tracks
# ---------------------------------------------------------------------------
Track = Literal["spending", "revenues", "green", "performance"]
TrackStatus = Literal["live", "fallback", "omitted"]

TRACKS: Final[tuple[Track, ...]] = ("spending", "revenues", "green", "performance")

# ---------------------------------------------------------------------------
# Output artifacts: consumed by the rendering layer as {artifact}_{year}.json
# ---------------------------------------------------------------------------
CATALOG_ARTIFACT: Final[str] = "catalog"

TRACK_ARTIFACTS: Final[dict[Track, str]] = {
    "spending": "state_budget_tree",
    "revenues": "state_revenues",
    "green": "budget_vert",
    "performance": "state_performance",
}

# Bundled fallback files: {stem}_{year}.csv is tried before {stem}_{year}.json
FALLBACK_STEMS: Final[dict[Track, tuple[str, ...]]] = {
    "spending": ("state_spending", "state_budget_tree"),
    "revenues": ("state_revenues",),
    "green": ("budget_vert",),
    "performance": ("state_performance",),
}

# ---------------------------------------------------------------------------
# Schema probe: fields that may carry the fiscal year, in priority order
# ---------------------------------------------------------------------------
YEAR_FIELDS: Final[tuple[str, ...]] = ("annee", "exercice", "annee_budgetaire", "year")

ROOT_NAME: Final[str] = "État"


def artifact_name(artifact: str, year: int) -> str:
    """Return the well-known file name for an artifact, e.g. catalog_2025.json."""
    return f"{artifact}_{year}.json"
