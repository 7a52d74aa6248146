"""
models/flat.py — Pydantic models for the flat (non-hierarchical) artifacts.

  RevenueLine      — state_revenues_{year}.json
  GreenBudgetLine  — budget_vert_{year}.json (environmental tagging)
  PerformanceLine  — state_performance_{year}.json (PAP/RAP indicators)
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class RevenueLine(BaseModel):
    source: str
    montant: float

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class GreenBudgetLine(BaseModel):
    """One environmentally tagged budget line. All fields are optional."""

    mission: str | None = None
    programme_code: str | None = None
    programme: str | None = None
    action: str | None = None
    cotation: str | None = None
    categorie: str | None = None
    cp: float | None = None
    attenuation_climat: float | None = None
    adaptation_climat: float | None = None
    eau: float | None = None
    pollution: float | None = None
    biodiversite: float | None = None
    # Older placeholder schema
    domaine: str | None = None
    objectif: str | None = None
    note: str | None = None
    montant: float | None = None

    def is_empty(self) -> bool:
        return all(v is None for v in self.model_dump().values())

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class PerformanceLine(BaseModel):
    mission_code: str | None = None
    mission: str | None = None
    programme_code: str | None = None
    programme: str | None = None
    objectif: str | None = None
    indicateur: str | None = None
    unite: str | None = None
    # exec_2023, cible_2025, … keyed by lower-cased source field name
    values: dict[str, float | str] = Field(default_factory=dict)

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)
