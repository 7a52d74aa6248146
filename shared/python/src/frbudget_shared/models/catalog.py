"""
models/catalog.py — Pydantic models for dataset discovery.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

SelectionPath = Literal["strict", "relaxed"]


class CatalogCandidate(BaseModel):
    """One scored catalog entry surviving the positive-score filter."""

    id: str
    title: str | None = None
    score: int


class ChosenDatasets(BaseModel):
    """Dataset ids selected per category; any may be absent."""

    spending: str | None = None
    revenues: str | None = None
    green: str | None = None


class DiscoveryTrace(BaseModel):
    """Audit record of one discovery run, written as catalog_{year}.json."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    year: int
    domain: str
    searched_queries: list[str] = Field(default_factory=list, alias="searchedQueries")
    candidates: list[CatalogCandidate] = Field(default_factory=list)
    chosen: ChosenDatasets = Field(default_factory=ChosenDatasets)
    spending_selection: SelectionPath | None = Field(default=None, alias="spendingSelection")
    failed_queries: list[str] = Field(default_factory=list, alias="failedQueries")

    @model_validator(mode="after")
    def _chosen_ids_are_candidates(self) -> DiscoveryTrace:
        ids = {c.id for c in self.candidates}
        for category, dataset_id in self.chosen.model_dump().items():
            if dataset_id is not None and dataset_id not in ids:
                raise ValueError(f"chosen {category} id {dataset_id!r} is not a candidate")
        return self

    def candidate_ids(self) -> list[str]:
        return [c.id for c in self.candidates]

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
