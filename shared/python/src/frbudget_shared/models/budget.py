"""
models/budget.py — Pydantic models for LOLF spending rows and the aggregated tree.

CanonicalRow is the normalized shape of one raw spending record. HierarchyNode
is one node of the État → Mission → Programme → Action → Sous-action tree;
BudgetTree is the root node annotated with the year and its source.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class BudgetLevel(str, Enum):
    ETAT = "etat"
    MISSION = "mission"
    PROGRAMME = "programme"
    ACTION = "action"
    SOUS_ACTION = "sous_action"


class CanonicalRow(BaseModel):
    """
    One spending record after alias resolution.

    Unmatched label/code fields stay None. ae (autorisations d'engagement)
    and cp (crédits de paiement) are always numbers.
    """

    mission_code: str | None = None
    mission: str | None = None
    programme_code: str | None = None
    programme: str | None = None
    action_code: str | None = None
    action: str | None = None
    sous_action_code: str | None = None
    sous_action: str | None = None
    ae: float = 0.0
    cp: float = 0.0

    @property
    def has_mission_info(self) -> bool:
        return bool(self.mission_code or self.mission)

    @property
    def has_programme_info(self) -> bool:
        return bool(self.programme_code or self.programme)

    @property
    def has_sous_action(self) -> bool:
        return bool(self.sous_action_code or self.sous_action)

    @property
    def is_placeable(self) -> bool:
        """False when the row carries neither mission nor programme information."""
        return self.has_mission_info or self.has_programme_info


class HierarchyNode(BaseModel):
    """A node of the LOLF tree. Amounts include all descendants once built."""

    code: str | None = None
    name: str
    level: BudgetLevel
    ae: float = 0.0
    cp: float = 0.0
    children: list[HierarchyNode] = Field(default_factory=list)

    def iter_nodes(self):
        """Depth-first, pre-order iteration over this node and its descendants."""
        yield self
        for child in self.children:
            yield from child.iter_nodes()


class TreeSources(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    dataset_id: str = Field(alias="datasetId")
    license: str


class BudgetTree(HierarchyNode):
    """Root (level etat) of the aggregated tree for one fiscal year."""

    year: int
    sources: TreeSources | None = None

    @classmethod
    def from_json_dict(cls, data: dict[str, Any]) -> BudgetTree:
        return cls.model_validate(data)

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
