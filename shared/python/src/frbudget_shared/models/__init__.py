"""
frbudget_shared.models — Pydantic models for every pipeline artifact.

All artifact models provide .to_json_dict() for serialisation.
"""

from frbudget_shared.models.budget import (
    BudgetLevel,
    BudgetTree,
    CanonicalRow,
    HierarchyNode,
    TreeSources,
)
from frbudget_shared.models.catalog import CatalogCandidate, ChosenDatasets, DiscoveryTrace
from frbudget_shared.models.flat import GreenBudgetLine, PerformanceLine, RevenueLine

__all__ = [
    "BudgetLevel",
    "BudgetTree",
    "CanonicalRow",
    "HierarchyNode",
    "TreeSources",
    "CatalogCandidate",
    "ChosenDatasets",
    "DiscoveryTrace",
    "RevenueLine",
    "GreenBudgetLine",
    "PerformanceLine",
]
