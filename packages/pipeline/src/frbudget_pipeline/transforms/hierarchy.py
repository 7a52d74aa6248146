"""
transforms/hierarchy.py — Folds canonical rows into the aggregated LOLF tree.

Rows are inserted one at a time (find-or-create Mission → Programme → Action
→ optional Sous-action) and their amounts attributed to the deepest node. A
single bottom-up pass then sums amounts into every ancestor and sorts
siblings by descending CP.

Usage:
    from frbudget_pipeline.transforms.hierarchy import build_tree

    tree = build_tree(rows, year=2025)
    tree.cp                      # total payment credits
    tree.children[0].name        # largest mission
"""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from frbudget_shared.constants import ROOT_NAME
from frbudget_shared.models.budget import (
    BudgetLevel,
    BudgetTree,
    CanonicalRow,
    HierarchyNode,
    TreeSources,
)

log = structlog.get_logger(__name__)

# Path from the root: one (code-or-name, level) pair per edge
NodeKey = tuple[tuple[str | None, BudgetLevel], ...]


class HierarchyBuilder:
    """
    Incremental tree builder with keyed child lookup.

    A child's identity within its parent is (code or name, level); the full
    path key is indexed so merges never scan sibling lists.
    """

    def __init__(self, year: int) -> None:
        self.year = year
        self.root = BudgetTree(name=ROOT_NAME, level=BudgetLevel.ETAT, year=year)
        self._index: dict[NodeKey, HierarchyNode] = {(): self.root}
        self.rows_added = 0
        self.rows_dropped = 0
        self._built = False

    def _ensure_child(
        self,
        parent_key: NodeKey,
        code: str | None,
        name: str,
        level: BudgetLevel,
    ) -> tuple[NodeKey, HierarchyNode]:
        key = (*parent_key, (code or name, level))
        node = self._index.get(key)
        if node is None:
            node = HierarchyNode(code=code, name=name, level=level)
            self._index[parent_key].children.append(node)
            self._index[key] = node
        return key, node

    def add(self, row: CanonicalRow) -> bool:
        """Insert or merge one row. Returns False when the row cannot be placed."""
        if self._built:
            raise RuntimeError("HierarchyBuilder.build() was already called")
        if not row.is_placeable:
            self.rows_dropped += 1
            return False

        key, _ = self._ensure_child(
            (),
            row.mission_code,
            row.mission or f"Mission {row.mission_code or '?'}",
            BudgetLevel.MISSION,
        )
        key, _ = self._ensure_child(
            key,
            row.programme_code,
            row.programme or f"Programme {row.programme_code or '?'}",
            BudgetLevel.PROGRAMME,
        )
        key, leaf = self._ensure_child(
            key,
            row.action_code,
            row.action or f"Action {row.action_code or '?'}",
            BudgetLevel.ACTION,
        )
        if row.has_sous_action:
            key, leaf = self._ensure_child(
                key,
                row.sous_action_code,
                row.sous_action or f"Sous-action {row.sous_action_code or '?'}",
                BudgetLevel.SOUS_ACTION,
            )

        leaf.ae += row.ae
        leaf.cp += row.cp
        self.rows_added += 1
        return True

    def add_many(self, rows: Iterable[CanonicalRow]) -> int:
        return sum(1 for row in rows if self.add(row))

    def build(
        self,
        *,
        dataset_id: str | None = None,
        license: str | None = None,
    ) -> BudgetTree:
        """Aggregate amounts bottom-up, sort siblings by CP desc, and return the root."""
        if not self._built:
            _aggregate(self.root)
            self._built = True
            log.debug(
                "tree_built",
                year=self.year,
                rows_added=self.rows_added,
                rows_dropped=self.rows_dropped,
                missions=len(self.root.children),
                cp=self.root.cp,
            )
        if dataset_id is not None:
            self.root.sources = TreeSources(dataset_id=dataset_id, license=license or "")
        return self.root


def _aggregate(node: HierarchyNode) -> tuple[float, float]:
    """Own amount plus the aggregated amounts of every child; sorts children in place."""
    ae, cp = node.ae, node.cp
    for child in node.children:
        child_ae, child_cp = _aggregate(child)
        ae += child_ae
        cp += child_cp
    node.ae, node.cp = ae, cp
    node.children.sort(key=lambda c: c.cp, reverse=True)
    return ae, cp


def build_tree(
    rows: Iterable[CanonicalRow],
    year: int,
    *,
    dataset_id: str | None = None,
    license: str | None = None,
) -> BudgetTree:
    builder = HierarchyBuilder(year)
    builder.add_many(rows)
    return builder.build(dataset_id=dataset_id, license=license)
