"""
frbudget_pipeline — discovery, retrieval and aggregation of the French state budget.

Architecture:
  sources/     — Opendatasoft catalog/records client, bundled fallback files
  transforms/  — locale numbers, field aliases, catalog scoring, LOLF tree, flat rows
  loaders/     — JSON artifact writer ({artifact}_{year}.json)
  pipelines/   — dataset discovery and the per-year orchestrator
  utils/       — structlog configuration, per-run record cache

Quick start:
    from frbudget_pipeline.pipelines.budget import run
    import asyncio
    result = asyncio.run(run(2025, out_dir="public/data"))
    print(result.outputs)

CLI:
    frbudget run --year 2025 --out public/data
    frbudget discover --year 2025

Shared code from frbudget_shared:
    from frbudget_shared.config import settings
    from frbudget_shared.models.budget import CanonicalRow, BudgetTree
    from frbudget_shared.models.catalog import DiscoveryTrace
"""

__version__ = "0.1.0"
