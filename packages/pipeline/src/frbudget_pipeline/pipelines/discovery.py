"""
pipelines/discovery.py — Finds the year's datasets in the Opendatasoft catalog.

Orchestrates:
  1. Catalog search → one request per fixed query, in order
  2. Score → rank_candidates() over every result (query order, then result order)
  3. Select → spending (strict / relaxed), revenues, green
  4. Trace → DiscoveryTrace, written by the orchestrator as catalog_{year}.json

A query that fails is logged and recorded in the trace; discovery only fails
as a whole when every query is unreachable.

Usage:
    from frbudget_pipeline.pipelines.discovery import discover_datasets
    trace = await discover_datasets(2025)
    print(trace.chosen.spending, trace.spending_selection)
"""

from __future__ import annotations

from typing import Any

from frbudget_pipeline.errors import DiscoveryFailure, RetrievalFailure
from frbudget_pipeline.sources.opendatasoft import OpendatasoftSource
from frbudget_pipeline.transforms.scoring import (
    DEFAULT_WEIGHTS,
    ScoringWeights,
    rank_candidates,
    select_green,
    select_revenues,
    select_spending,
    short_year,
)
from frbudget_pipeline.utils.logging import get_logger
from frbudget_shared.models.catalog import ChosenDatasets, DiscoveryTrace

log = get_logger(__name__)

QUERY_TEMPLATES: tuple[str, ...] = (
    "{year} depenses destination",
    "{year} budget lolf",
    "{year} recettes",
    "{year} budget vert",
    "plf{yy} budget vert",
    "plf-{year}-budget-vert",
    "performance-de-la-depense",
)


def build_queries(year: int) -> list[str]:
    return [q.format(year=year, yy=short_year(year)) for q in QUERY_TEMPLATES]


async def discover_datasets(
    year: int,
    source: OpendatasoftSource | None = None,
    *,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> DiscoveryTrace:
    """
    Search, score and select the datasets of one fiscal year.

    Args:
        year:    Fiscal year, e.g. 2025.
        source:  Catalog client (default: OpendatasoftSource on settings.catalog_domain).
        weights: Scoring weights.

    Returns:
        DiscoveryTrace with every query, the ranked candidates and the chosen ids.

    Raises:
        DiscoveryFailure: every catalog query failed.
    """
    source = source or OpendatasoftSource()
    queries = build_queries(year)
    run_log = log.bind(pipeline="discovery", year=year, domain=source.domain)

    entries: list[dict[str, Any]] = []
    failed: list[str] = []
    for query in queries:
        try:
            results = await source.search_catalog(query)
        except RetrievalFailure as exc:
            run_log.warning("catalog_query_failed", query=query, error=str(exc))
            failed.append(query)
            continue
        run_log.debug("catalog_query_done", query=query, results=len(results))
        entries.extend(results)

    if len(failed) == len(queries):
        raise DiscoveryFailure(year, source.domain, failed)

    candidates = rank_candidates(entries, year, weights)
    spending, selection = select_spending(candidates, year)
    chosen = ChosenDatasets(
        spending=spending,
        revenues=select_revenues(candidates),
        green=select_green(candidates),
    )

    trace = DiscoveryTrace(
        year=year,
        domain=source.domain,
        searched_queries=queries,
        candidates=candidates,
        chosen=chosen,
        spending_selection=selection,
        failed_queries=failed,
    )
    run_log.info(
        "discovery_complete",
        candidates=len(candidates),
        spending=chosen.spending,
        spending_selection=selection,
        revenues=chosen.revenues,
        green=chosen.green,
        failed_queries=len(failed),
    )
    if selection == "relaxed":
        run_log.warning("spending_selection_relaxed", dataset_id=spending)
    return trace
