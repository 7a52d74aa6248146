"""
pipelines/budget.py — State budget pipeline: discovery → tracks → artifacts.

Orchestrates:
  1. Discovery → DiscoveryTrace (empty trace when every catalog query failed)
  2. Tracks, concurrently:
       spending    → probe → fetch → AliasResolver → HierarchyBuilder → BudgetTree
       revenues    → probe → fetch → normalize_revenues
       green       → probe → fetch → normalize_green
       performance → probe → fetch → normalize_performance
     A track that fails or yields no usable rows falls back to its bundled
     file; when that is missing or unreadable the artifact is omitted.
  3. Write → catalog_{year}.json, then each track artifact in TRACKS order

Only OSError raised while writing escapes run(); every other failure is
contained in its track.

Usage:
    from frbudget_pipeline.pipelines.budget import run
    result = await run(2025, out_dir="public/data")
    print(result.outputs, result.tracks)
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from frbudget_pipeline.errors import DiscoveryFailure, NormalizationEmpty, ParseFailure, PipelineError
from frbudget_pipeline.loaders.json_writer import ArtifactWriter
from frbudget_pipeline.pipelines.discovery import build_queries, discover_datasets
from frbudget_pipeline.sources.base import Record
from frbudget_pipeline.sources.fallback import FallbackSource
from frbudget_pipeline.sources.opendatasoft import OpendatasoftSource, build_year_where
from frbudget_pipeline.transforms.aliases import AliasResolver, get_alias_table
from frbudget_pipeline.transforms.flat import (
    normalize_green,
    normalize_performance,
    normalize_revenues,
)
from frbudget_pipeline.transforms.hierarchy import build_tree
from frbudget_pipeline.transforms.scoring import DEFAULT_WEIGHTS, ScoringWeights
from frbudget_pipeline.utils.cache import RecordCache
from frbudget_pipeline.utils.logging import get_logger
from frbudget_shared.config import settings
from frbudget_shared.constants import CATALOG_ARTIFACT, TRACK_ARTIFACTS, TRACKS, Track, TrackStatus
from frbudget_shared.models.budget import BudgetTree, TreeSources
from frbudget_shared.models.catalog import DiscoveryTrace

log = get_logger(__name__)


@dataclass
class PipelineResult:
    """Summary of one pipeline run."""

    year: int
    trace: DiscoveryTrace
    outputs: list[str] = field(default_factory=list)
    tracks: dict[Track, TrackStatus] = field(default_factory=dict)
    duration_ms: int = 0

    @property
    def status(self) -> str:
        statuses = set(self.tracks.values())
        if statuses <= {"live"}:
            return "success"
        if "live" in statuses or "fallback" in statuses:
            return "partial"
        return "failure"


@dataclass
class TrackOutcome:
    track: Track
    status: TrackStatus
    # JSON-ready artifact payload; None when omitted
    payload: Any = None
    dataset_id: str | None = None


@dataclass
class _RunContext:
    year: int
    trace: DiscoveryTrace
    discovered: bool
    source: OpendatasoftSource
    fallback: FallbackSource
    cache: RecordCache
    resolver: AliasResolver
    license: str


# ---------------------------------------------------------------------------
# Shared track steps
# ---------------------------------------------------------------------------


async def _fetch_live(ctx: _RunContext, dataset_id: str) -> list[Record]:
    """Probe the schema, then fetch (through the run cache) with the year filter."""
    fields = await ctx.source.probe_fields(dataset_id)
    where = build_year_where(ctx.year, fields)

    async def fetch() -> list[Record]:
        return await ctx.source.run(dataset_id=dataset_id, where=where)

    return await ctx.cache.get_or_fetch(dataset_id, where, fetch)


def _fallback_rows(ctx: _RunContext, track: Track) -> list[Record] | None:
    """Rows of a flat fallback file, or None when the year has none."""
    found = ctx.fallback.load(track, ctx.year)
    if found is None:
        return None
    if not isinstance(found.data, list):
        raise ParseFailure(str(found.path), "expected a list of rows")
    return [r for r in found.data if isinstance(r, dict)]


def _performance_dataset(ctx: _RunContext) -> str | None:
    if not ctx.discovered:
        return None
    for candidate in ctx.trace.candidates:
        if "performance" in candidate.id.lower():
            return candidate.id
    return settings.performance_dataset_id or None


async def _run_track(
    ctx: _RunContext,
    track: Track,
    dataset_id: str | None,
    live: Callable[[str], Awaitable[Any]],
    fallback: Callable[[], Any],
) -> TrackOutcome:
    """Live attempt, then bundled fallback, then omission."""
    tlog = log.bind(pipeline="budget", track=track, year=ctx.year)

    if dataset_id is not None:
        try:
            payload = await live(dataset_id)
            tlog.info("track_live", dataset_id=dataset_id)
            return TrackOutcome(track, "live", payload, dataset_id)
        except Exception as exc:
            tlog.warning("track_fallback", dataset_id=dataset_id, error=str(exc), exc_info=True)
    else:
        tlog.warning("track_fallback", reason="no dataset selected")

    try:
        payload = fallback()
    except PipelineError as exc:
        tlog.error("track_omitted", error=str(exc), exc_info=True)
        return TrackOutcome(track, "omitted")
    if payload is None:
        tlog.warning("track_omitted", reason="no fallback file")
        return TrackOutcome(track, "omitted")
    tlog.info("track_from_fallback")
    return TrackOutcome(track, "fallback", payload)


# ---------------------------------------------------------------------------
# Tracks
# ---------------------------------------------------------------------------


def _tree_from_rows(ctx: _RunContext, records: list[Record], dataset_id: str) -> BudgetTree:
    rows = [r for r in ctx.resolver.resolve_many(records) if r.is_placeable]
    if not rows:
        raise NormalizationEmpty("spending", len(records))
    return build_tree(rows, ctx.year, dataset_id=dataset_id, license=ctx.license)


async def _spending_track(ctx: _RunContext) -> TrackOutcome:
    async def live(dataset_id: str) -> dict[str, Any]:
        records = await _fetch_live(ctx, dataset_id)
        return _tree_from_rows(ctx, records, dataset_id).to_json_dict()

    def fallback() -> dict[str, Any] | None:
        found = ctx.fallback.load("spending", ctx.year)
        if found is None:
            return None
        if isinstance(found.data, dict):
            # Pre-built tree
            try:
                tree = BudgetTree.from_json_dict({**found.data, "year": ctx.year})
            except ValidationError as exc:
                raise ParseFailure(str(found.path), str(exc)) from exc
            tree.sources = TreeSources(dataset_id=found.dataset_id, license=ctx.license)
            return tree.to_json_dict()
        if not isinstance(found.data, list):
            raise ParseFailure(str(found.path), "expected a tree object or a list of rows")
        records = [r for r in found.data if isinstance(r, dict)]
        return _tree_from_rows(ctx, records, found.dataset_id).to_json_dict()

    return await _run_track(ctx, "spending", ctx.trace.chosen.spending, live, fallback)


async def _revenues_track(ctx: _RunContext) -> TrackOutcome:
    def lines(records: list[Record]) -> list[dict[str, Any]]:
        result = normalize_revenues(records)
        if not result:
            raise NormalizationEmpty("revenues", len(records))
        return [line.to_json_dict() for line in result]

    async def live(dataset_id: str) -> list[dict[str, Any]]:
        return lines(await _fetch_live(ctx, dataset_id))

    def fallback() -> list[dict[str, Any]] | None:
        rows = _fallback_rows(ctx, "revenues")
        return lines(rows) if rows is not None else None

    return await _run_track(ctx, "revenues", ctx.trace.chosen.revenues, live, fallback)


async def _green_track(ctx: _RunContext) -> TrackOutcome:
    def lines(records: list[Record]) -> list[dict[str, Any]]:
        result = normalize_green(records, ctx.year)
        if not result:
            raise NormalizationEmpty("green", len(records))
        return [line.to_json_dict() for line in result]

    async def live(dataset_id: str) -> list[dict[str, Any]]:
        return lines(await _fetch_live(ctx, dataset_id))

    def fallback() -> list[dict[str, Any]] | None:
        rows = _fallback_rows(ctx, "green")
        return lines(rows) if rows is not None else None

    return await _run_track(ctx, "green", ctx.trace.chosen.green, live, fallback)


async def _performance_track(ctx: _RunContext) -> TrackOutcome:
    def lines(records: list[Record]) -> list[dict[str, Any]]:
        result = normalize_performance(records)
        if not result:
            raise NormalizationEmpty("performance", len(records))
        return [line.to_json_dict() for line in result]

    async def live(dataset_id: str) -> list[dict[str, Any]]:
        return lines(await _fetch_live(ctx, dataset_id))

    def fallback() -> list[dict[str, Any]] | None:
        rows = _fallback_rows(ctx, "performance")
        return lines(rows) if rows is not None else None

    return await _run_track(ctx, "performance", _performance_dataset(ctx), live, fallback)


_TRACK_RUNNERS: dict[Track, Callable[[_RunContext], Awaitable[TrackOutcome]]] = {
    "spending": _spending_track,
    "revenues": _revenues_track,
    "green": _green_track,
    "performance": _performance_track,
}


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


async def run(
    year: int,
    *,
    out_dir: str | Path | None = None,
    domain: str | None = None,
    pause_ms: int | None = None,
    source: OpendatasoftSource | None = None,
    fallback: FallbackSource | None = None,
    alias_table: str | None = None,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> PipelineResult:
    """
    Run the state budget pipeline for one fiscal year.

    Args:
        year:        Fiscal year, e.g. 2025.
        out_dir:     Artifact directory (default settings.output_dir).
        domain:      Opendatasoft portal root (default settings.catalog_domain).
        pause_ms:    Pause between record pages (default settings.page_pause_ms).
        source:      Pre-built catalog client; overrides domain and pause_ms.
        fallback:    Pre-built fallback reader (default: bundled files).
        alias_table: Alias table version for spending rows (default settings.alias_table).
        weights:     Catalog scoring weights.

    Returns:
        PipelineResult with the written file names and the status of each track.

    Raises:
        OSError: an artifact could not be written.
    """
    loop = asyncio.get_running_loop()
    t0 = loop.time()

    source = source or OpendatasoftSource(domain, pause_ms=pause_ms)
    fallback = fallback or FallbackSource()
    writer = ArtifactWriter(out_dir or settings.output_dir)
    resolver = AliasResolver(get_alias_table(alias_table or settings.alias_table))
    run_log = log.bind(pipeline="budget", year=year, domain=source.domain)
    run_log.info("budget_pipeline_start", out_dir=str(writer.out_dir))

    discovered = True
    try:
        trace = await discover_datasets(year, source, weights=weights)
    except DiscoveryFailure as exc:
        run_log.warning("discovery_failed", error=str(exc))
        discovered = False
        trace = DiscoveryTrace(
            year=year,
            domain=source.domain,
            searched_queries=build_queries(year),
            failed_queries=exc.failed_queries,
        )

    result = PipelineResult(year=year, trace=trace)
    result.outputs.append(writer.write(CATALOG_ARTIFACT, year, trace).filename)

    ctx = _RunContext(
        year=year,
        trace=trace,
        discovered=discovered,
        source=source,
        fallback=fallback,
        cache=RecordCache(),
        resolver=resolver,
        license=settings.data_license,
    )
    outcomes = await asyncio.gather(
        *(_TRACK_RUNNERS[track](ctx) for track in TRACKS),
        return_exceptions=True,
    )

    for track, outcome in zip(TRACKS, outcomes):
        if isinstance(outcome, BaseException):
            run_log.error("track_crashed", track=track, error=repr(outcome))
            result.tracks[track] = "omitted"
            continue
        result.tracks[track] = outcome.status
        if outcome.payload is not None:
            written = writer.write(TRACK_ARTIFACTS[track], year, outcome.payload)
            result.outputs.append(written.filename)

    result.duration_ms = int((loop.time() - t0) * 1000)
    run_log.info(
        "budget_pipeline_complete",
        status=result.status,
        outputs=result.outputs,
        tracks=result.tracks,
        cache_hits=ctx.cache.hits,
        duration_ms=result.duration_ms,
    )
    ctx.cache.clear()
    return result
