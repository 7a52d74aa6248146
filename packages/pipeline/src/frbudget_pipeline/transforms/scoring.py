"""
transforms/scoring.py — Heuristic scoring of catalog datasets for a fiscal year.

The catalog offers no stable identifier for "the PLF spending table of year N"
(plf25-depenses-2025-selon-destination, plf-2023-depenses-2023-…), so every
search result is scored from independent text signals on its id and title and
the best candidate per category is chosen.

The default weights are empirically tuned and kept as-is for ranking
compatibility; ScoringWeights makes them overridable.

Usage:
    from frbudget_pipeline.transforms.scoring import rank_candidates, select_spending

    ranked = rank_candidates(catalog_entries, year=2025)
    dataset_id, path = select_spending(ranked, 2025)   # path: "strict" | "relaxed" | None
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from frbudget_shared.models.catalog import CatalogCandidate, SelectionPath

_ID_YEAR_TOKEN = re.compile(r"\b(plf|lfi)(\d{2})\b")
_ANY_YEAR = re.compile(r"\b(20\d{2})\b")
_STRUCTURE = re.compile(r"mission|programme|action")

_SPENDING_TERMS = re.compile(r"depens|destination")
_SPENDING_RELAXED_TERMS = re.compile(r"depens|destination|lolf")
_REVENUE_TERMS = re.compile(r"recett|revenu|fiscal|impo")
_GREEN_PLF = re.compile(r"plf.*budget.*vert")
_GREEN_TERMS = re.compile(r"vert|green")


@dataclass(frozen=True)
class ScoringWeights:
    exact_year: int = 12
    short_year: int = 6
    id_year_match: int = 20
    id_year_mismatch: int = -30
    depens: int = 6
    destination: int = 6
    lolf: int = 4
    structure: int = 3
    keyword_hit: int = 1
    other_year: int = -8
    keywords: tuple[str, ...] = (
        "depenses",
        "destination",
        "budget",
        "lolf",
        "mission",
        "programme",
    )


DEFAULT_WEIGHTS = ScoringWeights()


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------


def short_year(year: int) -> str:
    return f"{year % 100:02d}"


def dataset_title(entry: dict[str, Any]) -> str | None:
    """Title of a catalog entry, from the flat or the v2.1 metas layout."""
    title = entry.get("title")
    if title:
        return str(title)
    metas = entry.get("metas") or (entry.get("dataset") or {}).get("metas") or {}
    default = metas.get("default") if isinstance(metas.get("default"), dict) else metas
    title = default.get("title") if isinstance(default, dict) else None
    return str(title) if title else None


def haystack(dataset_id: str, title: str | None) -> str:
    return f"{dataset_id} {title or ''}".lower()


def mentions_year(hay: str, year: int) -> bool:
    """True when hay holds the four-digit year or the two-digit year as a token."""
    return str(year) in hay or _short_year_pattern(year).search(hay) is not None


def _short_year_pattern(year: int) -> re.Pattern[str]:
    return re.compile(rf"(?:^|\b|[-_]){short_year(year)}(?:\b|[-_])")


def word_hits(hay: str, words: Iterable[str]) -> int:
    return sum(len(re.findall(rf"\b{re.escape(w.lower())}\b", hay)) for w in words)


def id_year_score(dataset_id: str, year: int, weights: ScoringWeights = DEFAULT_WEIGHTS) -> int:
    match = _ID_YEAR_TOKEN.search(dataset_id.lower())
    if not match:
        return 0
    return weights.id_year_match if match.group(2) == short_year(year) else weights.id_year_mismatch


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


def score_dataset(
    dataset_id: str,
    title: str | None,
    year: int,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> int:
    """Sum of every independent signal for one catalog entry."""
    hay = haystack(dataset_id, title)
    score = 0

    if str(year) in hay:
        score += weights.exact_year
    if _short_year_pattern(year).search(hay):
        score += weights.short_year
    score += id_year_score(dataset_id, year, weights)

    if "depens" in hay:
        score += weights.depens
    if "destination" in hay:
        score += weights.destination
    if "lolf" in hay:
        score += weights.lolf
    if _STRUCTURE.search(hay):
        score += weights.structure

    score += weights.keyword_hit * word_hits(hay, weights.keywords)

    if any(y != str(year) for y in _ANY_YEAR.findall(hay)):
        score += weights.other_year

    return score


def rank_candidates(
    entries: Iterable[dict[str, Any]],
    year: int,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> list[CatalogCandidate]:
    """
    Score raw catalog entries, keep positive scores, dedup by id and sort.

    Entries are processed in the order given (query order, then result
    order). A duplicate id only replaces the kept candidate on a strictly
    higher score, and the sort is stable, so ties go to the first seen.
    """
    by_id: dict[str, CatalogCandidate] = {}
    for entry in entries:
        dataset_id = entry.get("dataset_id") or ""
        if not dataset_id:
            continue
        title = dataset_title(entry)
        score = score_dataset(dataset_id, title, year, weights)
        if score <= 0:
            continue
        previous = by_id.get(dataset_id)
        if previous is None or score > previous.score:
            by_id[dataset_id] = CatalogCandidate(id=dataset_id, title=title, score=score)
    return sorted(by_id.values(), key=lambda c: c.score, reverse=True)


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------


def _first(
    candidates: list[CatalogCandidate],
    predicate: Callable[[str], bool],
) -> str | None:
    for candidate in candidates:
        if predicate(haystack(candidate.id, candidate.title)):
            return candidate.id
    return None


def select_spending(
    candidates: list[CatalogCandidate],
    year: int,
) -> tuple[str | None, SelectionPath | None]:
    """
    Top spending candidate for the year.

    Strict path: spending terms and the year in id/title. Relaxed path (no
    strict match): spending or LOLF terms regardless of year, which can pick
    a dataset of another year; the path taken is returned for the trace.
    """
    strict = _first(
        candidates,
        lambda hay: bool(_SPENDING_TERMS.search(hay)) and mentions_year(hay, year),
    )
    if strict:
        return strict, "strict"
    relaxed = _first(candidates, lambda hay: bool(_SPENDING_RELAXED_TERMS.search(hay)))
    if relaxed:
        return relaxed, "relaxed"
    return None, None


def select_revenues(candidates: list[CatalogCandidate]) -> str | None:
    return _first(candidates, lambda hay: bool(_REVENUE_TERMS.search(hay)))


def select_green(candidates: list[CatalogCandidate]) -> str | None:
    """Prefer PLF green-budget tables, else anything mentioning vert/green."""
    return _first(candidates, lambda hay: bool(_GREEN_PLF.search(hay))) or _first(
        candidates, lambda hay: bool(_GREEN_TERMS.search(hay))
    )
