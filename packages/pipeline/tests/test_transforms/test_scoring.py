"""
tests/test_transforms/test_scoring.py — Tests for catalog dataset scoring and selection.
"""

from __future__ import annotations

from frbudget_pipeline.transforms.scoring import (
    DEFAULT_WEIGHTS,
    ScoringWeights,
    dataset_title,
    id_year_score,
    mentions_year,
    rank_candidates,
    score_dataset,
    select_green,
    select_revenues,
    select_spending,
    short_year,
)
from frbudget_shared.models.catalog import CatalogCandidate


def _entry(dataset_id: str, title: str | None = None) -> dict:
    return {"dataset_id": dataset_id, "title": title}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def test_short_year():
    assert short_year(2025) == "25"
    assert short_year(2007) == "07"


class TestDatasetTitle:
    def test_flat_title(self):
        assert dataset_title({"title": "Budget vert"}) == "Budget vert"

    def test_metas_default_title(self):
        entry = {"dataset_id": "x", "metas": {"default": {"title": "PLF 2025"}}}
        assert dataset_title(entry) == "PLF 2025"

    def test_nested_dataset_metas_title(self):
        entry = {"dataset": {"metas": {"title": "Recettes"}}}
        assert dataset_title(entry) == "Recettes"

    def test_missing_title(self):
        assert dataset_title({"dataset_id": "x"}) is None


class TestMentionsYear:
    def test_four_digit_year(self):
        assert mentions_year("depenses 2025", 2025)

    def test_two_digit_token(self):
        assert mentions_year("plf-25-depenses", 2025)
        assert mentions_year("lfi_25_destination", 2025)

    def test_two_digit_inside_number_is_not_a_token(self):
        assert not mentions_year("depenses 1250", 2025)


class TestIdYearScore:
    def test_matching_token(self):
        assert id_year_score("plf25-depenses", 2025) == DEFAULT_WEIGHTS.id_year_match

    def test_mismatching_token(self):
        assert id_year_score("lfi24-depenses", 2025) == DEFAULT_WEIGHTS.id_year_mismatch

    def test_no_token(self):
        assert id_year_score("depenses-selon-destination", 2025) == 0


# ---------------------------------------------------------------------------
# score_dataset
# ---------------------------------------------------------------------------

class TestScoreDataset:
    def test_current_year_spending_table(self):
        # 12 (year) + 20 (plf25) + 6 (depens) + 6 (destination) + 2 keyword hits
        score = score_dataset("plf25-depenses-2025-selon-destination", None, 2025)
        assert score == 46

    def test_other_year_is_penalised(self):
        score = score_dataset("plf24-depenses-2024-selon-destination", None, 2025)
        assert score < 0

    def test_mission_programme_structure_bonus(self):
        base = score_dataset("budget-2025", None, 2025)
        with_structure = score_dataset("budget-2025", "Crédits par programme", 2025)
        # +3 for the structure term, +1 whole-word keyword hit
        assert with_structure == base + 4

    def test_other_year_penalty_applies_once(self):
        one = score_dataset("budget-2025", "comparaison 2024", 2025)
        two = score_dataset("budget-2025", "comparaison 2024 2023", 2025)
        assert one == two

    def test_custom_weights(self):
        weights = ScoringWeights(exact_year=100)
        assert score_dataset("budget-2025", None, 2025, weights) == score_dataset(
            "budget-2025", None, 2025
        ) + 88


# ---------------------------------------------------------------------------
# rank_candidates
# ---------------------------------------------------------------------------

class TestRankCandidates:
    def test_drops_non_positive_scores(self):
        ranked = rank_candidates([_entry("annuaire-des-entreprises")], 2025)
        assert ranked == []

    def test_sorted_descending(self, catalog_payload: dict):
        ranked = rank_candidates(catalog_payload["results"], 2025)
        scores = [c.score for c in ranked]
        assert scores == sorted(scores, reverse=True)
        assert ranked[0].id == "plf25-depenses-2025-selon-destination"
        assert ranked[0].title == "PLF 2025 - Dépenses 2025 selon destination"

    def test_dedup_keeps_max_score(self):
        entries = [
            _entry("plf25-budget-vert"),
            _entry("plf25-budget-vert", "PLF 2025 budget vert par mission"),
        ]
        ranked = rank_candidates(entries, 2025)
        assert len(ranked) == 1
        assert ranked[0].title == "PLF 2025 budget vert par mission"

    def test_ties_keep_first_seen(self):
        entries = [_entry("b-budget-2025"), _entry("a-budget-2025")]
        ranked = rank_candidates(entries, 2025)
        assert [c.id for c in ranked] == ["b-budget-2025", "a-budget-2025"]

    def test_deterministic(self, catalog_payload: dict):
        first = rank_candidates(catalog_payload["results"], 2025)
        second = rank_candidates(catalog_payload["results"], 2025)
        assert first == second

    def test_entries_without_id_are_skipped(self):
        assert rank_candidates([{"title": "Dépenses 2025"}], 2025) == []


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------

def _candidates(*ids: str) -> list[CatalogCandidate]:
    return [CatalogCandidate(id=i, score=10) for i in ids]


class TestSelectSpending:
    def test_strict_match(self):
        chosen, path = select_spending(
            _candidates("budget-lolf", "depenses-2025-selon-destination"), 2025
        )
        assert chosen == "depenses-2025-selon-destination"
        assert path == "strict"

    def test_relaxed_match_can_pick_another_year(self):
        chosen, path = select_spending(_candidates("depenses-2024-selon-destination"), 2025)
        assert chosen == "depenses-2024-selon-destination"
        assert path == "relaxed"

    def test_relaxed_includes_lolf(self):
        chosen, path = select_spending(_candidates("nomenclature-lolf"), 2025)
        assert chosen == "nomenclature-lolf"
        assert path == "relaxed"

    def test_no_match(self):
        assert select_spending(_candidates("recettes-2025"), 2025) == (None, None)


def test_select_revenues():
    assert select_revenues(_candidates("depenses-2025", "plf25-recettes-fiscales")) == (
        "plf25-recettes-fiscales"
    )
    assert select_revenues(_candidates("depenses-2025")) is None


class TestSelectGreen:
    def test_prefers_plf_budget_vert(self):
        chosen = select_green(_candidates("green-bonds", "plf25-budget-vert"))
        assert chosen == "plf25-budget-vert"

    def test_falls_back_to_vert_or_green(self):
        assert select_green(_candidates("depenses-2025", "green-bonds")) == "green-bonds"

    def test_no_match(self):
        assert select_green(_candidates("depenses-2025")) is None
