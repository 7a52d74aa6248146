"""
tests/test_sources/test_fallback.py — Unit tests for the bundled fallback reader.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from frbudget_pipeline.errors import ParseFailure
from frbudget_pipeline.sources.fallback import (
    BUNDLED_DIR,
    FallbackSource,
    detect_delimiter,
    parse_csv_text,
)


# ---------------------------------------------------------------------------
# Delimiter detection / CSV parsing
# ---------------------------------------------------------------------------

class TestDetectDelimiter:
    def test_semicolon_only(self):
        assert detect_delimiter("mission;programme;cp") == ";"

    def test_comma_only(self):
        assert detect_delimiter("mission,programme,cp") == ","

    def test_more_semicolon_fields(self):
        assert detect_delimiter("a;b;c,d") == ";"

    def test_more_comma_fields(self):
        assert detect_delimiter("a,b,c;d") == ","


class TestParseCsvText:
    def test_semicolon_with_quoted_delimiter(self):
        text = 'mission;action;cp\nDéfense;"Pilotage; soutien";1 000,50\n'
        rows = parse_csv_text(text)
        assert rows == [{"mission": "Défense", "action": "Pilotage; soutien", "cp": "1 000,50"}]

    def test_doubled_quote_escape(self):
        rows = parse_csv_text('source,montant\n"Taxe ""carbone""",12\n')
        assert rows[0]["source"] == 'Taxe "carbone"'

    def test_bom_and_blank_lines(self):
        text = "\ufeffsource,montant\n\nTVA,10\n   \nIR,20\n"
        rows = parse_csv_text(text)
        assert [r["source"] for r in rows] == ["TVA", "IR"]

    def test_quoted_cell_keeps_empty_lines(self):
        rows = parse_csv_text('\n\na,b\n"line1\n\nline3",2\n\n')
        assert rows == [{"a": "line1\n\nline3", "b": "2"}]

    def test_header_names_are_stripped(self):
        rows = parse_csv_text(" source , montant \nTVA,10\n")
        assert set(rows[0]) == {"source", "montant"}

    def test_codes_stay_strings(self):
        rows = parse_csv_text("code_action,cp\n01,5\n")
        assert rows[0]["code_action"] == "01"

    def test_empty_text_raises(self):
        with pytest.raises(ParseFailure):
            parse_csv_text("\n\n  \n")


# ---------------------------------------------------------------------------
# FallbackSource
# ---------------------------------------------------------------------------

@pytest.fixture
def fallback_dir(tmp_path: Path) -> Path:
    (tmp_path / "state_revenues_2030.csv").write_text("source;montant\nTVA;1 000\n", encoding="utf-8")
    (tmp_path / "state_revenues_2030.json").write_text("[]", encoding="utf-8")
    (tmp_path / "state_budget_tree_2030.json").write_text(
        json.dumps({"name": "État", "level": "etat", "year": 2030, "cp": 1, "ae": 1}),
        encoding="utf-8",
    )
    (tmp_path / "budget_vert_2030.json").write_text("{not json", encoding="utf-8")
    return tmp_path


class TestFallbackSource:
    def test_defaults_to_bundled_dir(self):
        assert FallbackSource().fallback_dir == BUNDLED_DIR

    def test_csv_preferred_over_json(self, fallback_dir: Path):
        path = FallbackSource(fallback_dir).find("revenues", 2030)
        assert path.name == "state_revenues_2030.csv"

    def test_second_stem_is_tried(self, fallback_dir: Path):
        found = FallbackSource(fallback_dir).load("spending", 2030)
        assert found.path.name == "state_budget_tree_2030.json"
        assert found.kind == "json"
        assert found.dataset_id == "fallback_json"
        assert found.data["name"] == "État"

    def test_missing_file(self, fallback_dir: Path):
        assert FallbackSource(fallback_dir).load("performance", 2030) is None

    def test_malformed_json_raises(self, fallback_dir: Path):
        with pytest.raises(ParseFailure):
            FallbackSource(fallback_dir).load("green", 2030)

    @pytest.mark.asyncio
    async def test_run_returns_lower_cased_rows(self, fallback_dir: Path):
        rows = await FallbackSource(fallback_dir).run(track="revenues", year=2030)
        assert rows == [{"source": "TVA", "montant": "1 000"}]

    @pytest.mark.asyncio
    async def test_extract_without_file(self, fallback_dir: Path):
        assert await FallbackSource(fallback_dir).extract(track="performance", year=2030) == []


class TestBundledFiles:
    def test_spending_2025_csv(self):
        found = FallbackSource(BUNDLED_DIR).load("spending", 2025)
        assert found.kind == "csv"
        assert found.dataset_id == "fallback_csv"
        labels = {row["libelle_action"] for row in found.data}
        assert "Pilotage; soutien et communication" in labels

    def test_revenues_2025_csv(self):
        found = FallbackSource(BUNDLED_DIR).load("revenues", 2025)
        assert found.kind == "csv"
        assert len(found.data) == 6

    def test_green_2025_json(self):
        found = FallbackSource(BUNDLED_DIR).load("green", 2025)
        assert found.kind == "json"
        assert isinstance(found.data, list)
