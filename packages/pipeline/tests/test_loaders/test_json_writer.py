"""
tests/test_loaders/test_json_writer.py — Tests for the artifact writer.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from frbudget_pipeline.loaders.json_writer import ArtifactWriter, to_jsonable
from frbudget_shared.models.catalog import DiscoveryTrace
from frbudget_shared.models.flat import RevenueLine


def test_writes_indented_utf8_json(tmp_path: Path):
    writer = ArtifactWriter(tmp_path / "out" / "data")
    result = writer.write("state_revenues", 2025, [{"source": "Impôt sur le revenu", "montant": 1.5}])

    assert result.filename == "state_revenues_2025.json"
    assert result.records == 1
    text = (tmp_path / "out" / "data" / "state_revenues_2025.json").read_text(encoding="utf-8")
    assert "Impôt sur le revenu" in text
    assert text.startswith("[\n  {")
    assert json.loads(text) == [{"source": "Impôt sur le revenu", "montant": 1.5}]
    assert result.bytes_written == len(text.encode("utf-8"))


def test_models_are_dumped_by_alias(tmp_path: Path):
    trace = DiscoveryTrace(year=2025, domain="https://data.example.test", failed_queries=["q"])
    ArtifactWriter(tmp_path).write("catalog", 2025, trace)

    data = json.loads((tmp_path / "catalog_2025.json").read_text(encoding="utf-8"))
    assert data["failedQueries"] == ["q"]
    assert data["spendingSelection"] is None
    assert data["chosen"] == {"spending": None, "revenues": None, "green": None}


def test_overwrites_previous_file(tmp_path: Path):
    writer = ArtifactWriter(tmp_path)
    writer.write("budget_vert", 2025, [1, 2, 3])
    writer.write("budget_vert", 2025, [])
    assert json.loads((tmp_path / "budget_vert_2025.json").read_text()) == []


def test_to_jsonable_handles_model_lists():
    assert to_jsonable([RevenueLine(source="TVA", montant=1)]) == [{"source": "TVA", "montant": 1.0}]


def test_write_failure_propagates(tmp_path: Path):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x")
    with pytest.raises(OSError):
        ArtifactWriter(blocker / "sub").write("catalog", 2025, {})
