"""
tests/test_transforms/test_flat.py — Tests for revenue, green budget and performance normalizers.
"""

from __future__ import annotations

import pytest

from frbudget_pipeline.transforms.flat import (
    normalize_green,
    normalize_performance,
    normalize_revenues,
)


class TestNormalizeRevenues:
    def test_label_and_amount_aliases(self):
        lines = normalize_revenues(
            [
                {"Source": "TVA nette", "Montant": "98 000,5"},
                {"libelle": "Impôt sur le revenu", "value": 94300},
                {"intitule": "IS", "cp": "62.000,00"},
            ]
        )
        assert [(l.source, l.montant) for l in lines] == [
            ("TVA nette", pytest.approx(98000.5)),
            ("Impôt sur le revenu", 94300.0),
            ("IS", pytest.approx(62000.0)),
        ]

    def test_drops_rows_without_label_or_amount(self):
        lines = normalize_revenues(
            [
                {"source": "", "montant": "10"},
                {"source": "Zéro", "montant": "0"},
                {"source": "Illisible", "montant": "n/a"},
                {"montant": "5"},
            ]
        )
        assert lines == []

    def test_first_present_amount_wins(self):
        lines = normalize_revenues([{"source": "TICPE", "montant": "17", "cp": "99"}])
        assert lines[0].montant == 17.0


class TestNormalizeGreen:
    def test_plf_record(self):
        lines = normalize_green(
            [
                {
                    "Mission": "Écologie",
                    "Numero_Programme": "203",
                    "Intitule_Programme": "Infrastructures",
                    "Cotation_Globale": "Favorable",
                    "Attenuation_Climat": "1",
                    "Biodiversite": 0,
                    "CP": "2 890,5",
                }
            ]
        )
        line = lines[0]
        assert line.mission == "Écologie"
        assert line.programme_code == "203"
        assert line.programme == "Infrastructures"
        assert line.cotation == "Favorable"
        assert line.attenuation_climat == 1.0
        assert line.biodiversite == 0
        assert line.cp == pytest.approx(2890.5)
        assert line.eau is None

    def test_plf_year_cp_column(self):
        lines = normalize_green(
            [{"mission": "Agriculture", "plf_2025_cp_total": "412"}], year=2025
        )
        assert lines[0].cp == 412.0

    def test_year_cp_column_ignored_without_year(self):
        lines = normalize_green([{"mission": "Agriculture", "plf_2025_cp_total": "412"}])
        assert lines[0].cp is None

    def test_placeholder_schema(self):
        lines = normalize_green([{"domaine": "Eau", "objectif": "Qualité", "montant": "12"}])
        assert lines[0].domaine == "Eau"
        assert lines[0].montant == 12.0

    def test_empty_records_dropped(self):
        assert normalize_green([{}, {"unrelated": "x"}]) == []

    def test_json_dict_omits_absent_fields(self):
        line = normalize_green([{"mission": "Écologie", "cp": 1}])[0]
        assert line.to_json_dict() == {"mission": "Écologie", "cp": 1.0}


class TestNormalizePerformance:
    def test_indicator_values(self):
        lines = normalize_performance(
            [
                {
                    "Code_Mission": "EB",
                    "Mission": "Enseignement scolaire",
                    "Code_Programme": "140",
                    "Libelle_Objectif": "Conduire tous les élèves à la maîtrise des fondamentaux",
                    "Libelle_Indicateur": "Proportion d'élèves maîtrisant les compétences",
                    "Unite": "%",
                    "Realisation_2023": "84,2",
                    "Cible_2025": "88",
                    "Prevision_2024": "nd",
                    "Commentaire": "ignored",
                }
            ]
        )
        line = lines[0]
        assert line.mission_code == "EB"
        assert line.programme_code == "140"
        assert line.indicateur.startswith("Proportion")
        assert line.unite == "%"
        assert line.values == {
            "realisation_2023": pytest.approx(84.2),
            "cible_2025": 88.0,
            "prevision_2024": "nd",
        }

    def test_rows_without_indicator_or_mission_dropped(self):
        assert normalize_performance([{"cible_2025": "1"}]) == []
