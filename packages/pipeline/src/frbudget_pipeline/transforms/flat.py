"""
transforms/flat.py — Normalizers for the flat artifacts.

  normalize_revenues()    → list[RevenueLine]      (state_revenues_{year}.json)
  normalize_green()       → list[GreenBudgetLine]  (budget_vert_{year}.json)
  normalize_performance() → list[PerformanceLine]  (state_performance_{year}.json)

Each takes raw field dicts (any key casing) and drops records that carry
nothing usable, so an empty result means the track has to fall back.
"""

from __future__ import annotations

import re
from typing import Any

import structlog

from frbudget_pipeline.transforms.aliases import lower_keys
from frbudget_pipeline.transforms.numbers import parse_locale_number, to_amount
from frbudget_shared.models.flat import GreenBudgetLine, PerformanceLine, RevenueLine

log = structlog.get_logger(__name__)

REVENUE_LABELS: tuple[str, ...] = ("source", "titre", "intitule", "label", "libelle")
REVENUE_AMOUNTS: tuple[str, ...] = ("montant", "value", "cp", "amount")

GREEN_TEXT: dict[str, tuple[str, ...]] = {
    "mission": ("mission", "intitule_mission", "libelle_mission"),
    "programme_code": ("numero_programme", "programme_code", "code_programme"),
    "programme": ("programme", "intitule_programme", "libelle_programme"),
    "action": ("action_si_credit_budgetaire", "action", "intitule_action"),
    "cotation": ("cotation_globale", "cotation"),
    "categorie": ("categorie_generale", "categorie"),
    "domaine": ("domaine",),
    "objectif": ("objectif",),
    "note": ("note",),
}
GREEN_AXES: tuple[str, ...] = (
    "attenuation_climat",
    "adaptation_climat",
    "eau",
    "pollution",
    "biodiversite",
)

PERFORMANCE_TEXT: dict[str, tuple[str, ...]] = {
    "mission_code": ("code_mission", "mission_code"),
    "mission": ("mission", "intitule_mission", "libelle_mission"),
    "programme_code": ("code_programme", "programme_code", "numero_programme"),
    "programme": ("programme", "intitule_programme", "libelle_programme"),
    "objectif": ("libelle_objectif", "objectif"),
    "indicateur": ("libelle_indicateur", "indicateur", "libelle_sous_indicateur"),
    "unite": ("unite", "unite_de_mesure"),
}
_PERFORMANCE_VALUE = re.compile(r"^(exec|execution|cible|prev|prevision|realisation|lfi|plf|atteinte)(_|$)")


def _first_present(record: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = record.get(key)
        if value is not None:
            return value
    return None


def _text(record: dict[str, Any], keys: tuple[str, ...]) -> str | None:
    value = _first_present(record, keys)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


# ---------------------------------------------------------------------------
# Revenues
# ---------------------------------------------------------------------------


def normalize_revenues(records: list[dict[str, Any]]) -> list[RevenueLine]:
    """Keep records with a label and a non-zero amount."""
    lines: list[RevenueLine] = []
    for raw in records:
        r = lower_keys(raw)
        label = _text(r, REVENUE_LABELS)
        amount = to_amount(_first_present(r, REVENUE_AMOUNTS))
        if label and amount:
            lines.append(RevenueLine(source=label, montant=float(amount)))
    log.debug("revenues_normalized", raw=len(records), kept=len(lines))
    return lines


# ---------------------------------------------------------------------------
# Green budget (budget vert)
# ---------------------------------------------------------------------------


def _green_cp(r: dict[str, Any], year: int | None) -> float | None:
    """CP of a green-budget line: explicit cp, else the PLF column of the year."""
    value = parse_locale_number(r.get("cp"))
    if value is not None:
        return float(value)
    if year is not None:
        prefix = f"plf_{year}_cp"
        for key, raw in r.items():
            if key.startswith(prefix):
                value = parse_locale_number(raw)
                if value is not None:
                    return float(value)
    return None


def normalize_green(records: list[dict[str, Any]], year: int | None = None) -> list[GreenBudgetLine]:
    lines: list[GreenBudgetLine] = []
    for raw in records:
        r = lower_keys(raw)
        fields: dict[str, Any] = {name: _text(r, keys) for name, keys in GREEN_TEXT.items()}
        for axis in GREEN_AXES:
            fields[axis] = parse_locale_number(r.get(axis))
        fields["cp"] = _green_cp(r, year)
        fields["montant"] = parse_locale_number(r.get("montant"))
        line = GreenBudgetLine(**fields)
        if not line.is_empty():
            lines.append(line)
    log.debug("green_normalized", raw=len(records), kept=len(lines))
    return lines


# ---------------------------------------------------------------------------
# Performance indicators (PAP / RAP)
# ---------------------------------------------------------------------------


def normalize_performance(records: list[dict[str, Any]]) -> list[PerformanceLine]:
    lines: list[PerformanceLine] = []
    for raw in records:
        r = lower_keys(raw)
        fields: dict[str, Any] = {name: _text(r, keys) for name, keys in PERFORMANCE_TEXT.items()}
        if not (fields["indicateur"] or fields["mission"] or fields["mission_code"]):
            continue
        values: dict[str, float | str] = {}
        for key, value in r.items():
            if value is None or not _PERFORMANCE_VALUE.match(key):
                continue
            number = parse_locale_number(value)
            values[key] = float(number) if number is not None else str(value)
        lines.append(PerformanceLine(**fields, values=values))
    log.debug("performance_normalized", raw=len(records), kept=len(lines))
    return lines
