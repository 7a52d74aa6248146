"""
transforms/aliases.py — Field alias resolution for LOLF spending records.

Providers rename columns every year (CODE_MISSION, code_de_la_mission,
mission_numero …) and move amounts between columns (cp, cp_plf,
cp_prev_fdc_adp …). Alias tables are plain data: one ordered tuple of
accepted source names per canonical field, most specific first. Supporting a
new schema generation means adding a table, not a function.

Usage:
    from frbudget_pipeline.transforms.aliases import AliasResolver, EXTENDED_ALIASES

    resolver = AliasResolver(EXTENDED_ALIASES)
    row = resolver.resolve({"CODE_MISSION": "150", "credits_de_paiement": "1 000,00"})
    row.mission_code, row.cp   # ("150", 1000.0)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import structlog

from frbudget_pipeline.transforms.numbers import parse_locale_number, to_amount
from frbudget_shared.models.budget import CanonicalRow

log = structlog.get_logger(__name__)

LABEL_FIELDS: tuple[str, ...] = (
    "mission_code",
    "mission",
    "programme_code",
    "programme",
    "action_code",
    "action",
    "sous_action_code",
    "sous_action",
)

# label field → (code field, placeholder prefix)
_PLACEHOLDERS: dict[str, tuple[str, str]] = {
    "mission": ("mission_code", "Mission"),
    "programme": ("programme_code", "Programme"),
    "action": ("action_code", "Action"),
    "sous_action": ("sous_action_code", "Sous-action"),
}


@dataclass(frozen=True)
class AmountRule:
    """
    How one monetary field is read.

    The first alias present with a non-null value wins. When it is absent or
    parses to zero, every component field present in the record is summed
    (e.g. cp_plf + cp_prev_fdc_adp).
    """

    aliases: tuple[str, ...]
    components: tuple[str, ...] = ()


@dataclass(frozen=True)
class AliasTable:
    version: str
    labels: dict[str, tuple[str, ...]]
    amounts: dict[str, AmountRule]
    # Read into cp when both ae and cp resolve to zero
    generic_amount: tuple[str, ...] = ()
    # String values treated like a missing field
    missing_markers: frozenset[str] = field(default_factory=frozenset)


STANDARD_ALIASES = AliasTable(
    version="standard",
    labels={
        "mission_code": ("mission_code", "code_mission", "mission", "missionid", "mission_numero"),
        "mission": ("intitule_mission", "mission_libelle", "mission_label", "mission_nom"),
        "programme_code": ("programme_code", "code_programme", "programme", "programme_numero"),
        "programme": ("intitule_programme", "programme_libelle", "programme_label", "programme_nom"),
        "action_code": ("action_code", "code_action", "action", "action_numero"),
        "action": ("intitule_action", "action_libelle", "action_label", "action_nom"),
        "sous_action_code": ("sous_action_code", "code_sous_action", "sous_action", "sousaction"),
        "sous_action": ("intitule_sous_action", "sous_action_libelle", "sous_action_label"),
    },
    amounts={
        "ae": AmountRule(("ae", "autorisations_engagement", "montant_ae", "mnt_ae")),
        "cp": AmountRule(("cp", "credits_paiement", "montant_cp", "mnt_cp")),
    },
)

EXTENDED_ALIASES = AliasTable(
    version="extended",
    labels={
        "mission_code": (
            "mission_code", "code_mission", "code_de_la_mission", "mission_numero",
            "num_mission", "missionid",
        ),
        "mission": (
            "intitule_mission", "mission_intitule", "libelle_mission",
            "intitule_de_la_mission", "mission_libelle", "mission_label", "mission_nom", "mission",
        ),
        "programme_code": (
            "programme_code", "code_programme", "programme_numero", "num_programme",
            "numero_programme", "programme",
        ),
        "programme": (
            "libelle_programme", "intitule_programme", "programme_intitule",
            "programme_libelle", "nom_programme", "programme_label",
        ),
        "action_code": ("action_code", "code_action", "num_action", "action_numero", "action"),
        "action": (
            "libelle_action", "intitule_action", "action_intitule",
            "intitule_de_l_action", "action_libelle", "action_label",
        ),
        "sous_action_code": (
            "sous_action_code", "code_sous_action", "sousaction_code", "sous_action", "sousaction",
        ),
        "sous_action": (
            "libelle_sousaction", "intitule_sous_action", "intitule_sousaction",
            "sous_action_libelle", "sous_action_label",
        ),
    },
    amounts={
        "ae": AmountRule(
            aliases=("ae", "montant_ae", "mnt_ae"),
            components=(
                "autorisation_engagement",
                "autorisations_engagement",
                "ae_plf",
                "autorisations_d_engagement_plf",
                "ae_prev_fdc_adp",
            ),
        ),
        "cp": AmountRule(
            aliases=("cp", "montant_cp", "mnt_cp", "credits_paiement"),
            components=(
                "credit_de_paiement",
                "credits_de_paiement",
                "cp_plf",
                "credits_de_paiement_plf",
                "credit_de_paiement_plf",
                "creditspaiement_plf",
                "cp_prev_fdc_adp",
                "credits_de_paiement_prevus_sur_fdc_et_adp",
            ),
        ),
    },
    generic_amount=("montant", "value"),
    missing_markers=frozenset({"", "NA"}),
)

ALIAS_TABLES: dict[str, AliasTable] = {
    STANDARD_ALIASES.version: STANDARD_ALIASES,
    EXTENDED_ALIASES.version: EXTENDED_ALIASES,
}


def lower_keys(record: dict[str, Any] | None) -> dict[str, Any]:
    """Return a copy of record with every key lower-cased."""
    return {str(k).lower(): v for k, v in (record or {}).items()}


def get_alias_table(version: str) -> AliasTable:
    try:
        return ALIAS_TABLES[version]
    except KeyError:
        raise ValueError(
            f"Unknown alias table {version!r}; expected one of {sorted(ALIAS_TABLES)}"
        ) from None


class AliasResolver:
    """Maps raw records with arbitrary field names onto CanonicalRow."""

    def __init__(self, table: AliasTable = EXTENDED_ALIASES) -> None:
        self.table = table

    def _is_missing(self, value: Any) -> bool:
        if value is None:
            return True
        return isinstance(value, str) and value.strip() in self.table.missing_markers

    def pick(self, record: dict[str, Any], aliases: tuple[str, ...]) -> Any:
        """First alias present in record with a non-missing value."""
        for alias in aliases:
            value = record.get(alias)
            if not self._is_missing(value):
                return value
        return None

    def _amount(self, record: dict[str, Any], rule: AmountRule) -> float:
        number = parse_locale_number(self.pick(record, rule.aliases))
        if number:
            return float(number)
        total = 0.0
        for component in rule.components:
            value = record.get(component)
            if self._is_missing(value):
                continue
            total += to_amount(value)
        return total

    def _generic_amount(self, record: dict[str, Any]) -> float:
        """First generic field that parses to a non-zero number."""
        for alias in self.table.generic_amount:
            amount = to_amount(record.get(alias))
            if amount:
                return amount
        return 0.0

    def resolve(self, record: dict[str, Any]) -> CanonicalRow:
        """
        Resolve one raw record.

        Keys are matched case-insensitively. Codes are stringified, labels
        fall back to "Programme {code}"-style placeholders when only the code
        is known, and ae/cp always come out as numbers.
        """
        r = lower_keys(record)
        values: dict[str, Any] = {}

        for name in LABEL_FIELDS:
            raw = self.pick(r, self.table.labels.get(name, ()))
            if raw is None:
                values[name] = None
                continue
            text = str(raw).strip()
            values[name] = text or None

        for label, (code_field, prefix) in _PLACEHOLDERS.items():
            if values[label] is None and values[code_field] is not None:
                values[label] = f"{prefix} {values[code_field]}"

        ae = self._amount(r, self.table.amounts["ae"])
        cp = self._amount(r, self.table.amounts["cp"])
        if ae == 0 and cp == 0 and self.table.generic_amount:
            cp = self._generic_amount(r)

        return CanonicalRow(**values, ae=ae, cp=cp)

    def resolve_many(self, records: list[dict[str, Any]]) -> list[CanonicalRow]:
        rows = [self.resolve(rec) for rec in records]
        log.debug("rows_resolved", table=self.table.version, count=len(rows))
        return rows
