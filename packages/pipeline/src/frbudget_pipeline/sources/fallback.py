"""
sources/fallback.py — Bundled fallback files, keyed by artifact stem and year.

When a live track cannot produce usable rows the orchestrator reads a file
shipped with the package (or from FALLBACK_DIR):

  {stem}_{year}.csv   — flat rows, comma or semicolon delimited
  {stem}_{year}.json  — rows (list) or a pre-built artifact (object)

For each track the stems of FALLBACK_STEMS are tried in order, CSV before
JSON, and the first existing file wins.

CSV handling: UTF-8 BOM stripped, blank lines ignored, delimiter detected from
the header line, standard double-quote quoting (embedded delimiters, "" escapes)
handled by polars. Every column is read as a string; numbers are parsed later
by the locale-aware normalizers.

Usage:
    source = FallbackSource()
    found = source.load("spending", 2025)     # FallbackFile | None
    rows  = await source.run(track="revenues", year=2025)
"""

from __future__ import annotations

import io
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

import polars as pl

from frbudget_pipeline.errors import ParseFailure
from frbudget_pipeline.sources.base import BaseSource, Record
from frbudget_shared.config import settings
from frbudget_shared.constants import FALLBACK_STEMS, Track

BUNDLED_DIR = Path(__file__).resolve().parents[1] / "assets" / "fallback"

FallbackKind = Literal["csv", "json"]


@dataclass
class FallbackFile:
    """A located and parsed fallback file."""

    path: Path
    kind: FallbackKind
    data: Any

    @property
    def dataset_id(self) -> str:
        """Value stamped into tree sources for artifacts built from this file."""
        return f"fallback_{self.kind}"


def detect_delimiter(header: str) -> str:
    """';' when the header has no ',' or splits into more fields on ';'."""
    if ";" in header and ("," not in header or len(header.split(";")) > len(header.split(","))):
        return ";"
    return ","


def parse_csv_text(text: str, *, path: str = "<string>") -> list[Record]:
    """Parse CSV text into string-valued rows keyed by the stripped header names."""
    lines = text.lstrip("\ufeff").split("\n")
    # Outer blank lines only; quoted cells may hold empty lines
    start = next((i for i, line in enumerate(lines) if line.strip()), len(lines))
    end = len(lines)
    while end > start and not lines[end - 1].strip():
        end -= 1
    if start == end:
        raise ParseFailure(path, "empty file")

    separator = detect_delimiter(lines[start])
    try:
        df = pl.read_csv(
            io.StringIO("\n".join(lines[start:end])),
            separator=separator,
            infer_schema_length=0,
            truncate_ragged_lines=True,
        )
    except pl.exceptions.PolarsError as exc:
        raise ParseFailure(path, str(exc)) from exc

    df = df.rename({c: c.strip() for c in df.columns})
    blank = pl.all_horizontal(pl.all().str.strip_chars().fill_null("") == "")
    return df.filter(~blank).to_dicts()


class FallbackSource(BaseSource):
    """Reads the bundled per-year fallback files."""

    name = "Fallback"

    def __init__(self, fallback_dir: str | Path | None = None) -> None:
        super().__init__()
        configured = fallback_dir or settings.fallback_dir
        self.fallback_dir = Path(configured) if configured else BUNDLED_DIR

    def find(self, track: Track, year: int) -> Path | None:
        for stem in FALLBACK_STEMS[track]:
            for suffix in (".csv", ".json"):
                path = self.fallback_dir / f"{stem}_{year}{suffix}"
                if path.is_file():
                    return path
        return None

    def read_csv(self, path: Path) -> list[Record]:
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ParseFailure(str(path), str(exc)) from exc
        return parse_csv_text(text, path=str(path))

    def read_json(self, path: Path) -> Any:
        try:
            return json.loads(path.read_text(encoding="utf-8-sig"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ParseFailure(str(path), str(exc)) from exc

    def load(self, track: Track, year: int) -> FallbackFile | None:
        """
        Locate and parse the fallback file of a track.

        Returns:
            FallbackFile, or None when no file exists for the year.

        Raises:
            ParseFailure: the file exists but cannot be read or parsed.
        """
        path = self.find(track, year)
        if path is None:
            self._log.info("fallback_missing", track=track, year=year, dir=str(self.fallback_dir))
            return None
        if path.suffix == ".csv":
            found = FallbackFile(path=path, kind="csv", data=self.read_csv(path))
        else:
            found = FallbackFile(path=path, kind="json", data=self.read_json(path))
        self._log.info("fallback_loaded", track=track, year=year, path=path.name, kind=found.kind)
        return found

    # ------------------------------------------------------------------
    # BaseSource interface
    # ------------------------------------------------------------------

    async def extract(self, *, track: Track, year: int, **kwargs: Any) -> list[Record]:
        """Flat rows of the track's fallback file ([] when there is none)."""
        found = self.load(track, year)
        if found is None:
            return []
        if not isinstance(found.data, list):
            raise ParseFailure(str(found.path), "expected a list of rows")
        return [r for r in found.data if isinstance(r, dict)]

    def transform(self, raw: list[Record]) -> list[Record]:
        return self._lower_keys(raw)

    async def get_metadata(self) -> dict[str, Any]:
        return {
            "source_name": self.name,
            "fallback_dir": str(self.fallback_dir),
            "description": "Bundled per-year CSV/JSON fallback files",
        }
