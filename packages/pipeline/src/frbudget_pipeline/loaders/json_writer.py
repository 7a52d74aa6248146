"""
loaders/json_writer.py — Writes pipeline artifacts as {artifact}_{year}.json.

Every pipeline output funnels through this module. The writer:
  - Creates the output directory on first use
  - Serialises pydantic models (by alias) or plain JSON values
  - Writes UTF-8, 2-space indented JSON with non-ASCII kept as-is
  - Lets OSError propagate: a failed write is the one fatal pipeline error

Usage:
    from frbudget_pipeline.loaders.json_writer import ArtifactWriter

    writer = ArtifactWriter("public/data")
    result = writer.write("state_budget_tree", 2025, tree)
    print(result.filename, result.bytes_written)
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog
from pydantic import BaseModel

from frbudget_shared.constants import artifact_name

log = structlog.get_logger(__name__)


@dataclass
class WriteResult:
    """Summary of one artifact write."""

    artifact: str
    filename: str
    path: Path
    records: int = 0
    bytes_written: int = 0
    duration_ms: int = 0


def to_jsonable(data: Any) -> Any:
    """Models dumped in JSON mode by alias; lists of models handled element-wise."""
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", by_alias=True, exclude_none=False)
    if isinstance(data, list):
        return [to_jsonable(item) for item in data]
    return data


class ArtifactWriter:
    """Writes artifacts into one output directory."""

    def __init__(self, out_dir: str | Path) -> None:
        self.out_dir = Path(out_dir)

    def path_for(self, artifact: str, year: int) -> Path:
        return self.out_dir / artifact_name(artifact, year)

    def write(self, artifact: str, year: int, data: Any) -> WriteResult:
        """
        Serialise and write one artifact, replacing any previous file.

        Args:
            artifact: Artifact stem, e.g. "state_budget_tree".
            year:     Fiscal year.
            data:     A pydantic model, a list of models, or plain JSON data.

        Returns:
            WriteResult with the file name and size.

        Raises:
            OSError: the directory or the file cannot be written.
        """
        t0 = time.monotonic()
        self.out_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(artifact, year)

        payload = to_jsonable(data)
        text = json.dumps(payload, ensure_ascii=False, indent=2)
        path.write_text(text + "\n", encoding="utf-8")

        result = WriteResult(
            artifact=artifact,
            filename=path.name,
            path=path,
            records=len(payload) if isinstance(payload, list) else 1,
            bytes_written=len(text.encode("utf-8")) + 1,
            duration_ms=int((time.monotonic() - t0) * 1000),
        )
        log.info(
            "artifact_written",
            artifact=artifact,
            year=year,
            filename=result.filename,
            records=result.records,
            bytes=result.bytes_written,
        )
        return result
