"""
sources/base.py — Abstract base class for all record source adapters.

Each concrete source must implement:
  extract()      — fetch raw records, return list of field dicts
  transform()    — clean raw records into lower-cased field dicts
  get_metadata() — return dict with source info for the discovery trace / logs

Pipelines call run(), which chains extract() and transform() and logs the
record counts and elapsed time of each call.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Any

import structlog

from frbudget_pipeline.transforms.aliases import lower_keys

log = structlog.get_logger(__name__)

Record = dict[str, Any]


class BaseSource(ABC):
    """Abstract base for frbudget record sources."""

    # Override in subclass: used for logging
    name: str = "unknown"

    def __init__(self) -> None:
        self._log = log.bind(source_name=self.name)

    # ------------------------------------------------------------------
    # Abstract interface: subclasses must implement all three
    # ------------------------------------------------------------------

    @abstractmethod
    async def extract(self, **kwargs: Any) -> list[Record]:
        """
        Fetch raw records from the source.

        Implementations should:
        - Make HTTP calls via httpx (no retry: any failure is final)
        - Raise RetrievalFailure / ParseFailure on failure, never return partial data
        - Return field dicts with the original key casing preserved

        Args:
            **kwargs: Source-specific parameters (dataset_id, where, path, ...).

        Returns:
            Raw records.
        """
        ...

    @abstractmethod
    def transform(self, raw: list[Record]) -> list[Record]:
        """
        Clean raw records before domain normalization.

        Args:
            raw: Records returned by extract().

        Returns:
            Records ready for the alias resolver / flat normalizers.
        """
        ...

    @abstractmethod
    async def get_metadata(self) -> dict[str, Any]:
        """
        Return source-level metadata for observability.

        Should include at minimum: source_name, description.
        """
        ...

    # ------------------------------------------------------------------
    # Orchestration: pipelines call this
    # ------------------------------------------------------------------

    async def run(self, **kwargs: Any) -> list[Record]:
        """
        extract() then transform(), logged with counts and elapsed time.

        Args:
            **kwargs: Passed through to extract().

        Raises:
            Whatever extract() or transform() raised, after a warning is logged.
        """
        call_log = self._log.bind(**{k: str(v) for k, v in kwargs.items() if v is not None})
        started = time.monotonic()

        def elapsed_ms() -> int:
            return int((time.monotonic() - started) * 1000)

        try:
            raw = await self.extract(**kwargs)
            records = self.transform(raw)
        except Exception as exc:
            call_log.warning(
                "source_call_failed",
                error_type=type(exc).__name__,
                error=str(exc),
                duration_ms=elapsed_ms(),
            )
            raise
        call_log.info("source_call_done", raw=len(raw), records=len(records), duration_ms=elapsed_ms())
        return records

    # ------------------------------------------------------------------
    # Shared helpers available to all subclasses
    # ------------------------------------------------------------------

    @staticmethod
    def _lower_keys(records: list[Record]) -> list[Record]:
        """Copy of records with every key lower-cased."""
        return [lower_keys(r) for r in records]
