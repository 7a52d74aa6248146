"""
errors.py — Error taxonomy for the budget pipeline.

Every error below is recoverable at the track boundary: the orchestrator
catches it and falls back to the bundled file (or omits the artifact).
Only OSError raised while writing artifacts is allowed to escape a run.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for recoverable pipeline errors."""


class DiscoveryFailure(PipelineError):
    """The catalog search was unreachable for every query of a run."""

    def __init__(self, year: int, domain: str, failed_queries: list[str]):
        self.year = year
        self.domain = domain
        self.failed_queries = failed_queries
        super().__init__(
            f"Catalog discovery failed for {year} on {domain}: "
            f"{len(failed_queries)} queries unreachable"
        )


class RetrievalFailure(PipelineError):
    """A catalog or records request returned a non-2xx status or failed in transport.

    Attributes:
        url:         The request URL.
        status_code: HTTP status, or None for transport errors.
        dataset_id:  Dataset being fetched, when applicable.
    """

    def __init__(
        self,
        url: str,
        status_code: int | None = None,
        *,
        dataset_id: str | None = None,
        reason: str | None = None,
    ):
        self.url = url
        self.status_code = status_code
        self.dataset_id = dataset_id
        detail = f"HTTP {status_code}" if status_code is not None else (reason or "transport error")
        super().__init__(f"Retrieval failed ({detail}): {url}")


class NormalizationEmpty(PipelineError):
    """No raw record of a track mapped to a usable canonical row."""

    def __init__(self, track: str, raw_count: int):
        self.track = track
        self.raw_count = raw_count
        super().__init__(f"{track}: 0 usable rows out of {raw_count} raw records")


class ParseFailure(PipelineError):
    """A bundled fallback file is missing, unreadable or malformed."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot parse fallback file {path}: {reason}")
