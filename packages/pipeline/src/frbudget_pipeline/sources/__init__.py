"""
frbudget_pipeline.sources — record source adapters.

  OpendatasoftSource — data.economie.gouv.fr Explore v2.1 (catalog + records)
  FallbackSource     — bundled per-year CSV/JSON fallback files
"""

from frbudget_pipeline.sources.fallback import FallbackSource
from frbudget_pipeline.sources.opendatasoft import OpendatasoftSource

__all__ = [
    "OpendatasoftSource",
    "FallbackSource",
]
