"""
sources/opendatasoft.py — Client for the Opendatasoft Explore API v2.1.

data.economie.gouv.fr publishes the state budget (PLF/LFI tables, budget vert,
performance indicators) on an Opendatasoft portal. Dataset ids change every
year, so callers search the catalog first, then page through the records of
the chosen dataset.

API base: {domain}/api/explore/v2.1

Endpoints:
  /catalog/datasets                       — free-text catalog search (?search=)
  /catalog/datasets/{dataset_id}/records  — offset-paginated records

Usage:
    source = OpendatasoftSource("https://data.economie.gouv.fr")

    entries = await source.search_catalog("2025 depenses destination")
    fields  = await source.probe_fields("plf25-depenses-2025-selon-destination")
    where   = build_year_where(2025, fields)
    records = await source.fetch_records("plf25-depenses-2025-selon-destination", where=where)

    # Or through BaseSource.run() (fetch + lower-cased keys)
    records = await source.run(dataset_id="plf25-budget-vert")
"""

from __future__ import annotations

import asyncio
from typing import Any
from urllib.parse import quote

import httpx

from frbudget_pipeline.errors import RetrievalFailure
from frbudget_pipeline.sources.base import BaseSource, Record
from frbudget_shared.config import settings
from frbudget_shared.constants import YEAR_FIELDS

API_PATH = "/api/explore/v2.1"


def unwrap_record(item: dict[str, Any]) -> Record:
    """
    Field dict of one records-endpoint item.

    Handles {"id", "fields"} items, {"record": {"fields"}} items and the flat
    v2.1 layout where the item is the field dict itself.
    """
    if isinstance(item.get("fields"), dict):
        return item["fields"]
    record = item.get("record")
    if isinstance(record, dict) and isinstance(record.get("fields"), dict):
        return record["fields"]
    return item


def build_year_where(year: int, fields: list[str]) -> str | None:
    """Server-side filter on the first fiscal-year field present, if any."""
    lowered = {f.lower() for f in fields}
    for candidate in YEAR_FIELDS:
        if candidate in lowered:
            return f"{candidate} = {year}"
    return None


class OpendatasoftSource(BaseSource):
    """Catalog search + paginated record retrieval on one Opendatasoft portal."""

    name = "Opendatasoft"

    def __init__(
        self,
        domain: str | None = None,
        *,
        timeout: float | None = None,
        page_size: int | None = None,
        pause_ms: int | None = None,
        search_limit: int | None = None,
    ) -> None:
        super().__init__()
        self.domain = (domain or settings.catalog_domain).rstrip("/")
        self._timeout = timeout if timeout is not None else settings.http_timeout
        self.page_size = page_size if page_size is not None else settings.page_size
        self.pause_ms = pause_ms if pause_ms is not None else settings.page_pause_ms
        self.search_limit = search_limit if search_limit is not None else settings.catalog_search_limit
        self._log = self._log.bind(domain=self.domain)

    # ------------------------------------------------------------------
    # URLs
    # ------------------------------------------------------------------

    @property
    def catalog_url(self) -> str:
        return f"{self.domain}{API_PATH}/catalog/datasets"

    def records_url(self, dataset_id: str) -> str:
        return f"{self.catalog_url}/{quote(dataset_id, safe='')}/records"

    # ------------------------------------------------------------------
    # Low-level HTTP
    # ------------------------------------------------------------------

    async def _get_json(
        self,
        url: str,
        params: dict[str, Any],
        *,
        dataset_id: str | None = None,
    ) -> dict[str, Any]:
        """GET a JSON document; any non-2xx or transport error is a RetrievalFailure."""
        async with httpx.AsyncClient(
            timeout=self._timeout,
            headers={"Accept": "application/json"},
            follow_redirects=True,
        ) as client:
            try:
                response = await client.get(url, params=params)
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                raise RetrievalFailure(
                    str(exc.request.url),
                    exc.response.status_code,
                    dataset_id=dataset_id,
                ) from exc
            except httpx.HTTPError as exc:
                raise RetrievalFailure(url, dataset_id=dataset_id, reason=str(exc)) from exc

            try:
                payload = response.json()
            except ValueError as exc:
                raise RetrievalFailure(
                    str(response.url), response.status_code, dataset_id=dataset_id, reason="invalid JSON"
                ) from exc
        if not isinstance(payload, dict):
            raise RetrievalFailure(str(response.url), response.status_code, dataset_id=dataset_id)
        return payload

    # ------------------------------------------------------------------
    # High-level helpers
    # ------------------------------------------------------------------

    async def search_catalog(self, query: str) -> list[dict[str, Any]]:
        """
        Free-text catalog search.

        Args:
            query: Search string, e.g. "2025 depenses destination".

        Returns:
            Catalog entries ({dataset_id, title | metas, ...}).
        """
        self._log.debug("catalog_query", query=query)
        payload = await self._get_json(
            self.catalog_url, {"search": query, "limit": self.search_limit}
        )
        return list(payload.get("results") or [])

    async def fetch_records(
        self,
        dataset_id: str,
        *,
        where: str | None = None,
        select: str | None = None,
        order_by: str | None = None,
        limit: int | None = None,
        pause_ms: int | None = None,
    ) -> list[Record]:
        """
        Fetch every record of a dataset by offset pagination.

        Pages are requested one after another starting at offset 0 and the
        loop stops at the first page shorter than `limit` (an empty page
        included). `pause_ms` is slept between page requests.

        Args:
            dataset_id: Opendatasoft dataset id.
            where:      ODSQL filter, e.g. "annee = 2025".
            select:     ODSQL select clause.
            order_by:   ODSQL order clause.
            limit:      Page size (default settings.page_size).
            pause_ms:   Pause between pages (default settings.page_pause_ms).

        Returns:
            Field dicts in provider order.

        Raises:
            RetrievalFailure: on the first failed page; nothing is returned.
        """
        page_size = limit or self.page_size
        pause = self.pause_ms if pause_ms is None else pause_ms
        url = self.records_url(dataset_id)

        records: list[Record] = []
        offset = 0
        while True:
            params: dict[str, Any] = {"limit": page_size, "offset": offset}
            if select:
                params["select"] = select
            if where:
                params["where"] = where
            if order_by:
                params["order_by"] = order_by

            payload = await self._get_json(url, params, dataset_id=dataset_id)
            batch = payload.get("results") or []
            records.extend(unwrap_record(item) for item in batch)
            self._log.debug(
                "records_page",
                dataset_id=dataset_id,
                offset=offset,
                page_records=len(batch),
                total=len(records),
            )

            if len(batch) < page_size:
                break
            offset += page_size
            if pause:
                await asyncio.sleep(pause / 1000)

        return records

    async def probe_fields(self, dataset_id: str) -> list[str]:
        """
        Lower-cased field names of one sample record.

        Issues a single limit=1 request. Any failure yields [] so callers
        simply skip the year filter.
        """
        try:
            payload = await self._get_json(
                self.records_url(dataset_id), {"limit": 1, "offset": 0}, dataset_id=dataset_id
            )
        except RetrievalFailure as exc:
            self._log.warning("probe_failed", dataset_id=dataset_id, error=str(exc))
            return []
        batch = payload.get("results") or []
        if not batch:
            return []
        return [str(k).lower() for k in unwrap_record(batch[0])]

    # ------------------------------------------------------------------
    # BaseSource interface
    # ------------------------------------------------------------------

    async def extract(
        self,
        *,
        dataset_id: str,
        where: str | None = None,
        select: str | None = None,
        order_by: str | None = None,
        **kwargs: Any,
    ) -> list[Record]:
        return await self.fetch_records(
            dataset_id, where=where, select=select, order_by=order_by
        )

    def transform(self, raw: list[Record]) -> list[Record]:
        """Lower-case keys — callers apply domain-specific normalization."""
        return self._lower_keys(raw)

    async def get_metadata(self) -> dict[str, Any]:
        return {
            "source_name": self.name,
            "base_url": f"{self.domain}{API_PATH}",
            "description": "Opendatasoft Explore v2.1 catalog and records",
        }
