"""
tests/conftest.py — Shared pytest fixtures for the pipeline test suite.

Provides:
  fixture_path()     — resolves paths to tests/fixtures/
  catalog_payload    — parsed catalog search response for 2025
  spending_payload   — parsed records response of a spending dataset
  mock_http          — configured respx router for faking HTTP responses
  ods_portal         — fake Opendatasoft portal (catalog + paginated records)
                       mounted on mock_http
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import httpx
import pytest
import respx

FIXTURES_DIR = Path(__file__).parent / "fixtures"

DOMAIN = "https://data.example.test"
HOST = "data.example.test"
CATALOG_PATH = "/api/explore/v2.1/catalog/datasets"
RECORDS_PATH_REGEX = r"^/api/explore/v2\.1/catalog/datasets/[^/]+/records$"


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

@pytest.fixture
def fixture_path() -> Path:
    return FIXTURES_DIR


# ---------------------------------------------------------------------------
# Sample payloads
# ---------------------------------------------------------------------------

@pytest.fixture
def catalog_payload() -> dict:
    """Catalog search response listing the 2025 datasets plus noise."""
    return json.loads((FIXTURES_DIR / "catalog_search_2025.json").read_text(encoding="utf-8"))


@pytest.fixture
def spending_payload() -> dict:
    """Records of a spending dataset whose amounts only sit in credits_de_paiement."""
    return json.loads((FIXTURES_DIR / "spending_records_sample.json").read_text(encoding="utf-8"))


# ---------------------------------------------------------------------------
# respx HTTP mock router
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_http():
    """
    Activate the respx mock router for all httpx requests.

    Usage in tests:
        def test_something(mock_http):
            mock_http.get("https://...").mock(return_value=httpx.Response(200, json={...}))
    """
    with respx.mock(assert_all_called=False) as router:
        yield router


class FakePortal:
    """
    In-memory Opendatasoft portal served through respx.

    catalog:  query → results; queries not listed get `default_results`
    datasets: dataset id → records, paged by the limit/offset params
    failing_queries / failing_datasets: answered with HTTP 503
    """

    def __init__(self) -> None:
        self.catalog: dict[str, list[dict[str, Any]]] = {}
        self.default_results: list[dict[str, Any]] = []
        self.datasets: dict[str, list[dict[str, Any]]] = {}
        self.failing_queries: set[str] = set()
        self.failing_datasets: set[str] = set()
        self.catalog_requests: list[httpx.Request] = []
        self.records_requests: list[httpx.Request] = []

    def catalog_response(self, request: httpx.Request) -> httpx.Response:
        self.catalog_requests.append(request)
        query = request.url.params.get("search", "")
        if query in self.failing_queries:
            return httpx.Response(503, json={"error": "unavailable"})
        results = self.catalog.get(query, self.default_results)
        return httpx.Response(200, json={"total_count": len(results), "results": results})

    def records_response(self, request: httpx.Request, **kwargs: Any) -> httpx.Response:
        self.records_requests.append(request)
        dataset_id = request.url.path.split("/")[-2]
        if dataset_id in self.failing_datasets:
            return httpx.Response(503, json={"error": "unavailable"})
        if dataset_id not in self.datasets:
            return httpx.Response(404, json={"error": "dataset not found"})
        records = self.datasets[dataset_id]
        limit = int(request.url.params.get("limit", 10))
        offset = int(request.url.params.get("offset", 0))
        page = records[offset:offset + limit]
        return httpx.Response(200, json={"total_count": len(records), "results": page})

    def data_requests(self, dataset_id: str) -> list[httpx.Request]:
        """Records requests for a dataset, schema probes (limit=1) excluded."""
        return [
            r for r in self.records_requests
            if r.url.path.split("/")[-2] == dataset_id and r.url.params.get("limit") != "1"
        ]


@pytest.fixture
def ods_portal(mock_http) -> FakePortal:
    portal = FakePortal()
    mock_http.get(host=HOST, path=CATALOG_PATH).mock(side_effect=portal.catalog_response)
    mock_http.get(host=HOST, path__regex=RECORDS_PATH_REGEX).mock(
        side_effect=portal.records_response
    )
    return portal
