from __future__ import annotations

import asyncio
from typing import Any

import httpx
import pytest

from orchestrator.domain.certificates import (
    CertificateDirectory,
    CertificateDirectoryError,
    ClientNotFoundError,
)

BASE_URL = "http://directory.test/admin/v1/modules/lcm/v1"


def _directory(client: httpx.AsyncClient) -> CertificateDirectory:
    return CertificateDirectory(base_url=BASE_URL, default_page_size=20, client=client)


def _run(handler, scenario) -> Any:
    async def _inner() -> Any:
        transport = httpx.MockTransport(handler)
        async with httpx.AsyncClient(transport=transport) as client:
            return await scenario(_directory(client))

    return asyncio.run(_inner())


def test_list_passes_filters_and_token():
    seen: dict[str, Any] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(
            200,
            json={
                "items": [
                    {"serialNumber": "01", "clientId": "client-7", "commonName": "edge-7", "status": "active"},
                ],
                "total": 1,
            },
        )

    page = _run(handler, lambda directory: directory.list("edge-7", token="secret"))

    assert seen["path"].endswith("/certificates")
    assert seen["params"] == {"commonName": "edge-7", "pageSize": "20"}
    assert seen["auth"] == "Bearer secret"
    assert page.total == 1
    assert page.items[0].client_id == "client-7"
    assert page.items[0].serial_number == "01"


def test_resolve_client_id_requires_exact_match():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "items": [
                    {"commonName": "edge-70", "clientId": "client-70"},
                    {"commonName": "edge-7"},
                ],
                "total": 2,
            },
        )

    async def scenario(directory: CertificateDirectory):
        resolved = await directory.resolve_client_id("edge-7")
        with pytest.raises(ClientNotFoundError):
            await directory.resolve_client_id("edge-8")
        return resolved

    # without a clientId the common name doubles as the client id
    assert _run(handler, scenario) == "edge-7"


def test_http_errors_are_wrapped():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": "down"})

    async def scenario(directory: CertificateDirectory):
        with pytest.raises(CertificateDirectoryError) as excinfo:
            await directory.list()
        return excinfo.value

    error = _run(handler, scenario)

    assert error.status_code == 500


def test_unexpected_payload_is_rejected():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=["not", "a", "page"])

    async def scenario(directory: CertificateDirectory):
        with pytest.raises(CertificateDirectoryError):
            await directory.list()

    _run(handler, scenario)
