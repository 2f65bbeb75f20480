"""HTTP client for the external certificate directory."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx

from orchestrator.core.config import CertificateDirectorySettings

from .exceptions import CertificateDirectoryError, ClientNotFoundError
from .models import Certificate, CertificatePage

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CertificateDirectory:
    base_url: str
    timeout: float = 10.0
    default_page_size: int = 20
    client: Optional[httpx.AsyncClient] = field(default=None, repr=False)

    @classmethod
    def from_settings(cls, settings: CertificateDirectorySettings) -> "CertificateDirectory":
        return cls(
            base_url=settings.base_url,
            timeout=settings.timeout_seconds,
            default_page_size=settings.default_page_size,
        )

    def _url(self, path: str) -> str:
        if not path.startswith("/"):
            path = "/" + path
        return self.base_url.rstrip("/") + path

    @staticmethod
    def _headers(token: Optional[str]) -> Dict[str, str]:
        headers: Dict[str, str] = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _get(self, path: str, *, params: Dict[str, Any], token: Optional[str]) -> httpx.Response:
        url = self._url(path)
        headers = self._headers(token)
        try:
            if self.client is not None:
                response = await self.client.get(url, params=params, headers=headers, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as session:
                    response = await session.get(url, params=params, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning("Certificate directory returned %s for %s", exc.response.status_code, url)
            raise CertificateDirectoryError(
                f"certificate directory returned HTTP {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("Certificate directory unreachable: %s", exc)
            raise CertificateDirectoryError(f"certificate directory unreachable: {exc}") from exc
        return response

    async def list(
        self,
        common_name: Optional[str] = None,
        page_size: Optional[int] = None,
        *,
        token: Optional[str] = None,
    ) -> CertificatePage:
        params: Dict[str, Any] = {}
        if common_name:
            params["commonName"] = common_name
        params["pageSize"] = page_size or self.default_page_size

        response = await self._get("/certificates", params=params, token=token)
        try:
            payload = response.json()
        except ValueError as exc:
            raise CertificateDirectoryError("certificate directory returned invalid JSON") from exc

        if not isinstance(payload, dict):
            raise CertificateDirectoryError("certificate directory returned an unexpected payload")
        items = payload.get("items") or []
        total = payload.get("total")
        return CertificatePage(
            items=[Certificate.from_payload(item) for item in items if isinstance(item, dict)],
            total=total,
        )

    async def resolve_client_id(self, common_name: str, *, token: Optional[str] = None) -> str:
        """Map a human-searchable common name to the client id used for dispatch."""
        page = await self.list(common_name, token=token)
        for certificate in page.items:
            if certificate.common_name == common_name:
                return certificate.client_id or common_name
        raise ClientNotFoundError(common_name)
