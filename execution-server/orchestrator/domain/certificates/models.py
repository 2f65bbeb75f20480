"""Certificate directory records (read-only, owned by the directory)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(slots=True)
class Certificate:
    serial_number: Optional[str] = None
    client_id: Optional[str] = None
    common_name: Optional[str] = None
    tenant_id: Optional[int] = None
    issuer_name: Optional[str] = None
    status: Optional[str] = None
    cert_type: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "Certificate":
        return cls(
            serial_number=payload.get("serialNumber"),
            client_id=payload.get("clientId"),
            common_name=payload.get("commonName"),
            tenant_id=payload.get("tenantId"),
            issuer_name=payload.get("issuerName"),
            status=payload.get("status"),
            cert_type=payload.get("certType"),
        )


@dataclass(slots=True)
class CertificatePage:
    items: list[Certificate]
    total: Optional[int] = None
