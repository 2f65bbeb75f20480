"""Lookup of client identities in the external certificate directory."""

from .exceptions import CertificateDirectoryError, ClientNotFoundError
from .models import Certificate, CertificatePage
from .service import CertificateDirectory

__all__ = [
    "Certificate",
    "CertificateDirectory",
    "CertificateDirectoryError",
    "CertificatePage",
    "ClientNotFoundError",
]
