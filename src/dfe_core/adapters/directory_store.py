"""
Directory certificate store — installed software certificates on disk.

Adapter layer — implements the CertificateStore port over a directory of
PEM or DER certificates (.pem, .crt, .cer, .der), the way Linux
distributions keep installed certificates. Entries are public
certificates only, so the PIN is ignored and handles are ResettableHandle.

Unreadable entries are logged and skipped: one broken file must not hide
every other installed certificate.
"""

from __future__ import annotations

from pathlib import Path

import structlog
from cryptography import x509
from railway import ErrorCode
from railway.result import Result

from dfe_core.adapters.handles import ResettableHandle
from dfe_core.adapters.x509_metadata import select_certificate, summarize
from dfe_core.domain.errors import CertificateNotFoundError
from dfe_core.domain.models import InstalledCertificate
from dfe_core.domain.ports import CertificateHandle

log = structlog.get_logger()

CERTIFICATE_SUFFIXES = frozenset({".pem", ".crt", ".cer", ".der"})


def _load_entry(path: Path) -> list[x509.Certificate]:
    data = path.read_bytes()
    if b"-----BEGIN" in data:
        return x509.load_pem_x509_certificates(data)
    return [x509.load_der_x509_certificate(data)]


class DirectoryCertificateStore:
    """Look up installed certificates by serial number or subject."""

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def _entries(self) -> list[Path]:
        return sorted(
            path
            for path in self._directory.iterdir()
            if path.is_file() and path.suffix.lower() in CERTIFICATE_SUFFIXES
        )

    def _load_all(self) -> list[x509.Certificate]:
        certificates: list[x509.Certificate] = []
        for path in self._entries():
            try:
                certificates.extend(_load_entry(path))
            except (OSError, ValueError) as e:
                log.warning("store.entry_unreadable", path=str(path), error=str(e))
        return certificates

    def _certificates(self) -> Result[list[x509.Certificate]]:
        return Result.from_computation(
            self._load_all,
            ErrorCode.TECHNICAL_ERROR,
            f"Failed to read certificate store {self._directory}",
        )

    def find(self, reference: str, pin: str = "") -> Result[CertificateHandle]:
        """Return the matching certificate; the PIN plays no part here."""
        return self._certificates().flat_map(lambda certs: self._select(certs, reference))

    def _select(self, certificates: list[x509.Certificate], reference: str) -> Result[CertificateHandle]:
        certificate = select_certificate(certificates, reference)
        if certificate is None:
            error = CertificateNotFoundError(
                f"No installed certificate matches {reference!r} in {self._directory}"
            )
            return Result.failure(ErrorCode.NOT_FOUND, str(error), error)
        return Result.success(ResettableHandle(certificate))

    def list_certificates(self, pin: str = "") -> Result[list[InstalledCertificate]]:
        return self._certificates().map(lambda certs: [summarize(cert) for cert in certs])
