"""
Ports — Protocol-based interfaces for certificate infrastructure.

These define WHAT the resolver needs without specifying HOW it's done:

  Resolver ← Ports (protocols) ← Adapters (PKCS#12, directory store, PKCS#11 token)

Each port is a Protocol (structural typing) so adapters satisfy the
contract simply by implementing the methods — no inheritance.

Handle lifecycle:
  1. A loader or store unlocks a certificate and returns a CertificateHandle
  2. The resolver reads what it needs from `handle.certificate`
  3. The resolver calls `handle.release()` exactly once, on every exit path
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from railway.result import Result

from dfe_core.domain.models import InstalledCertificate

if TYPE_CHECKING:
    from cryptography import x509


@runtime_checkable
class CertificateHandle(Protocol):
    """
    Port: an unlocked certificate backed by some native resource.

    How `release()` frees that resource is fixed when the handle is built
    (reset for software certificates, unload for hardware tokens). It may
    raise; callers treat release as best-effort cleanup.
    """

    @property
    def certificate(self) -> x509.Certificate: ...

    @property
    def released(self) -> bool: ...

    def release(self) -> None: ...


@runtime_checkable
class ContainerLoader(Protocol):
    """
    Port: unlock a PKCS#12 container held in memory or on disk.

    Returns:
      - Failure(AUTHENTICATION_ERROR) when the password is wrong
      - Failure(TECHNICAL_ERROR) when the bytes are not a PKCS#12 container
    """

    def load_bytes(self, data: bytes, password: str) -> Result[CertificateHandle]: ...

    def load_file(self, path: str, password: str) -> Result[CertificateHandle]: ...


@runtime_checkable
class CertificateStore(Protocol):
    """
    Port: the platform's installed-certificate store.

    `reference` is a serial number (hex, with or without 0x) or a
    case-insensitive substring of the subject. `pin` unlocks stores that
    need it (hardware tokens) and is ignored by stores that don't.
    """

    def find(self, reference: str, pin: str = "") -> Result[CertificateHandle]: ...

    def list_certificates(self, pin: str = "") -> Result[list[InstalledCertificate]]: ...
