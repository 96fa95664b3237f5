"""
PKCS#12 container loader — A1 certificates from bytes or from a .pfx file.

Adapter layer — implements the ContainerLoader port using:
  - asn1crypto: structural check of the PFX envelope before unlocking
  - cryptography (PyCA): decrypting the container with the password

Pipeline:
  raw bytes
    → asn1crypto: Pfx.load() → version + authSafe content type
    → cryptography: pkcs12.load_key_and_certificates(password)
    → ResettableHandle (certificate + private key + chain)

cryptography reports a wrong password and a broken container with the
same ValueError; checking the envelope first is what lets a wrong password
surface as AUTHENTICATION_ERROR and garbage as TECHNICAL_ERROR.
"""

from __future__ import annotations

from pathlib import Path

import structlog
from asn1crypto import pkcs12 as asn1_pkcs12
from cryptography.hazmat.primitives.serialization import pkcs12
from railway import ErrorCode
from railway.result import Result
from railway.result_failures import ResultFailures

from dfe_core.adapters.handles import ResettableHandle
from dfe_core.domain.errors import CertificateNotFoundError, InvalidPasswordError
from dfe_core.domain.ports import CertificateHandle

log = structlog.get_logger()


def _check_envelope(data: bytes) -> Result[bytes]:
    """Fail with TECHNICAL_ERROR unless `data` is a DER-encoded PFX (version 3)."""

    def _parse() -> bytes:
        pfx = asn1_pkcs12.Pfx.load(data, strict=True)
        version = pfx["version"].native
        if version not in ("v3", 3):
            raise ValueError(f"Unsupported PFX version: {version!r}")
        _ = pfx["auth_safe"]["content_type"].native
        return data

    return Result.from_computation(
        _parse,
        ErrorCode.TECHNICAL_ERROR,
        "Data is not a PKCS#12 container",
    )


def _unlock(data: bytes, password: str) -> Result[CertificateHandle]:
    try:
        private_key, certificate, chain = pkcs12.load_key_and_certificates(
            data, password.encode() if password else None
        )
    except ValueError as e:
        error = InvalidPasswordError("Wrong password for PKCS#12 container")
        error.__cause__ = e
        return ResultFailures.authentication_error(str(error), error)

    if certificate is None:
        error = CertificateNotFoundError("PKCS#12 container holds no certificate")
        return Result.failure(ErrorCode.NOT_FOUND, str(error), error)

    log.debug(
        "pkcs12.unlocked",
        serial=hex(certificate.serial_number),
        has_private_key=private_key is not None,
        chain=len(chain),
    )
    return Result.success(ResettableHandle(certificate, private_key, chain))


class Pkcs12ContainerLoader:
    """
    Unlock PKCS#12 (.pfx / .p12) containers.

    Implements the ContainerLoader port. Handles are ResettableHandle:
    everything lives in process memory.
    """

    def load_bytes(self, data: bytes, password: str = "") -> Result[CertificateHandle]:
        return _check_envelope(data).flat_map(lambda valid: _unlock(valid, password))

    def load_file(self, path: str | Path, password: str = "") -> Result[CertificateHandle]:
        return Result.from_computation(
            lambda: Path(path).read_bytes(),
            ErrorCode.TECHNICAL_ERROR,
            f"Failed to read certificate file {path}",
        ).flat_map(lambda data: self.load_bytes(data, password))
