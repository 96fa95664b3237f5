"""
Certificate resolver — find, unlock and read the signing certificate.

Resolution order (first match wins):

  source.data non-empty        → ContainerLoader.load_bytes(data, password)
  source.reference is a file   → ContainerLoader.load_file(path, password)
  otherwise                    → CertificateStore.find(reference, pin=password)

get_metadata() runs the read inside `released(handle)`, so the handle is
released on success, on a failed read, and on an exception alike. Release
errors are logged and dropped: by then the metadata is already captured.
Expiration is reported as data; refusing expired certificates is up to
the caller.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import structlog
from railway import ErrorCode
from railway.result import Result
from railway.result_failures import ResultFailures

from dfe_core.adapters.x509_metadata import extract_metadata
from dfe_core.cache import CertificateMaterialCache
from dfe_core.domain.errors import CertificateNotFoundError
from dfe_core.domain.models import CertificateMaterial, CertificateSource, InstalledCertificate
from dfe_core.domain.ports import CertificateHandle, CertificateStore, ContainerLoader

log = structlog.get_logger()


@contextmanager
def released(handle: CertificateHandle) -> Iterator[CertificateHandle]:
    """Scope a handle: release it on exit, never letting release errors escape."""
    try:
        yield handle
    finally:
        try:
            handle.release()
        except Exception as e:
            log.warning(
                "certificate.release_failed",
                handle=type(handle).__name__,
                error=str(e),
            )


def _is_file(reference: str) -> bool:
    return bool(reference) and Path(reference).is_file()


def _not_found(message: str) -> Result[CertificateHandle]:
    error = CertificateNotFoundError(message)
    return Result.failure(ErrorCode.NOT_FOUND, message, error)


class CertificateResolver:
    """
    Resolve certificate sources into handles and metadata.

    The store is optional: without one, references that are not files
    fail with NOT_FOUND. With a cache, get_metadata() resolves each source
    fingerprint once.
    """

    def __init__(
        self,
        loader: ContainerLoader,
        store: CertificateStore | None = None,
        cache: CertificateMaterialCache | None = None,
    ) -> None:
        self._loader = loader
        self._store = store
        self._cache = cache

    @property
    def cache(self) -> CertificateMaterialCache | None:
        return self._cache

    def resolve(self, source: CertificateSource) -> Result[CertificateHandle]:
        """
        Unlock the certificate described by `source`.

        The caller owns the returned handle and must release it
        (or use `released(handle)`).
        """
        if source.data:
            log.debug("resolver.source", kind="bytes", size=len(source.data))
            return self._loader.load_bytes(source.data, source.password)

        reference = source.reference.strip()
        if _is_file(reference):
            log.debug("resolver.source", kind="file", path=reference)
            return self._loader.load_file(reference, source.password)

        if not reference:
            return _not_found("No certificate data, file or store reference given")
        if self._store is None:
            return _not_found(
                f"{reference!r} is not a file and no installed-certificate store is configured"
            )
        log.debug("resolver.source", kind="store", reference=reference)
        return self._store.find(reference, pin=source.password)

    def get_metadata(self, source: CertificateSource) -> Result[CertificateMaterial]:
        """Resolve, read expiration/subject/taxpayer ID, release. Always releases."""
        if self._cache is not None:
            return self._cache.get_or_resolve(source, self._resolve_metadata)
        return self._resolve_metadata(source)

    def _resolve_metadata(self, source: CertificateSource) -> Result[CertificateMaterial]:
        return (
            self.resolve(source)
            .flat_map(self._read_and_release)
            .peek(
                lambda material: log.info(
                    "resolver.resolved",
                    subject=material.subject_name,
                    serial=material.serial_number,
                    expires=material.expiration_date.isoformat(),
                )
            )
            .peek_failure(lambda err: log.warning("resolver.failed", failure=str(err)))
        )

    def _read_and_release(self, handle: CertificateHandle) -> Result[CertificateMaterial]:
        with released(handle):
            return Result.from_computation(
                lambda: extract_metadata(handle.certificate),
                ErrorCode.TECHNICAL_ERROR,
                "Failed to read certificate metadata",
            )

    def list_installed(self, pin: str = "") -> Result[list[InstalledCertificate]]:
        if self._store is None:
            return ResultFailures.configuration_error("No installed-certificate store is configured")
        return self._store.list_certificates(pin=pin)
