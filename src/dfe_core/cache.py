"""
Metadata cache — resolve each certificate source once per fingerprint.

Keys are fingerprints of the source, not of the object holding it:

  bytes     → "bytes:<sha256 of the data>:<secret>"
  file      → "file:<resolved path>:<mtime_ns>:<size>:<secret>"
  reference → "store:<reference>:<secret>"

<secret> is the SHA-256 of the password or PIN, so a hit never skips the
unlock check for a password that was not the one first accepted.

Replacing a .pfx on disk changes its key, so stale entries are never
served for files. Store references only change through invalidate().

Not synchronized: two threads missing the same key at once both resolve,
and the later write wins. Resolution is idempotent, so both see the same
metadata.
"""

from __future__ import annotations

import hashlib
from collections.abc import Callable
from pathlib import Path

import structlog
from railway.result import Result

from dfe_core.domain.models import CertificateMaterial, CertificateSource

log = structlog.get_logger()


def _locator(source: CertificateSource) -> str:
    if source.data:
        return f"bytes:{hashlib.sha256(source.data).hexdigest()}"
    reference = source.reference.strip()
    path = Path(reference)
    if reference and path.is_file():
        stat = path.stat()
        return f"file:{path.resolve()}:{stat.st_mtime_ns}:{stat.st_size}"
    return f"store:{reference}"


def source_fingerprint(source: CertificateSource) -> str:
    secret = hashlib.sha256(source.password.encode("utf-8")).hexdigest()
    return f"{_locator(source)}:{secret}"


class CertificateMaterialCache:
    """Keyed cache of successful metadata resolutions. Failures are never cached."""

    def __init__(self) -> None:
        self._entries: dict[str, CertificateMaterial] = {}

    def get_or_resolve(
        self,
        source: CertificateSource,
        resolve: Callable[[CertificateSource], Result[CertificateMaterial]],
    ) -> Result[CertificateMaterial]:
        key = source_fingerprint(source)
        cached = self._entries.get(key)
        if cached is not None:
            return Result.success(cached)
        log.debug("cache.miss", key=key.split(":", 1)[0])
        return resolve(source).peek(lambda material: self._entries.__setitem__(key, material))

    def invalidate(self, source: CertificateSource) -> bool:
        """Drop the entry for `source`; True if there was one."""
        return self._entries.pop(source_fingerprint(source), None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, source: object) -> bool:
        return isinstance(source, CertificateSource) and source_fingerprint(source) in self._entries
