"""
Certificate handles — the two release policies.

The policy is picked by whoever builds the handle, so the resolver never
inspects certificate types after the fact:

  - ResettableHandle: software (A1) certificates held in memory.
    Release drops the private key and chain references.
  - UnloadableHandle: hardware (A3) token certificates.
    Release closes the PKCS#11 session, logging the token out.

Both satisfy the CertificateHandle port. release() is idempotent.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes


class ResettableHandle:
    """In-memory certificate, optionally with its private key and chain."""

    def __init__(
        self,
        certificate: x509.Certificate,
        private_key: PrivateKeyTypes | None = None,
        chain: Sequence[x509.Certificate] = (),
    ) -> None:
        self._certificate = certificate
        self._private_key = private_key
        self._chain = list(chain)
        self._released = False

    @property
    def certificate(self) -> x509.Certificate:
        return self._certificate

    @property
    def private_key(self) -> PrivateKeyTypes | None:
        return self._private_key

    @property
    def chain(self) -> list[x509.Certificate]:
        return list(self._chain)

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        self._private_key = None
        self._chain.clear()
        self._released = True

    def __repr__(self) -> str:
        return f"ResettableHandle(serial={hex(self._certificate.serial_number)}, released={self._released})"


class UnloadableHandle:
    """Certificate read from a PKCS#11 token, tied to an open session."""

    def __init__(self, certificate: x509.Certificate, session: Any) -> None:
        self._certificate = certificate
        self._session = session
        self._released = False

    @property
    def certificate(self) -> x509.Certificate:
        return self._certificate

    @property
    def session(self) -> Any:
        """The open PKCS#11 session, for a signer that needs the token key."""
        return self._session

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        if self._released:
            return
        session, self._session = self._session, None
        self._released = True
        session.close()

    def __repr__(self) -> str:
        return f"UnloadableHandle(serial={hex(self._certificate.serial_number)}, released={self._released})"
