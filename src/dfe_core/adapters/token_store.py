"""
PKCS#11 token store — A3 certificates on smart cards and USB tokens.

Adapter layer — implements the CertificateStore port using python-pkcs11.
The password given to the resolver is the token PIN; without one the
session is opened without login, which is enough to read public
certificate objects on most tokens.

Handles are UnloadableHandle: the session stays open so a signer can use
the token key, and releasing the handle closes it.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import structlog
from cryptography import x509
from pkcs11 import Attribute, ObjectClass
from pkcs11 import lib as pkcs11_lib
from pkcs11.exceptions import (
    MultipleTokensReturned,
    NoSuchToken,
    PinIncorrect,
    PinLenRange,
    PinLocked,
)
from railway import ErrorCode
from railway.result import Result
from railway.result_failures import ResultFailures

from dfe_core.adapters.handles import UnloadableHandle
from dfe_core.adapters.x509_metadata import select_certificate, summarize
from dfe_core.domain.errors import CertificateNotFoundError, InvalidPasswordError
from dfe_core.domain.models import InstalledCertificate
from dfe_core.domain.ports import CertificateHandle

log = structlog.get_logger()


def _read_certificates(session: Any) -> list[x509.Certificate]:
    objects = session.get_objects({Attribute.CLASS: ObjectClass.CERTIFICATE})
    return [x509.load_der_x509_certificate(obj[Attribute.VALUE]) for obj in objects]


class Pkcs11CertificateStore:
    """
    Certificates stored on a PKCS#11 token.

    `library_factory` loads the vendor module (`pkcs11.lib` by default);
    tests replace it with a fake.
    """

    def __init__(
        self,
        library_path: str,
        token_label: str | None = None,
        library_factory: Callable[[str], Any] = pkcs11_lib,
    ) -> None:
        self._library_path = library_path
        self._token_label = token_label
        self._library_factory = library_factory

    def _token(self) -> Result[Any]:
        try:
            library = self._library_factory(self._library_path)
            return Result.success(library.get_token(token_label=self._token_label))
        except NoSuchToken as e:
            error = CertificateNotFoundError(f"No PKCS#11 token labelled {self._token_label!r}")
            error.__cause__ = e
            return Result.failure(ErrorCode.NOT_FOUND, str(error), error)
        except MultipleTokensReturned as e:
            return Result.failure(
                ErrorCode.CONFIGURATION_ERROR,
                "Several PKCS#11 tokens present; set a token label",
                e,
            )
        except Exception as e:
            return ResultFailures.technical_error(
                f"Failed to load PKCS#11 library {self._library_path}", e
            )

    def _open(self, token: Any, pin: str) -> Result[Any]:
        try:
            session = token.open(user_pin=pin) if pin else token.open()
        except (PinIncorrect, PinLenRange, PinLocked) as e:
            error = InvalidPasswordError(f"PIN rejected by token {getattr(token, 'label', '?')!r}")
            error.__cause__ = e
            return ResultFailures.authentication_error(str(error), error)
        except Exception as e:
            return ResultFailures.technical_error("Failed to open PKCS#11 session", e)
        log.debug("token.session_opened", token=getattr(token, "label", None), logged_in=bool(pin))
        return Result.success(session)

    def _session(self, pin: str) -> Result[Any]:
        return self._token().flat_map(lambda token: self._open(token, pin))

    def find(self, reference: str, pin: str = "") -> Result[CertificateHandle]:
        return self._session(pin).flat_map(lambda session: self._find_in(session, reference))

    def _find_in(self, session: Any, reference: str) -> Result[CertificateHandle]:
        """On success the session is handed to the handle; otherwise it is closed here."""
        try:
            certificate = select_certificate(_read_certificates(session), reference)
        except Exception as e:
            session.close()
            return ResultFailures.technical_error("Failed to read certificates from token", e)

        if certificate is None:
            session.close()
            error = CertificateNotFoundError(f"No certificate on token matches {reference!r}")
            return Result.failure(ErrorCode.NOT_FOUND, str(error), error)
        return Result.success(UnloadableHandle(certificate, session))

    def list_certificates(self, pin: str = "") -> Result[list[InstalledCertificate]]:
        return self._session(pin).flat_map(self._list_in)

    def _list_in(self, session: Any) -> Result[list[InstalledCertificate]]:
        try:
            return Result.from_computation(
                lambda: [summarize(cert) for cert in _read_certificates(session)],
                ErrorCode.TECHNICAL_ERROR,
                "Failed to read certificates from token",
            )
        finally:
            session.close()
