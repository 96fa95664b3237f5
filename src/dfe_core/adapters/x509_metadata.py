"""
X.509 metadata extraction for ICP-Brasil certificates.

Uses:
  - cryptography (PyCA): validity window, subject, serial, SAN extension
  - asn1crypto: decoding the raw DER inside subjectAltName otherName values

Where the taxpayer ID lives:
  1. The subject CN of e-CNPJ / e-CPF certificates: "EMPRESA LTDA:12345678000195"
  2. subjectAltName otherName 2.16.76.1.3.3 — the CNPJ of the legal entity
  3. subjectAltName otherName 2.16.76.1.3.1 — holder data, where characters
     9-19 are the CPF (the first 8 are the birth date DDMMYYYY)
"""

from __future__ import annotations

import re

import structlog
from asn1crypto import core
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.x509.extensions import ExtensionNotFound
from cryptography.x509.oid import NameOID, ObjectIdentifier

from dfe_core.domain.models import CertificateMaterial, InstalledCertificate

log = structlog.get_logger()

OID_ICP_BRASIL_CNPJ = ObjectIdentifier("2.16.76.1.3.3")
OID_ICP_BRASIL_PERSON = ObjectIdentifier("2.16.76.1.3.1")

SUBJECT_PREFIX = "subject:"
_SERIAL_SHAPE = re.compile(r"(0[xX])?[0-9a-fA-F: ]+")

_CNPJ_LENGTH = 14
_CPF_LENGTH = 11
_CPF_SLICE = slice(8, 8 + _CPF_LENGTH)


def _is_tax_id(value: str) -> bool:
    return value.isascii() and value.isdigit() and len(value) in (_CNPJ_LENGTH, _CPF_LENGTH)


def _tax_id_from_common_name(cert: x509.Certificate) -> str | None:
    """Digits after the last ':' of the subject CN, if they look like a CNPJ/CPF."""
    for attribute in cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME):
        value = attribute.value
        if isinstance(value, bytes):
            value = value.decode("utf-8", errors="replace")
        _, separator, suffix = value.rpartition(":")
        if separator and _is_tax_id(suffix.strip()):
            return suffix.strip()
    return None


def _decode_other_name(raw: bytes) -> str | None:
    """
    Decode an otherName value to text.

    Issuers use OCTET STRING, PrintableString, IA5String or UTF8String
    interchangeably, so load the universal type from the tag.
    """
    try:
        native = core.load(raw).native
    except (ValueError, TypeError):
        return None
    if isinstance(native, bytes):
        return native.decode("latin-1")
    if isinstance(native, str):
        return native
    return None


def _other_names(cert: x509.Certificate) -> list[x509.OtherName]:
    try:
        san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)
    except (ExtensionNotFound, ValueError):
        return []
    return san.value.get_values_for_type(x509.OtherName)


def _tax_id_from_alt_names(cert: x509.Certificate) -> str | None:
    other_names = _other_names(cert)
    for other_name in other_names:
        if other_name.type_id == OID_ICP_BRASIL_CNPJ:
            value = _decode_other_name(other_name.value)
            if value and _is_tax_id(value.strip()):
                return value.strip()
    for other_name in other_names:
        if other_name.type_id == OID_ICP_BRASIL_PERSON:
            value = _decode_other_name(other_name.value)
            cpf = value[_CPF_SLICE] if value else ""
            if _is_tax_id(cpf):
                return cpf
    return None


def extract_taxpayer_id(cert: x509.Certificate) -> str | None:
    """CNPJ or CPF of the certificate holder, or None for non ICP-Brasil certificates."""
    taxpayer_id = _tax_id_from_common_name(cert) or _tax_id_from_alt_names(cert)
    if taxpayer_id is None:
        log.warning("certificate.missing_taxpayer_id", subject=cert.subject.rfc4514_string())
    return taxpayer_id


def serial_hex(cert: x509.Certificate) -> str:
    return hex(cert.serial_number)


def extract_metadata(cert: x509.Certificate) -> CertificateMaterial:
    """Read everything callers need before the handle is released."""
    not_after = cert.not_valid_after_utc
    return CertificateMaterial(
        expiration_date=not_after.date(),
        subject_name=cert.subject.rfc4514_string(),
        taxpayer_id=extract_taxpayer_id(cert),
        serial_number=serial_hex(cert),
        not_valid_before=cert.not_valid_before_utc,
        not_valid_after=not_after,
        fingerprint=cert.fingerprint(hashes.SHA256()).hex(),
    )


def summarize(cert: x509.Certificate) -> InstalledCertificate:
    return InstalledCertificate(
        serial_number=serial_hex(cert),
        subject_name=cert.subject.rfc4514_string(),
        expiration_date=cert.not_valid_after_utc.date(),
    )


def _normalize_serial(value: str) -> str:
    cleaned = value.strip().lower().replace(":", "").replace(" ", "")
    if cleaned.startswith("0x"):
        cleaned = cleaned[2:]
    return cleaned.lstrip("0") or "0"


def _is_serial_shaped(reference: str) -> bool:
    return _SERIAL_SHAPE.fullmatch(reference) is not None


def matches_reference(cert: x509.Certificate, reference: str) -> bool:
    """
    True when `reference` names this certificate.

    A reference made only of hex digits (with optional "0x", ":" or spaces)
    is a serial number and is never compared with the subject.
    Anything else is a case-insensitive substring of the subject. Prefix
    "subject:" to search the subject for a digits-only text such as a CNPJ.
    """
    reference = reference.strip()
    if reference[:len(SUBJECT_PREFIX)].casefold() == SUBJECT_PREFIX:
        needle = reference[len(SUBJECT_PREFIX):].strip().casefold()
        return bool(needle) and needle in cert.subject.rfc4514_string().casefold()
    if not reference:
        return False
    if _is_serial_shaped(reference):
        return _normalize_serial(reference) == format(cert.serial_number, "x")
    return reference.casefold() in cert.subject.rfc4514_string().casefold()


def select_certificate(certificates: list[x509.Certificate], reference: str) -> x509.Certificate | None:
    """
    Pick the certificate named by `reference`.

    Several subject matches (a renewed certificate next to the old one)
    resolve to the one that expires last.
    """
    candidates = [cert for cert in certificates if matches_reference(cert, reference)]
    if not candidates:
        return None
    if len(candidates) > 1:
        log.info("store.multiple_matches", reference=reference, matches=len(candidates))
    return max(candidates, key=lambda cert: cert.not_valid_after_utc)
