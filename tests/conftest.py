"""
Shared test fixtures and helpers for the dfe-core test suite.

Certificates are minted on the fly with cryptography: self-signed EC
certificates shaped like ICP-Brasil ones (CNPJ in the CN suffix, or in a
subjectAltName otherName), optionally wrapped in a PKCS#12 container.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
import structlog
from asn1crypto import core
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import pkcs12
from cryptography.x509.oid import NameOID

from dfe_core.domain.models import CertificateSource

COMPANY_CN = "EMPRESA TESTE LTDA:12345678000195"
COMPANY_CNPJ = "12345678000195"
PFX_PASSWORD = "secret"

# Example from the NF-e manual; check digit 7.
SAMPLE_KEY = "35190412345678000195550011234567891876543217"


def make_key() -> ec.EllipticCurvePrivateKey:
    return ec.generate_private_key(ec.SECP256R1())


def make_certificate(
    common_name: str = COMPANY_CN,
    serial: int = 0x1A2B3C,
    not_before: datetime | None = None,
    days: int = 365,
    other_names: Sequence[x509.OtherName] = (),
    key: ec.EllipticCurvePrivateKey | None = None,
) -> x509.Certificate:
    """
    Build a self-signed certificate.

    `days` may be negative together with an old `not_before` to get an
    already expired certificate.
    """
    key = key or make_key()
    start = not_before or datetime.now(UTC) - timedelta(days=1)
    name = x509.Name([
        x509.NameAttribute(NameOID.COUNTRY_NAME, "BR"),
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, "ICP-Brasil"),
        x509.NameAttribute(NameOID.COMMON_NAME, common_name),
    ])
    builder = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(serial)
        .not_valid_before(start)
        .not_valid_after(start + timedelta(days=days))
    )
    if other_names:
        builder = builder.add_extension(x509.SubjectAlternativeName(list(other_names)), critical=False)
    return builder.sign(key, hashes.SHA256())


def other_name(oid: str, value: str) -> x509.OtherName:
    """An otherName SAN entry carrying `value` as an OCTET STRING."""
    return x509.OtherName(x509.ObjectIdentifier(oid), core.OctetString(value.encode("latin-1")).dump())


def make_pfx(
    certificate: x509.Certificate | None = None,
    key: ec.EllipticCurvePrivateKey | None = None,
    password: str = PFX_PASSWORD,
) -> bytes:
    """
    PKCS#12 bytes holding a key and its certificate; unencrypted when password is empty.

    A given `certificate` must have been signed with the given `key`.
    """
    key = key or make_key()
    certificate = certificate or make_certificate(key=key)
    encryption = (
        serialization.BestAvailableEncryption(password.encode())
        if password
        else serialization.NoEncryption()
    )
    return pkcs12.serialize_key_and_certificates(b"dfe-test", key, certificate, None, encryption)


def pem_bytes(certificate: x509.Certificate) -> bytes:
    return certificate.public_bytes(serialization.Encoding.PEM)


def der_bytes(certificate: x509.Certificate) -> bytes:
    return certificate.public_bytes(serialization.Encoding.DER)


# ─────────────────────── Fixtures ───────────────────────


@pytest.fixture()
def company_key() -> ec.EllipticCurvePrivateKey:
    return make_key()


@pytest.fixture()
def company_certificate(company_key: ec.EllipticCurvePrivateKey) -> x509.Certificate:
    """A valid e-CNPJ style certificate, CNPJ in the CN suffix."""
    return make_certificate(key=company_key)


@pytest.fixture()
def company_pfx(company_certificate: x509.Certificate, company_key: ec.EllipticCurvePrivateKey) -> bytes:
    """PKCS#12 container protected by PFX_PASSWORD."""
    return make_pfx(company_certificate, company_key)


@pytest.fixture()
def pfx_file(tmp_path: Path, company_pfx: bytes) -> Path:
    path = tmp_path / "empresa.pfx"
    path.write_bytes(company_pfx)
    return path


@pytest.fixture()
def bytes_source(company_pfx: bytes) -> CertificateSource:
    return CertificateSource(data=company_pfx, password=PFX_PASSWORD)


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Undo configure_structlog() so no test logs into another test's captured stream."""
    yield
    structlog.reset_defaults()
