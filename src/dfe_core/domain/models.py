"""
Domain models — immutable value objects for access keys and certificates.

These are pure value objects with no behavior beyond slicing their own
fixed layouts. All models are frozen dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import IntEnum, unique

ACCESS_KEY_LENGTH = 44
ACCESS_KEY_PREFIX_LENGTH = 43


@unique
class StateCode(IntEnum):
    """IBGE numeric codes of the issuing state (cUF)."""

    RO = 11
    AC = 12
    AM = 13
    RR = 14
    PA = 15
    AP = 16
    TO = 17
    MA = 21
    PI = 22
    CE = 23
    RN = 24
    PB = 25
    PE = 26
    AL = 27
    SE = 28
    BA = 29
    MG = 31
    ES = 32
    RJ = 33
    SP = 35
    PR = 41
    SC = 42
    RS = 43
    MS = 50
    MT = 51
    GO = 52
    DF = 53
    AN = 91
    EX = 99


@unique
class EmissionMode(IntEnum):
    """Emission mode codes (tpEmis)."""

    NORMAL = 1
    CONTINGENCY_FS = 2
    CONTINGENCY_SCAN = 3
    CONTINGENCY_EPEC = 4
    CONTINGENCY_FSDA = 5
    CONTINGENCY_SVCAN = 6
    CONTINGENCY_SVCRS = 7
    CONTINGENCY_SVCSP = 8
    CONTINGENCY_OFFLINE = 9


@dataclass(frozen=True, slots=True)
class MultiplierRange:
    """
    Cyclic weight bounds for the Modulo-11 calculation.

    Weights start at `minimum` on the rightmost digit and wrap back to
    `minimum` after `maximum`. Bounds are checked by the calculator, not
    here, so a malformed range can still be described and reported.
    """

    minimum: int
    maximum: int


# Used when minting a new key.
GENERATION = MultiplierRange(2, 9)
# Used when re-deriving the digit of an existing key.
STANDARD = MultiplierRange(2, 9)


@dataclass(frozen=True, slots=True)
class CheckDigitResult:
    """Outcome of one Modulo-11 calculation."""

    document: str
    multiplier_range: MultiplierRange
    remainder: int
    final_digit: int


@dataclass(frozen=True, slots=True)
class AccessKeyFields:
    """The fixed-width fields of a 44-digit access key, as strings."""

    state_code: str
    year_month: str
    issuer_tax_id: str
    model: str
    series: str
    number: str
    emission_mode: str
    numeric_control: str
    check_digit: str


@dataclass(frozen=True, slots=True)
class AccessKey:
    """
    A complete 44-digit DF-e access key.

    Only the generator and the parser build these; both guarantee the
    length, the all-digit content and a matching check digit.
    """

    digits: str

    @property
    def check_digit(self) -> int:
        return int(self.digits[-1])

    @property
    def prefix(self) -> str:
        """The 43 characters the check digit is computed over."""
        return self.digits[:ACCESS_KEY_PREFIX_LENGTH]

    @property
    def fields(self) -> AccessKeyFields:
        d = self.digits
        return AccessKeyFields(
            state_code=d[0:2],
            year_month=d[2:6],
            issuer_tax_id=d[6:20],
            model=d[20:22],
            series=d[22:25],
            number=d[25:34],
            emission_mode=d[34:35],
            numeric_control=d[35:43],
            check_digit=d[43:44],
        )

    def __str__(self) -> str:
        return self.digits


@dataclass(frozen=True, slots=True)
class CertificateSource:
    """
    Where a certificate comes from.

    `data` wins when non-empty; otherwise `reference` is tried as a file
    path and then as an installed-store reference (serial or subject).
    """

    data: bytes | None = field(default=None, repr=False)
    reference: str = ""
    password: str = field(default="", repr=False)


@dataclass(frozen=True, slots=True)
class CertificateMaterial:
    """
    Metadata read from a resolved certificate.

    Plain data: it stays valid after the native handle is released.
    `taxpayer_id` is the CNPJ (or CPF) embedded by ICP-Brasil issuers,
    or None when the certificate carries neither.
    """

    expiration_date: date
    subject_name: str
    taxpayer_id: str | None
    serial_number: str
    not_valid_before: datetime
    not_valid_after: datetime
    fingerprint: str

    def is_expired(self, today: date) -> bool:
        return today > self.expiration_date


@dataclass(frozen=True, slots=True)
class InstalledCertificate:
    """Summary of one entry in an installed-certificate store."""

    serial_number: str
    subject_name: str
    expiration_date: date
