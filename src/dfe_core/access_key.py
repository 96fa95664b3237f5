"""
Access key — build, validate, parse and format 44-digit DF-e keys.

Layout (all zero-padded, concatenated in order):

    cUF(2) AAMM(4) CNPJ(14) mod(2) serie(3) nNF(9) tpEmis(1) cNF(8) cDV(1)

generate() and parse() return Result; validate() and format_key() never
raise, because they are meant for untrusted input such as scanned QR
payloads.
"""

from __future__ import annotations

import re
from datetime import date
from typing import Final

import structlog
from railway.result import Result
from railway.result_failures import ResultFailures

from dfe_core.check_digit import calculate
from dfe_core.domain.errors import FieldOverflowError, InvalidInputError
from dfe_core.domain.models import (
    ACCESS_KEY_LENGTH,
    ACCESS_KEY_PREFIX_LENGTH,
    GENERATION,
    STANDARD,
    AccessKey,
    EmissionMode,
    StateCode,
)

log = structlog.get_logger()

TAX_ID_LENGTH: Final = 14

_GROUP = re.compile(r".{4}")
_WHITESPACE = re.compile(r"\s+")


def _fixed_width(field_name: str, value: int, width: int) -> Result[str]:
    """Zero-pad `value` to `width` digits; never truncate."""
    if value < 0 or value >= 10**width:
        error = FieldOverflowError(field_name, value, width)
        return ResultFailures.validation_error(str(error), error)
    return Result.success(str(value).zfill(width))


def _tax_id(issuer_tax_id: str) -> Result[str]:
    if len(issuer_tax_id) > TAX_ID_LENGTH:
        error = FieldOverflowError("issuer_tax_id", issuer_tax_id, TAX_ID_LENGTH)
        return ResultFailures.validation_error(str(error), error)
    if len(issuer_tax_id) != TAX_ID_LENGTH or not (issuer_tax_id.isascii() and issuer_tax_id.isdigit()):
        error = InvalidInputError(
            f"issuer_tax_id must be {TAX_ID_LENGTH} zero-padded digits, got {issuer_tax_id!r}"
        )
        return ResultFailures.validation_error(str(error), error)
    return Result.success(issuer_tax_id)


def build_prefix(
    state: StateCode | int,
    issue_date: date,
    issuer_tax_id: str,
    model: int,
    series: int,
    number: int,
    emission_mode: EmissionMode | int,
    numeric_control: int,
) -> Result[str]:
    """Concatenate the 43 characters that precede the check digit."""
    parts = [
        _fixed_width("state", int(state), 2),
        Result.success(issue_date.strftime("%y%m")),
        _tax_id(issuer_tax_id),
        _fixed_width("model", model, 2),
        _fixed_width("series", series, 3),
        _fixed_width("number", number, 9),
        _fixed_width("emission_mode", int(emission_mode), 1),
        _fixed_width("numeric_control", numeric_control, 8),
    ]
    return Result.all_of(parts).map("".join)


def generate(
    state: StateCode | int,
    issue_date: date,
    issuer_tax_id: str,
    model: int,
    series: int,
    number: int,
    emission_mode: EmissionMode | int,
    numeric_control: int,
) -> Result[AccessKey]:
    """
    Build a complete access key, check digit included.

    Returns:
      - Success(AccessKey) with 44 digits
      - Failure(VALIDATION_ERROR) carrying FieldOverflowError when a field
        does not fit its width, or InvalidInputError for a malformed tax ID
    """
    return (
        build_prefix(
            state, issue_date, issuer_tax_id, model, series, number, emission_mode, numeric_control
        )
        .flat_map(lambda prefix: calculate(prefix, GENERATION))
        .map(lambda result: AccessKey(digits=f"{result.document}{result.final_digit}"))
        .peek(lambda key: log.debug("access_key.generated", key=key.digits))
    )


def validate(candidate: object) -> bool:
    """
    Check length and check digit of an externally supplied key.

    Fails closed: anything malformed returns False, nothing raises.
    Field plausibility (real state code, month 01-12) is not checked.
    """
    if not isinstance(candidate, str):
        return False
    key = candidate.strip()
    if len(key) != ACCESS_KEY_LENGTH:
        return False
    trailing = key[-1]
    if not (trailing.isascii() and trailing.isdigit()):
        return False
    return (
        calculate(key[:ACCESS_KEY_PREFIX_LENGTH], STANDARD)
        .map(lambda result: result.final_digit == int(trailing))
        .get_or_else(False)
    )


def parse(candidate: str) -> Result[AccessKey]:
    """
    Turn a possibly formatted key ("3519 0412 ...") into an AccessKey.

    Whitespace anywhere in the input is ignored; the rest must be a valid key.
    """
    if not isinstance(candidate, str):
        return ResultFailures.validation_error(f"Access key must be a string, got {type(candidate).__name__}")
    digits = _WHITESPACE.sub("", candidate)
    if not validate(digits):
        return ResultFailures.validation_error(f"Invalid access key: {candidate!r}")
    return Result.success(AccessKey(digits=digits))


def format_key(key: str) -> str:
    """
    Insert a space after every complete group of 4 characters.

    Cosmetic only: "12345678" → "1234 5678 " (trailing space kept),
    "12" → "12". Not meant to be parsed back. Non-string input gives "".
    """
    if not isinstance(key, str):
        return ""
    return _GROUP.sub(lambda match: f"{match.group(0)} ", key)
