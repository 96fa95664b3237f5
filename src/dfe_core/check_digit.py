"""
Check digit — Modulo-11 over an arbitrary numeric string.

Pure function, no I/O, safe to call from any thread.

Algorithm:
  1. Walk the document from its last character to its first
  2. Weight each digit cyclically: minimum, minimum+1, ..., maximum, minimum, ...
  3. remainder = Σ(digit × weight) mod 11
  4. remainder 0 or 1 → 0, otherwise 11 − remainder

Remainder 1 would give 10, which is not a digit; it collapses to 0.
"""

from __future__ import annotations

from itertools import cycle

from railway.result import Result
from railway.result_failures import ResultFailures

from dfe_core.domain.errors import InvalidInputError, InvalidRangeError
from dfe_core.domain.models import GENERATION, CheckDigitResult, MultiplierRange

_MODULUS = 11


def _check_range(multipliers: MultiplierRange) -> Result[MultiplierRange]:
    if multipliers.minimum <= 0 or multipliers.maximum <= 0:
        error = InvalidRangeError(
            f"Multiplier bounds must be positive, got {multipliers.minimum}..{multipliers.maximum}"
        )
        return ResultFailures.validation_error(str(error), error)
    if multipliers.minimum > multipliers.maximum:
        error = InvalidRangeError(
            f"Multiplier minimum {multipliers.minimum} exceeds maximum {multipliers.maximum}"
        )
        return ResultFailures.validation_error(str(error), error)
    return Result.success(multipliers)


def _check_document(document: str) -> Result[str]:
    if not document:
        error = InvalidInputError("Document is empty")
        return ResultFailures.validation_error(str(error), error)
    # str.isdigit() accepts non-ASCII digits such as '²'
    if not (document.isascii() and document.isdigit()):
        error = InvalidInputError(f"Document must contain only digits 0-9, got {document!r}")
        return ResultFailures.validation_error(str(error), error)
    return Result.success(document)


def _remainder(document: str, multipliers: MultiplierRange) -> int:
    weights = cycle(range(multipliers.minimum, multipliers.maximum + 1))
    total = sum(int(ch) * weight for ch, weight in zip(reversed(document), weights))
    return total % _MODULUS


def _digit_for(remainder: int) -> int:
    if remainder < 2:
        return 0
    return _MODULUS - remainder


def calculate(
    document: str,
    multipliers: MultiplierRange = GENERATION,
) -> Result[CheckDigitResult]:
    """
    Compute the Modulo-11 check digit of `document`.

    Returns:
      - Success(CheckDigitResult) with final_digit in 0..9
      - Failure(VALIDATION_ERROR) carrying InvalidInputError for an empty or
        non-numeric document, or InvalidRangeError for bad multiplier bounds
    """
    return _check_range(multipliers).flat_map(
        lambda valid_range: _check_document(document).map(
            lambda valid_document: _build_result(valid_document, valid_range)
        )
    )


def _build_result(document: str, multipliers: MultiplierRange) -> CheckDigitResult:
    remainder = _remainder(document, multipliers)
    return CheckDigitResult(
        document=document,
        multiplier_range=multipliers,
        remainder=remainder,
        final_digit=_digit_for(remainder),
    )


def calculate_digit(
    document: str,
    multiplier_min: int = GENERATION.minimum,
    multiplier_max: int = GENERATION.maximum,
) -> Result[int]:
    """Shortcut for callers that only want the digit."""
    return calculate(document, MultiplierRange(multiplier_min, multiplier_max)).map(
        lambda result: result.final_digit
    )
