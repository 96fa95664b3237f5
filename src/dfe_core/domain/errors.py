"""
Domain error taxonomy.

These exceptions never escape the public API: they are attached to
Result failures as `FailureDescription.exception`, so callers can tell an
InvalidRange from an InvalidInput while still getting a plain ErrorCode.

Each error also inherits from the builtin matching its ErrorCode, for
callers that re-raise the cause and catch builtins:
  - ValueError      ↔ VALIDATION_ERROR
  - LookupError     ↔ NOT_FOUND
  - PermissionError ↔ AUTHENTICATION_ERROR
"""

from __future__ import annotations


class DfeError(Exception):
    """Base class for all dfe-core domain errors."""


class InvalidInputError(DfeError, ValueError):
    """A check-digit document is empty or contains non-digit characters."""


class InvalidRangeError(DfeError, ValueError):
    """A multiplier range has a non-positive bound or minimum > maximum."""


class FieldOverflowError(DfeError, ValueError):
    """An access-key field does not fit its fixed width."""

    def __init__(self, field_name: str, value: object, width: int) -> None:
        super().__init__(f"{field_name} must fit in {width} digit(s), got {value!r}")
        self.field_name = field_name
        self.value = value
        self.width = width


class CertificateNotFoundError(DfeError, LookupError):
    """No certificate source resolved to a certificate."""


class InvalidPasswordError(DfeError, PermissionError):
    """The password or PIN did not unlock the certificate."""
