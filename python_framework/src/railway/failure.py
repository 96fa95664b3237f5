"""
Failure description — what went wrong, on the failure track.

An ErrorCode says which kind of failure it is, the message says what
happened, and the optional exception keeps the typed cause (a domain
error such as InvalidPasswordError, or the library exception behind a
TECHNICAL_ERROR) for callers that need more than the code.
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum, unique


@unique
class ErrorCode(Enum):
    """
    Failure classes.

    Caller errors: VALIDATION_ERROR, AUTHENTICATION_ERROR, NOT_FOUND.
    Environment errors: TECHNICAL_ERROR, CONFIGURATION_ERROR.
    """

    VALIDATION_ERROR = "VALIDATION_ERROR"
    """Non-numeric documents, overflowing fields, bad multiplier ranges, malformed keys."""

    AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
    """The container password or token PIN was rejected."""

    NOT_FOUND = "NOT_FOUND"
    """No certificate, token or store entry matches the request."""

    TECHNICAL_ERROR = "TECHNICAL_ERROR"
    """Corrupt containers, unreadable files, PKCS#11 module failures."""

    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    """The requested operation needs settings that are missing or ambiguous."""


@dataclass(frozen=True, slots=True)
class FailureDescription:
    """
    Immutable failure record.

    >>> FailureDescription(ErrorCode.NOT_FOUND, "No certificate matches 0x1a2b")
    FailureDescription(code=<ErrorCode.NOT_FOUND: 'NOT_FOUND'>, message='No certificate matches 0x1a2b')

    `timestamp` is when the failure was recorded (UTC); it is ignored
    when Results are compared.
    """

    code: ErrorCode
    message: str
    exception: BaseException | None = field(default=None, repr=False)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC), repr=False)

    def full_stack_trace(self) -> str:
        """The message, followed by the formatted exception and its cause chain when present."""
        if self.exception is None:
            return self.message
        formatted = traceback.format_exception(self.exception)
        return f"{self.message}\n{''.join(formatted)}"

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"
