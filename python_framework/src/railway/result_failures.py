"""
Shorthands for the failures dfe-core raises most often.

    ResultFailures.validation_error(str(error), error)

reads better at the call site than spelling out
Result.failure(ErrorCode.VALIDATION_ERROR, ...) every time. Each factory
takes the typed domain error as `exception`, so callers can still tell
an InvalidRangeError from an InvalidInputError behind the same code.
"""

from __future__ import annotations

from typing import Any

from railway.failure import ErrorCode
from railway.result import Result


class ResultFailures:
    """One factory per ErrorCode the library produces."""

    @staticmethod
    def validation_error(message: str, exception: BaseException | None = None) -> Result[Any]:
        """Malformed caller input: non-numeric documents, overflowing fields, bad ranges."""
        return Result.failure(ErrorCode.VALIDATION_ERROR, message, exception)

    @staticmethod
    def authentication_error(message: str, exception: BaseException | None = None) -> Result[Any]:
        """Wrong container password or token PIN."""
        return Result.failure(ErrorCode.AUTHENTICATION_ERROR, message, exception)

    @staticmethod
    def technical_error(message: str, exception: BaseException | None = None) -> Result[Any]:
        return Result.failure(ErrorCode.TECHNICAL_ERROR, message, exception)

    @staticmethod
    def configuration_error(message: str) -> Result[Any]:
        return Result.failure(ErrorCode.CONFIGURATION_ERROR, message)
