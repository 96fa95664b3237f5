"""
Railway-Oriented Programming (ROP) support for dfe-core.

Explicit, composable error handling — fallible operations return Result.

    from railway import Result, ErrorCode

    def require_digits(document: str) -> Result[str]:
        if not document.isdigit():
            return Result.failure(ErrorCode.VALIDATION_ERROR, "Document must be numeric")
        return Result.success(document)

    result = (
        Result.success("3519041234")
        .flat_map(require_digits)
        .map(len)
    )
"""

from railway.result import Result, Success, Failure
from railway.failure import ErrorCode, FailureDescription
from railway.result_failures import ResultFailures
from railway.assertions import ResultAssertions

__all__ = [
    "Result",
    "Success",
    "Failure",
    "ErrorCode",
    "FailureDescription",
    "ResultFailures",
    "ResultAssertions",
]

__version__ = "1.0.0"
