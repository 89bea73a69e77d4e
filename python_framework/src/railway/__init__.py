"""
Railway-Oriented Programming helpers used by nfe-downloader.

    from railway import ErrorCode, Result

    def require_digits(text: str) -> Result[str]:
        if not text.isdigit():
            return Result.failure(ErrorCode.VALIDATION_ERROR, "digits only")
        return Result.success(text)
"""

from railway.assertions import ResultAssertions
from railway.execution import (
    ExecutionContext,
    LoggingExecutionContext,
    NoOpExecutionContext,
)
from railway.failure import ErrorCode, FailureDescription
from railway.result import Failure, Result, Success

__all__ = [
    "Result",
    "Success",
    "Failure",
    "ErrorCode",
    "FailureDescription",
    "ExecutionContext",
    "NoOpExecutionContext",
    "LoggingExecutionContext",
    "ResultAssertions",
]

__version__ = "1.1.0"
