"""
Failure description — what travels down the failure track.

A FailureDescription pairs an ErrorCode with a human-readable message and,
when the failure came from a caught exception, the exception itself so the
traceback is not lost.
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum, unique


@unique
class ErrorCode(Enum):
    """
    Error categories used on the failure track.

    Callers decide fatality from the code: configuration and authentication
    failures stop a run, the rest are scoped to the item that produced them.
    """

    VALIDATION_ERROR = "VALIDATION_ERROR"
    """Input does not have the expected shape or content."""

    NOT_FOUND = "NOT_FOUND"
    """A referenced resource does not exist."""

    AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
    """A credential could not be loaded or is not currently usable."""

    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    """Settings or required files are missing or malformed."""

    STORAGE_ERROR = "STORAGE_ERROR"
    """Writing or reading persisted artifacts failed."""

    TECHNICAL_ERROR = "TECHNICAL_ERROR"
    """Unexpected failure inside a computation."""

    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    """Anything that could not be classified."""


@dataclass(frozen=True, slots=True)
class FailureDescription:
    """
    Immutable failure descriptor.

    >>> desc = FailureDescription(ErrorCode.VALIDATION_ERROR, "key too short")
    >>> desc.code
    <ErrorCode.VALIDATION_ERROR: 'VALIDATION_ERROR'>
    """

    code: ErrorCode
    message: str
    exception: BaseException | None = field(default=None, repr=False)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def with_context(self, prefix: str) -> FailureDescription:
        """Return a copy whose message is prefixed, keeping code and exception."""
        return FailureDescription(
            code=self.code,
            message=f"{prefix}: {self.message}",
            exception=self.exception,
            timestamp=self.timestamp,
        )

    def full_stack_trace(self) -> str:
        """Message followed by the formatted exception chain, if any."""
        if self.exception is None:
            return self.message
        tb = "".join(
            traceback.format_exception(
                type(self.exception), self.exception, self.exception.__traceback__
            )
        )
        return f"{self.message}\n{tb}"

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"
