"""
Failure description: structured error information for the failure track.

Every failing operation in pkitool carries an ErrorCode plus a human
readable message, and optionally the exception that caused it.
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum, unique
from typing import Optional


@unique
class ErrorCode(Enum):
    """
    Error kinds surfaced by pkitool operations.

    Validation failures are reported before any I/O or key generation;
    everything else comes from the storage, codec or signing layers.
    """

    MISSING_FIELD = "MISSING_FIELD"
    """Alias, subject or parent alias absent, or validity years below threshold."""

    NOT_FOUND = "NOT_FOUND"
    """Certificate or private key file for an alias does not exist."""

    FORMAT_ERROR = "FORMAT_ERROR"
    """File content is not a PEM block, or the block type is not the expected one."""

    PARSE_ERROR = "PARSE_ERROR"
    """PEM block decoded but its DER content is not a valid certificate or RSA key."""

    ALREADY_EXISTS = "ALREADY_EXISTS"
    """A certificate or private key file is already stored under the alias."""

    IO_ERROR = "IO_ERROR"
    """Permission, disk or other filesystem failure."""

    SIGNING_ERROR = "SIGNING_ERROR"
    """Key generation or certificate signing failed."""

    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    """Invalid settings or command-line arguments."""

    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    """Unexpected, unclassified failure."""


@dataclass(frozen=True, slots=True)
class FailureDescription:
    """
    Immutable failure descriptor: error code, message, optional exception and timestamp.

    >>> desc = FailureDescription(ErrorCode.MISSING_FIELD, "certificate alias is required")
    >>> desc.code
    <ErrorCode.MISSING_FIELD: 'MISSING_FIELD'>
    """

    code: ErrorCode
    message: str
    exception: Optional[BaseException] = field(default=None, repr=False)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def full_stack_trace(self) -> str:
        """Message followed by the formatted exception chain, if any."""
        if self.exception is None:
            return self.message
        tb = "".join(
            traceback.format_exception(type(self.exception), self.exception, self.exception.__traceback__)
        )
        return f"{self.message}\n{tb}"

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"
