"""
Railway-Oriented Programming support for pkitool.

Explicit, composable error handling: issuance, storage and codec operations
return Result[T] instead of raising.

    from pkitool.railway import Result, ErrorCode

    def require_alias(request: CertRequest) -> Result[CertRequest]:
        if not request.alias:
            return Result.failure(ErrorCode.MISSING_FIELD, "certificate alias is required")
        return Result.success(request)
"""

from pkitool.railway.result import Result, Success, Failure
from pkitool.railway.failure import ErrorCode, FailureDescription
from pkitool.railway.execution import (
    ExecutionContext,
    NoOpExecutionContext,
    LoggingExecutionContext,
)
from pkitool.railway.result_failures import ResultFailures
from pkitool.railway.assertions import ResultAssertions

__all__ = [
    "Result",
    "Success",
    "Failure",
    "ErrorCode",
    "FailureDescription",
    "ExecutionContext",
    "NoOpExecutionContext",
    "LoggingExecutionContext",
    "ResultFailures",
    "ResultAssertions",
]
