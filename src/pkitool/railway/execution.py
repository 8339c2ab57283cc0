"""
Execution contexts: separate WHAT (the operation) from HOW it is run.

The CLI wraps every command in a LoggingExecutionContext so each invocation
logs its start, duration and outcome without the issuance code knowing
about it.

    ctx = LoggingExecutionContext(operation="create-ca")
    result = ctx.execute(lambda: manager.issue_root_ca(request))
"""

from __future__ import annotations

import time
from typing import Callable, Protocol, TypeVar, runtime_checkable

import structlog

from pkitool.railway.failure import ErrorCode, FailureDescription
from pkitool.railway.result import Failure, Result

T = TypeVar("T")
log = structlog.get_logger()


@runtime_checkable
class ExecutionContext(Protocol):
    """Anything with execute(computation) satisfies this protocol."""

    def execute(self, computation: Callable[[], Result[T]]) -> Result[T]: ...


class NoOpExecutionContext:
    """Passthrough context: runs the computation as-is. Used in tests."""

    def execute(self, computation: Callable[[], Result[T]]) -> Result[T]:
        return computation()


class LoggingExecutionContext:
    """
    Execution context that logs entry, exit, duration and result state.

    Wraps another context (decorator pattern). An exception escaping the
    computation is converted into an UNKNOWN_ERROR failure.
    """

    def __init__(
        self,
        inner: ExecutionContext | None = None,
        operation: str = "unknown",
    ) -> None:
        self._inner = inner or NoOpExecutionContext()
        self._operation = operation

    def execute(self, computation: Callable[[], Result[T]]) -> Result[T]:
        log.debug("execution.started", operation=self._operation)
        start = time.monotonic()

        try:
            result = self._inner.execute(computation)
        except Exception as e:
            log.error(
                "execution.crashed",
                operation=self._operation,
                elapsed=round(time.monotonic() - start, 3),
                error=str(e),
            )
            return Failure(
                FailureDescription(ErrorCode.UNKNOWN_ERROR, f"Execution failed: {e}", e)
            )

        elapsed = round(time.monotonic() - start, 3)
        if result.is_success():
            log.info("execution.completed", operation=self._operation, elapsed=elapsed)
        else:
            log.warning(
                "execution.failed",
                operation=self._operation,
                elapsed=elapsed,
                code=result.error().code.value,
                reason=result.error().message,
            )
        return result
