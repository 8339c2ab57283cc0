"""
Convenience factory methods for the failures pkitool produces most often.

    from pkitool.railway.result_failures import ResultFailures

    # Instead of:
    Result.failure(ErrorCode.MISSING_FIELD, "certificate alias is required")

    # Write:
    ResultFailures.missing_field("certificate alias is required")
"""

from __future__ import annotations

from pathlib import Path

from pkitool.railway.failure import ErrorCode
from pkitool.railway.result import Result


class ResultFailures:
    """Factory methods for common failure types."""

    @staticmethod
    def missing_field(message: str) -> Result:
        """Required request field absent or below its threshold."""
        return Result.failure(ErrorCode.MISSING_FIELD, message)

    @staticmethod
    def not_found(resource_type: str, path: Path | str) -> Result:
        return Result.failure(ErrorCode.NOT_FOUND, f"{resource_type} not found: {path}")

    @staticmethod
    def already_exists(resource_type: str, path: Path | str) -> Result:
        return Result.failure(ErrorCode.ALREADY_EXISTS, f"{resource_type} already exists: {path}")

    @staticmethod
    def format_error(message: str, exception: BaseException | None = None) -> Result:
        """Content present but not the expected PEM block."""
        return Result.failure(ErrorCode.FORMAT_ERROR, message, exception)

    @staticmethod
    def parse_error(message: str, exception: BaseException | None = None) -> Result:
        return Result.failure(ErrorCode.PARSE_ERROR, message, exception)

    @staticmethod
    def signing_error(message: str, exception: BaseException | None = None) -> Result:
        return Result.failure(ErrorCode.SIGNING_ERROR, message, exception)

    @staticmethod
    def configuration_error(message: str) -> Result:
        return Result.failure(ErrorCode.CONFIGURATION_ERROR, message)

    @staticmethod
    def from_os_error(message: str, exception: OSError) -> Result:
        """
        Map a filesystem exception to the appropriate ErrorCode.

        Mapping:
          - FileNotFoundError → NOT_FOUND
          - any other OSError (permission, disk full, ...) → IO_ERROR
        """
        code = _map_os_error_to_code(exception)
        return Result.failure(code, f"{message}: {exception}", exception)


def _map_os_error_to_code(exception: OSError) -> ErrorCode:
    match exception:
        case FileNotFoundError():
            return ErrorCode.NOT_FOUND
        case _:
            return ErrorCode.IO_ERROR
