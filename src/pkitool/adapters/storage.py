"""
Filesystem storage adapter: alias → certificate/private key files.

Adapter layer: implements the AliasStorage port on a single flat directory.

Layout:
  <directory>/<alias>.pem   certificate
  <directory>/<alias>.key   private key

OS errors are caught here and turned into Result failures:
FileNotFoundError becomes NOT_FOUND, everything else IO_ERROR. No locking:
two processes writing the same alias can interleave their writes.
"""

from __future__ import annotations

import os
from pathlib import Path

import structlog

from pkitool.railway.result import Result
from pkitool.railway.result_failures import ResultFailures

log = structlog.get_logger()

CERT_SUFFIX = ".pem"
KEY_SUFFIX = ".key"


def _describe(private: bool) -> str:
    return "private key file" if private else "certificate file"


class FilesystemAliasStorage:
    """
    Store each alias as two files in one directory.

    Implements the AliasStorage port.
    """

    def __init__(self, directory: Path | str) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, alias: str, private: bool) -> Path:
        suffix = KEY_SUFFIX if private else CERT_SUFFIX
        return self._directory / f"{alias}{suffix}"

    def exists(self, alias: str, private: bool) -> Result[bool]:
        """
        Probe for the alias file.

        Three outcomes: Success(True), Success(False) when the file is
        absent, Failure(IO_ERROR) when stat fails for any other reason.
        """
        path = self.path_for(alias, private)
        try:
            path.stat()
        except FileNotFoundError:
            return Result.success(False)
        except OSError as e:
            return ResultFailures.from_os_error(f"Cannot stat {path}", e)
        return Result.success(True)

    def read(self, alias: str, private: bool) -> Result[bytes]:
        path = self.path_for(alias, private)
        try:
            return Result.success(path.read_bytes())
        except FileNotFoundError:
            return ResultFailures.not_found(_describe(private), path)
        except OSError as e:
            return ResultFailures.from_os_error(f"Cannot read {path}", e)

    def write(self, alias: str, private: bool, data: bytes, mode: int) -> Result[Path]:
        """
        Write the file and force its permission bits to `mode`.

        The mode is applied at creation and again with chmod, so the umask
        and any pre-existing file mode never leave a key group-readable.
        """
        path = self.path_for(alias, private)
        try:
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
            os.chmod(path, mode)
        except OSError as e:
            return ResultFailures.from_os_error(f"Cannot write {path}", e)
        log.debug("storage.written", path=str(path), mode=oct(mode), size=len(data))
        return Result.success(path)

    def delete(self, alias: str) -> Result[str]:
        """
        Remove the private key file, then the certificate file.

        Absent files count as removed. Any other failure is returned right
        away, so the key may already be gone when the certificate removal
        fails.
        """
        for private in (True, False):
            path = self.path_for(alias, private)
            try:
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError as e:
                return ResultFailures.from_os_error(f"Cannot remove {path}", e)
        log.info("storage.deleted", alias=alias, directory=str(self._directory))
        return Result.success(alias)

    def list_aliases(self) -> Result[frozenset[str]]:
        """Every alias that has a certificate or key file, each listed once."""
        try:
            names = [entry.name for entry in os.scandir(self._directory)]
        except OSError as e:
            return ResultFailures.from_os_error(f"Cannot list {self._directory}", e)
        return Result.success(
            frozenset(
                _strip_suffix(name)
                for name in names
                if _is_alias_filename(name)
            )
        )


def _is_alias_filename(name: str) -> bool:
    return any(
        name.endswith(suffix) and len(name) > len(suffix)
        for suffix in (CERT_SUFFIX, KEY_SUFFIX)
    )


def _strip_suffix(name: str) -> str:
    # both suffixes are four characters long
    return name[: -len(CERT_SUFFIX)]
