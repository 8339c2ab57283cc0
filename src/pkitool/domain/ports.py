"""
Ports: Protocol-based interfaces for the storage adapters.

The issuance engine depends on these contracts only:

  PkiManager ← Ports (protocols) ← Adapters (filesystem, PEM codec)

Each port is a Protocol, so adapters satisfy it structurally and tests can
substitute fakes without inheritance.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from pkitool.domain.models import PairHolder
from pkitool.railway.result import Result


@runtime_checkable
class AliasStorage(Protocol):
    """
    Port: map an alias to its certificate file and private key file.

    Alias `A` owns exactly two entries, the certificate file and the key
    file. Either both exist or neither does; an interrupted write can break
    that, and nothing here repairs it.
    """

    def path_for(self, alias: str, private: bool) -> Path:
        """Pure path construction, no I/O."""
        ...

    def exists(self, alias: str, private: bool) -> Result[bool]:
        """
        Success(False) only when the file is truly absent.

        Any other stat failure is a Failure, not a plain False.
        """
        ...

    def read(self, alias: str, private: bool) -> Result[bytes]: ...

    def write(self, alias: str, private: bool, data: bytes, mode: int) -> Result[Path]: ...

    def delete(self, alias: str) -> Result[str]:
        """Remove both files. Missing files are not an error."""
        ...

    def list_aliases(self) -> Result[frozenset[str]]: ...


@runtime_checkable
class PairCodec(Protocol):
    """
    Port: persist and restore a certificate/private key pair by alias.

    The implementation enforces block types on load: a certificate file
    must hold a CERTIFICATE block, a key file an RSA PRIVATE KEY block.
    """

    def save(self, certificate_der: bytes, private_key_der: bytes, alias: str) -> Result[str]: ...

    def load(self, alias: str) -> Result[PairHolder]: ...
