"""
Shared test fixtures and helpers for the pkitool test suite.

Every test gets its own empty PKI directory under pytest's tmp_path.
Keys are 2048 bits to keep the suite fast.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest
import structlog

from pkitool.adapters.pem_codec import PemPairCodec
from pkitool.adapters.storage import FilesystemAliasStorage
from pkitool.domain.models import CertRequest, DistinguishedName
from pkitool.issuance import PkiManager

TEST_KEY_SIZE = 2048


@pytest.fixture(autouse=True)
def _quiet_structlog() -> Iterator[None]:
    """Silence structlog so stdout holds only command output."""
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(logging.CRITICAL),
        cache_logger_on_first_use=False,
    )
    yield
    structlog.reset_defaults()


@pytest.fixture()
def pki_dir(tmp_path: Path) -> Path:
    """An empty directory to hold certificates and keys."""
    directory = tmp_path / "pki"
    directory.mkdir()
    return directory


@pytest.fixture()
def storage(pki_dir: Path) -> FilesystemAliasStorage:
    return FilesystemAliasStorage(pki_dir)


@pytest.fixture()
def codec(storage: FilesystemAliasStorage) -> PemPairCodec:
    return PemPairCodec(storage)


@pytest.fixture()
def manager(storage: FilesystemAliasStorage, codec: PemPairCodec) -> PkiManager:
    return PkiManager(storage, codec)


def make_request(
    alias: str,
    common_name: str,
    parent_alias: str = "",
    valid_years: int = 2,
    key_size: int = TEST_KEY_SIZE,
    **kwargs: object,
) -> CertRequest:
    """Build a CertRequest with a CN-only subject and, by default, a small test key."""
    return CertRequest(
        alias=alias,
        subject=DistinguishedName(common_name=common_name),
        valid_years=valid_years,
        key_size=key_size,
        parent_alias=parent_alias,
        **kwargs,
    )
