"""
PEM pair codec: certificate/private key pair ⇄ PEM files.

Adapter layer: implements the PairCodec port on top of AliasStorage using:
  - asn1crypto: armor / unarmor of typed PEM blocks, PKCS#1 structure check
  - cryptography (PyCA): DER parsing of the certificate and PKCS#1 RSA key

Save:
  DER bytes → "CERTIFICATE" block     → <alias>.pem (0640)
  DER bytes → "RSA PRIVATE KEY" block → <alias>.key (0400)

Load (certificate first, then key):
  read file → unarmor → check block type → parse DER → PairHolder

Failure mapping:
  file missing                      → NOT_FOUND
  no PEM block / wrong block type   → FORMAT_ERROR
  malformed DER / non-PKCS#1 key    → PARSE_ERROR
"""

from __future__ import annotations

import structlog
from asn1crypto import keys, pem
from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from pkitool.domain.models import PairHolder
from pkitool.domain.ports import AliasStorage
from pkitool.railway.result import Result
from pkitool.railway.result_failures import ResultFailures

log = structlog.get_logger()

TYPE_CERTIFICATE = "CERTIFICATE"
TYPE_RSA_PRIVATE_KEY = "RSA PRIVATE KEY"

CERT_FILE_MODE = 0o640
KEY_FILE_MODE = 0o400


class PemPairCodec:
    """
    Persist pairs as PEM files through an AliasStorage.

    Implements the PairCodec port. The key file is never group- or
    world-readable.
    """

    def __init__(self, storage: AliasStorage) -> None:
        self._storage = storage

    def save(self, certificate_der: bytes, private_key_der: bytes, alias: str) -> Result[str]:
        """
        Armor both blobs and write certificate, then key.

        The two writes are independent: if the key write fails the
        certificate file is left behind.
        """
        cert_pem = pem.armor(TYPE_CERTIFICATE, certificate_der)
        key_pem = pem.armor(TYPE_RSA_PRIVATE_KEY, private_key_der)
        return (
            self._storage.write(alias, False, cert_pem, CERT_FILE_MODE)
            .flat_map(lambda _: self._storage.write(alias, True, key_pem, KEY_FILE_MODE))
            .peek(lambda _: log.info("pair.saved", alias=alias))
            .map(lambda _: alias)
        )

    def load(self, alias: str) -> Result[PairHolder]:
        return self._load_certificate(alias).flat_map(
            lambda cert: self._load_private_key(alias).map(
                lambda key: PairHolder(certificate=cert, private_key=key)
            )
        )

    def _load_certificate(self, alias: str) -> Result[x509.Certificate]:
        path = self._storage.path_for(alias, False)
        return (
            self._storage.read(alias, False)
            .flat_map(lambda data: _unarmor(data, TYPE_CERTIFICATE, f"can't load certificate from {path}"))
            .flat_map(lambda der: _parse_certificate(der, path))
        )

    def _load_private_key(self, alias: str) -> Result[rsa.RSAPrivateKey]:
        path = self._storage.path_for(alias, True)
        return (
            self._storage.read(alias, True)
            .flat_map(lambda data: _unarmor(data, TYPE_RSA_PRIVATE_KEY, f"can't load private key from {path}"))
            .flat_map(lambda der: _parse_private_key(der, path))
        )


def _unarmor(data: bytes, expected_type: str, message: str) -> Result[bytes]:
    """Decode the first PEM block and insist on its type label."""
    try:
        object_type, _, der_bytes = pem.unarmor(data)
    except ValueError as e:
        return ResultFailures.format_error(message, e)
    if object_type != expected_type:
        return ResultFailures.format_error(
            f"{message}: expected {expected_type!r} block, found {object_type!r}"
        )
    return Result.success(der_bytes)


def _parse_certificate(der_bytes: bytes, path: object) -> Result[x509.Certificate]:
    try:
        return Result.success(x509.load_der_x509_certificate(der_bytes))
    except ValueError as e:
        return ResultFailures.parse_error(f"malformed certificate in {path}", e)


def _parse_private_key(der_bytes: bytes, path: object) -> Result[rsa.RSAPrivateKey]:
    """PKCS#1 RSAPrivateKey only; PKCS#8 content under the RSA label is refused."""
    try:
        # .native forces the full parse; asn1crypto parses lazily
        keys.RSAPrivateKey.load(der_bytes, strict=True).native
    except (ValueError, TypeError) as e:
        return ResultFailures.parse_error(f"private key in {path} is not a PKCS#1 RSA key", e)
    try:
        key = serialization.load_der_private_key(der_bytes, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        return ResultFailures.parse_error(f"malformed private key in {path}", e)
    if not isinstance(key, rsa.RSAPrivateKey):
        return ResultFailures.parse_error(f"private key in {path} is not an RSA key")
    return Result.success(key)
