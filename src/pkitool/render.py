"""
Human-readable rendering of stored pairs for the `show` and `list` commands.

Label tables are read-only module constants. Rows are plain string tuples,
and format_table() draws them as a tabulate grid.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from types import MappingProxyType

from cryptography import x509
from cryptography.x509.oid import ExtendedKeyUsageOID
from tabulate import tabulate

from pkitool.domain.models import PairHolder

# KeyUsage attribute → label
KEY_USAGE_LABELS = MappingProxyType(
    {
        "digital_signature": "KeyUsageDigitalSignature",
        "data_encipherment": "KeyUsageDataEncipherment",
        "key_cert_sign": "KeyUsageCertSign",
        "crl_sign": "KeyUsageCRLSign",
    }
)

EXT_KEY_USAGE_LABELS = MappingProxyType(
    {
        ExtendedKeyUsageOID.CLIENT_AUTH: "ExtKeyUsageClientAuth",
        ExtendedKeyUsageOID.SERVER_AUTH: "ExtKeyUsageServerAuth",
        ExtendedKeyUsageOID.CODE_SIGNING: "ExtKeyUsageCodeSigning",
        ExtendedKeyUsageOID.TIME_STAMPING: "ExtKeyUsageTimeStamping",
        ExtendedKeyUsageOID.EMAIL_PROTECTION: "ExtKeyUsageEmailProtection",
        ExtendedKeyUsageOID.ANY_EXTENDED_KEY_USAGE: "ExtKeyUsageAny",
    }
)


def _extension(cert: x509.Certificate, ext_type: type) -> object | None:
    try:
        return cert.extensions.get_extension_for_class(ext_type).value
    except x509.ExtensionNotFound:
        return None


def _bool(value: bool) -> str:
    return "true" if value else "false"


def key_usage_labels(cert: x509.Certificate) -> list[str]:
    usage = _extension(cert, x509.KeyUsage)
    if usage is None:
        return []
    return [label for attr, label in KEY_USAGE_LABELS.items() if getattr(usage, attr)]


def ext_key_usage_labels(cert: x509.Certificate) -> list[str]:
    usages = _extension(cert, x509.ExtendedKeyUsage)
    if usages is None:
        return []
    return [label for oid, label in EXT_KEY_USAGE_LABELS.items() if oid in usages]


def _is_ca(pair: PairHolder) -> str:
    constraints = _extension(pair.certificate, x509.BasicConstraints)
    return _bool(constraints is not None and constraints.ca)


PROPERTIES: MappingProxyType[str, Callable[[PairHolder], str]] = MappingProxyType(
    {
        "Subject": lambda p: p.certificate.subject.rfc4514_string(),
        "Issuer": lambda p: p.certificate.issuer.rfc4514_string(),
        "Valid from": lambda p: p.certificate.not_valid_before_utc.isoformat(),
        "Valid to": lambda p: p.certificate.not_valid_after_utc.isoformat(),
        "Is CA?": _is_ca,
        "Basic constraints valid?": lambda p: _bool(
            _extension(p.certificate, x509.BasicConstraints) is not None
        ),
        "Serial": lambda p: str(p.certificate.serial_number),
        "Public exponent": lambda p: str(p.private_key.private_numbers().public_numbers.e),
        "Key usage": lambda p: ",".join(key_usage_labels(p.certificate)),
        "Ext. key usage": lambda p: ",".join(ext_key_usage_labels(p.certificate)),
    }
)


def describe_pair(pair: PairHolder) -> list[tuple[str, str]]:
    """(property, value) rows sorted by property name."""
    return [(name, PROPERTIES[name](pair)) for name in sorted(PROPERTIES)]


def summary_row(pair: PairHolder) -> tuple[str, str, str]:
    """Subject, issuer and expiry: one row of the `list` output."""
    cert = pair.certificate
    return (
        cert.subject.rfc4514_string(),
        cert.issuer.rfc4514_string(),
        cert.not_valid_after_utc.isoformat(),
    )


def format_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    """Grid table with an upper-cased header row; cells are never parsed as numbers."""
    return tabulate(
        rows,
        headers=[h.upper() for h in headers],
        tablefmt="grid",
        disable_numparse=True,
    )
