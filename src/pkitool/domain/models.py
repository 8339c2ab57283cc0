"""
Domain models: immutable data structures for certificate requests and stored pairs.

CertRequest is built by the caller (usually the CLI) and consumed once by the
issuance engine. The engine never mutates it: the derived `is_ca` and
`self_signed` flags are applied with dataclasses.replace().

All models are frozen dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from ipaddress import IPv4Address, IPv6Address

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import rsa


_SPECIAL = frozenset('\\,+"<>;')


def _escape(value: str) -> str:
    """Escape RFC 4514 special characters in an attribute value."""
    out = "".join("\\" + ch if ch in _SPECIAL else ch for ch in value)
    if out.startswith(("#", " ")):
        out = "\\" + out
    if out.endswith(" ") and len(value) > 1:
        out = out[:-1] + "\\ "
    return out


@dataclass(frozen=True, slots=True)
class DistinguishedName:
    """
    Structured X.500 distinguished name.

    Every component is multi-valued except the common name. Attribute order
    follows the usual RDN sequence: C, ST, L, STREET, POSTALCODE, O, OU, CN.
    """

    country: tuple[str, ...] = ()
    organization: tuple[str, ...] = ()
    organizational_unit: tuple[str, ...] = ()
    locality: tuple[str, ...] = ()
    province: tuple[str, ...] = ()
    street_address: tuple[str, ...] = ()
    postal_code: tuple[str, ...] = ()
    common_name: str = ""

    def attributes(self) -> list[tuple[str, str]]:
        """(short name, value) pairs in RDN sequence order."""
        attrs: list[tuple[str, str]] = []
        attrs += [("C", v) for v in self.country]
        attrs += [("ST", v) for v in self.province]
        attrs += [("L", v) for v in self.locality]
        attrs += [("STREET", v) for v in self.street_address]
        attrs += [("POSTALCODE", v) for v in self.postal_code]
        attrs += [("O", v) for v in self.organization]
        attrs += [("OU", v) for v in self.organizational_unit]
        if self.common_name:
            attrs.append(("CN", self.common_name))
        return attrs

    def is_empty(self) -> bool:
        return not self.attributes()

    def __str__(self) -> str:
        # RFC 4514 string form lists the RDN sequence in reverse
        return ",".join(f"{k}={_escape(v)}" for k, v in reversed(self.attributes()))


@dataclass(frozen=True, slots=True)
class CertRequest:
    """
    Request descriptor for one certificate/private key pair.

    `is_ca` and `self_signed` are overwritten by the issuance operation
    that consumes the request; whatever the caller puts there is ignored.
    A `serial` of 0 means "unset".
    """

    alias: str
    subject: DistinguishedName
    valid_years: int
    key_size: int = 4096
    parent_alias: str = ""
    issuer: DistinguishedName = field(default_factory=DistinguishedName)
    dns_names: tuple[str, ...] = ()
    ip_addresses: tuple[IPv4Address | IPv6Address, ...] = ()
    serial: int = 0
    is_ca: bool = False
    self_signed: bool = False


@dataclass(frozen=True, slots=True)
class PairHolder:
    """A certificate together with its RSA private key: the unit of persistence."""

    certificate: x509.Certificate = field(repr=False)
    private_key: rsa.RSAPrivateKey = field(repr=False)

    @property
    def subject(self) -> x509.Name:
        return self.certificate.subject

    @property
    def issuer(self) -> x509.Name:
        return self.certificate.issuer
