"""
Issuance engine: the railway that turns a CertRequest into a stored pair.

Domain layer. Storage is injected via ports (AliasStorage, PairCodec); the
crypto primitives come from cryptography (PyCA).

Each public operation validates, pins the derived flags, then funnels into
one shared procedure:

  check(request, rules...)                    MISSING_FIELD, nothing written
    → replace(request, is_ca=..., self_signed=...)
      → alias must be unused                  ALREADY_EXISTS
        → subject/issuer names                SIGNING_ERROR, names the bad attribute
          → resolve signing authority         parent pair or self
            → generate RSA key                SIGNING_ERROR
              → build + sign certificate      SIGNING_ERROR
                → save pair under alias       IO_ERROR

Failures short-circuit, so a failed validation, occupied alias, parent
lookup, key generation or signature leaves the directory untouched. The
final two-file write is not transactional.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import UTC, datetime

import structlog
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from pkitool.domain.models import CertRequest, DistinguishedName, PairHolder
from pkitool.domain.ports import AliasStorage, PairCodec
from pkitool.domain.rules import (
    check,
    require_alias,
    require_parent_alias,
    require_subject,
    valid_at_least_years,
)
from pkitool.railway import ErrorCode
from pkitool.railway.result import Result
from pkitool.railway.result_failures import ResultFailures

log = structlog.get_logger()

PUBLIC_EXPONENT = 65537

_NAME_OIDS = {
    "C": NameOID.COUNTRY_NAME,
    "ST": NameOID.STATE_OR_PROVINCE_NAME,
    "L": NameOID.LOCALITY_NAME,
    "STREET": NameOID.STREET_ADDRESS,
    "POSTALCODE": NameOID.POSTAL_CODE,
    "O": NameOID.ORGANIZATION_NAME,
    "OU": NameOID.ORGANIZATIONAL_UNIT_NAME,
    "CN": NameOID.COMMON_NAME,
}


def to_x509_name(name: DistinguishedName) -> x509.Name:
    """Raises ValueError naming the first attribute cryptography refuses."""
    attributes = []
    for short, value in name.attributes():
        try:
            attributes.append(x509.NameAttribute(_NAME_OIDS[short], value))
        except ValueError as e:
            raise ValueError(f"invalid {short}={value!r}: {e}") from e
    return x509.Name(attributes)


def add_years(moment: datetime, years: int) -> datetime:
    """Calendar-year offset; Feb 29 rolls over to Mar 1 in non-leap years."""
    try:
        return moment.replace(year=moment.year + years)
    except ValueError:
        return moment.replace(year=moment.year + years, month=3, day=1)


def key_usage_for(is_ca: bool) -> x509.KeyUsage:
    """
    Fixed key-usage policy.

    CA: certificate signing and CRL signing only.
    Leaf: data encipherment and digital signature only.
    """
    return x509.KeyUsage(
        digital_signature=not is_ca,
        content_commitment=False,
        key_encipherment=False,
        data_encipherment=not is_ca,
        key_agreement=False,
        key_cert_sign=is_ca,
        crl_sign=is_ca,
        encipher_only=False,
        decipher_only=False,
    )


@dataclass(frozen=True, slots=True)
class _SigningAuthority:
    """Issuer name plus the parent pair; parent is None when self-signing."""

    name: x509.Name
    parent: PairHolder | None = None


class PkiManager:
    """
    Create, list, fetch and delete certificate/private key pairs.

    Wire it with a storage adapter and a codec bound to the same storage:

        storage = FilesystemAliasStorage(directory)
        manager = PkiManager(storage, PemPairCodec(storage))
    """

    def __init__(self, storage: AliasStorage, codec: PairCodec) -> None:
        self._storage = storage
        self._codec = codec

    # ──────────────────────── Issuance ────────────────────────

    def issue_root_ca(self, request: CertRequest) -> Result[PairHolder]:
        """Self-signed CA. No parent lookup."""
        return (
            check(request, require_subject(), require_alias(), valid_at_least_years(1))
            .map(lambda r: replace(r, self_signed=True, is_ca=True))
            .flat_map(self._create)
        )

    def issue_intermediate_ca(self, request: CertRequest) -> Result[PairHolder]:
        """CA signed by `parent_alias`; the issuer is the parent's subject."""
        return (
            check(
                request,
                require_subject(),
                require_alias(),
                require_parent_alias(),
                valid_at_least_years(1),
            )
            .map(lambda r: replace(r, self_signed=False, is_ca=True))
            .flat_map(self._create)
        )

    def issue_leaf(self, request: CertRequest) -> Result[PairHolder]:
        """End-entity certificate for client and server auth, signed by `parent_alias`."""
        return (
            check(
                request,
                require_subject(),
                require_alias(),
                require_parent_alias(),
                valid_at_least_years(1),
            )
            .map(lambda r: replace(r, self_signed=False, is_ca=False))
            .flat_map(self._create)
        )

    # ──────────────────────── Queries ────────────────────────

    def list_aliases(self) -> Result[frozenset[str]]:
        return self._storage.list_aliases()

    def get_pair(self, alias: str) -> Result[PairHolder]:
        return self._codec.load(alias)

    def delete_alias(self, alias: str) -> Result[str]:
        return self._storage.delete(alias)

    # ──────────────────────── Shared creation ────────────────────────

    def _create(self, request: CertRequest) -> Result[PairHolder]:
        return (
            self._ensure_alias_free(request.alias)
            .flat_map(lambda _: _name_of(request.subject, "subject"))
            .flat_map(
                lambda subject: self._resolve_authority(request).flat_map(
                    lambda authority: _generate_key(request.key_size).flat_map(
                        lambda key: _sign(request, subject, authority, key)
                    )
                )
            )
            .flat_map(lambda pair: self._persist(pair, request.alias))
            .peek(
                lambda pair: log.info(
                    "issuance.completed",
                    alias=request.alias,
                    parent=request.parent_alias or None,
                    is_ca=request.is_ca,
                    subject=pair.subject.rfc4514_string(),
                    serial=pair.certificate.serial_number,
                )
            )
        )

    def _ensure_alias_free(self, alias: str) -> Result[str]:
        """A stored pair is never overwritten: both files must be absent."""

        def absent(private: bool) -> Result[str]:
            return self._storage.exists(alias, private).flat_map(
                lambda found: ResultFailures.already_exists(
                    "private key file" if private else "certificate file",
                    self._storage.path_for(alias, private),
                )
                if found
                else Result.success(alias)
            )

        return absent(False).flat_map(lambda _: absent(True))

    def _resolve_authority(self, request: CertRequest) -> Result[_SigningAuthority]:
        if request.self_signed:
            issuer = request.subject if request.issuer.is_empty() else request.issuer
            return _name_of(issuer, "issuer").map(lambda name: _SigningAuthority(name=name))
        # parent load failures propagate unchanged
        return self._codec.load(request.parent_alias).map(
            lambda parent: _SigningAuthority(name=parent.subject, parent=parent)
        )

    def _persist(self, pair: PairHolder, alias: str) -> Result[PairHolder]:
        certificate_der = pair.certificate.public_bytes(serialization.Encoding.DER)
        private_key_der = pair.private_key.private_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption(),
        )
        return self._codec.save(certificate_der, private_key_der, alias).map(lambda _: pair)


def _name_of(name: DistinguishedName, role: str) -> Result[x509.Name]:
    return Result.from_computation(
        lambda: to_x509_name(name),
        ErrorCode.SIGNING_ERROR,
        f"Invalid {role} name {name}",
    )


def _generate_key(key_size: int) -> Result[rsa.RSAPrivateKey]:
    return Result.from_computation(
        lambda: rsa.generate_private_key(public_exponent=PUBLIC_EXPONENT, key_size=key_size),
        ErrorCode.SIGNING_ERROR,
        f"Failed to generate {key_size}-bit RSA key",
    )


def _sign(
    request: CertRequest,
    subject: x509.Name,
    authority: _SigningAuthority,
    key: rsa.RSAPrivateKey,
) -> Result[PairHolder]:
    return Result.from_computation(
        lambda: PairHolder(certificate=_build_certificate(request, subject, authority, key), private_key=key),
        ErrorCode.SIGNING_ERROR,
        f"Failed to sign certificate for alias {request.alias!r}",
    )


def _build_certificate(
    request: CertRequest,
    subject: x509.Name,
    authority: _SigningAuthority,
    key: rsa.RSAPrivateKey,
) -> x509.Certificate:
    """
    Assemble the certificate and sign it.

    Self-signed: signed with the new key. Chained: signed with the parent's
    key, with the parent's subject as issuer.
    """
    now = datetime.now(UTC)
    public_key = key.public_key()
    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(authority.name)
        .public_key(public_key)
        # serial 0 means unset; cryptography only accepts positive serials
        .serial_number(request.serial if request.serial != 0 else x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(add_years(now, request.valid_years))
        .add_extension(x509.BasicConstraints(ca=request.is_ca, path_length=None), critical=True)
        .add_extension(key_usage_for(request.is_ca), critical=True)
    )

    if request.is_ca:
        builder = builder.add_extension(
            x509.SubjectKeyIdentifier.from_public_key(public_key), critical=False
        )
    else:
        builder = builder.add_extension(
            x509.ExtendedKeyUsage([ExtendedKeyUsageOID.CLIENT_AUTH, ExtendedKeyUsageOID.SERVER_AUTH]),
            critical=False,
        )
        alt_names: list[x509.GeneralName] = [x509.DNSName(d) for d in request.dns_names]
        alt_names += [x509.IPAddress(ip) for ip in request.ip_addresses]
        if alt_names:
            builder = builder.add_extension(x509.SubjectAlternativeName(alt_names), critical=False)

    signing_key = key
    if authority.parent is not None:
        signing_key = authority.parent.private_key
        parent_ski = _subject_key_identifier(authority.parent.certificate)
        if parent_ski is not None:
            builder = builder.add_extension(
                x509.AuthorityKeyIdentifier.from_issuer_subject_key_identifier(parent_ski),
                critical=False,
            )

    return builder.sign(private_key=signing_key, algorithm=hashes.SHA256())


def _subject_key_identifier(cert: x509.Certificate) -> x509.SubjectKeyIdentifier | None:
    try:
        return cert.extensions.get_extension_for_class(x509.SubjectKeyIdentifier).value
    except x509.ExtensionNotFound:
        return None
