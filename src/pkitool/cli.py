"""
Command-line surface: argument parsing and one handler per command.

  pkitool create ca   --alias root --subject-common-name Root
  pkitool create ca   --alias im --intermediate --parent root --subject-common-name Im
  pkitool create leaf --alias srv --parent im --subject-common-name srv --dns-san srv.example.com
  pkitool show   --alias srv
  pkitool list
  pkitool remove --alias srv

Handlers return Result[str]: the text to print on stdout (possibly empty).
"""

from __future__ import annotations

import argparse
import ipaddress
from pathlib import Path

from pkitool.config import AppSettings
from pkitool.domain.models import CertRequest, DistinguishedName, PairHolder
from pkitool.domain.rules import ALIAS_MISSING
from pkitool.issuance import PkiManager
from pkitool.railway.result import Result
from pkitool.railway.result_failures import ResultFailures
from pkitool.render import describe_pair, format_table, summary_row

_DN_LIST_FIELDS = (
    ("country", "Country"),
    ("organization", "Organization"),
    ("organizational-unit", "Organizational unit"),
    ("locality", "Locality"),
    ("province", "Province"),
    ("street-address", "Street address"),
    ("postal-code", "Postal code"),
)


# ─────────────────────── Argument helpers ───────────────────────


def _add_dn_flags(parser: argparse.ArgumentParser, prefix: str, help_suffix: str = "") -> None:
    for flag, label in _DN_LIST_FIELDS:
        parser.add_argument(
            f"--{prefix}-{flag}",
            action="append",
            default=[],
            metavar="VALUE",
            help=f"{label} component of {prefix} DN (repeatable).{help_suffix}",
        )
    parser.add_argument(
        f"--{prefix}-common-name",
        default="",
        metavar="VALUE",
        help=f"Common name of {prefix} DN.{help_suffix}",
    )


def _dn_from_args(args: argparse.Namespace, prefix: str) -> DistinguishedName:
    def values(flag: str) -> tuple[str, ...]:
        return tuple(getattr(args, f"{prefix}_{flag.replace('-', '_')}"))

    return DistinguishedName(
        country=values("country"),
        organization=values("organization"),
        organizational_unit=values("organizational-unit"),
        locality=values("locality"),
        province=values("province"),
        street_address=values("street-address"),
        postal_code=values("postal-code"),
        common_name=getattr(args, f"{prefix}_common_name"),
    )


def _add_common_create_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--alias", default="", help="Alias for new certificate. Must be unique within directory")
    parser.add_argument("--serial", type=int, default=0, help="Certificate serial number")
    parser.add_argument("--bits", type=int, default=None, help="Key size (bits), like 2048 or 4096")
    parser.add_argument("--years", type=int, default=None, help="How many years the new certificate is valid for")


# ─────────────────────── Handlers ───────────────────────


def _request_from_args(
    args: argparse.Namespace,
    settings: AppSettings,
    issuer: DistinguishedName,
    **extra: object,
) -> CertRequest:
    return CertRequest(
        alias=args.alias,
        subject=_dn_from_args(args, "subject"),
        issuer=issuer,
        valid_years=args.years if args.years is not None else settings.valid_years,
        key_size=args.bits if args.bits is not None else settings.key_size,
        parent_alias=args.parent,
        serial=args.serial,
        **extra,
    )


def create_ca(args: argparse.Namespace, manager: PkiManager, settings: AppSettings) -> Result[str]:
    """Root CA by default, intermediate CA with --intermediate."""
    if args.intermediate:
        request = _request_from_args(args, settings, DistinguishedName())
        result = manager.issue_intermediate_ca(request)
    else:
        issuer = _dn_from_args(args, "issuer")
        if not str(issuer):
            issuer = _dn_from_args(args, "subject")
        request = _request_from_args(args, settings, issuer)
        result = manager.issue_root_ca(request)
    return result.map(lambda _: "")


def create_leaf(args: argparse.Namespace, manager: PkiManager, settings: AppSettings) -> Result[str]:
    request = _request_from_args(
        args,
        settings,
        DistinguishedName(),
        dns_names=tuple(args.dns_san),
        ip_addresses=tuple(args.ip_san),
    )
    return manager.issue_leaf(request).map(lambda _: "")


def _require_alias(args: argparse.Namespace) -> Result[str]:
    if not args.alias:
        return ResultFailures.missing_field(ALIAS_MISSING)
    return Result.success(args.alias)


def show(args: argparse.Namespace, manager: PkiManager, settings: AppSettings) -> Result[str]:
    return (
        _require_alias(args)
        .flat_map(manager.get_pair)
        .map(lambda pair: format_table(["Property", "Value"], describe_pair(pair)))
    )


def list_pairs(args: argparse.Namespace, manager: PkiManager, settings: AppSettings) -> Result[str]:
    """Every alias in the directory, loaded in alias order; the first broken pair aborts."""

    def load_all(aliases: frozenset[str]) -> Result[list[PairHolder]]:
        pairs: list[PairHolder] = []
        for alias in sorted(aliases):
            loaded = manager.get_pair(alias)
            if loaded.is_failure():
                return Result.failure_from(loaded.error())
            pairs.append(loaded.value())
        return Result.success(pairs)

    return (
        manager.list_aliases()
        .flat_map(load_all)
        .map(
            lambda pairs: format_table(
                ["Subject", "Issuer", "Valid to"], [summary_row(pair) for pair in pairs]
            )
        )
    )


def remove(args: argparse.Namespace, manager: PkiManager, settings: AppSettings) -> Result[str]:
    return _require_alias(args).flat_map(manager.delete_alias).map(lambda _: "")


# ─────────────────────── Parser ───────────────────────


def build_parser() -> argparse.ArgumentParser:
    """
    Build the pkitool argument parser.

    Each leaf sub-command stores its handler in `handler` and a short
    operation name (used for logging) in `operation`.
    """
    directory = argparse.ArgumentParser(add_help=False)
    directory.add_argument(
        "--directory",
        type=Path,
        default=None,
        help="Directory to operate on (default: PKITOOL_DIRECTORY or current directory)",
    )

    parser = argparse.ArgumentParser(
        prog="pkitool",
        description="CLI tool to manipulate PKI objects (certificates, private keys) in directory",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    create = commands.add_parser("create", help="Create new certificate")
    kinds = create.add_subparsers(dest="kind", required=True)

    ca = kinds.add_parser("ca", parents=[directory], help="Create new CA certificate/private key pair")
    _add_common_create_flags(ca)
    ca.add_argument(
        "--parent",
        default="",
        help="Alias of parent (issuing) CA certificate. Only taken into account for intermediate CA",
    )
    ca.add_argument("--intermediate", action="store_true", help="Whether new CA is intermediate")
    _add_dn_flags(ca, "issuer", " Only taken into account for root CA")
    _add_dn_flags(ca, "subject")
    ca.set_defaults(handler=create_ca, operation="create-ca")

    leaf = kinds.add_parser("leaf", parents=[directory], help="Create new leaf certificate/private key")
    _add_common_create_flags(leaf)
    leaf.add_argument("--parent", default="", help="Alias of parent (issuing) CA certificate")
    _add_dn_flags(leaf, "subject")
    leaf.add_argument(
        "--ip-san",
        action="append",
        default=[],
        type=ipaddress.ip_address,
        metavar="IP",
        help="Optional IP subject alternative name (repeatable)",
    )
    leaf.add_argument(
        "--dns-san",
        action="append",
        default=[],
        metavar="NAME",
        help="Optional DNS subject alternative name (repeatable)",
    )
    leaf.set_defaults(handler=create_leaf, operation="create-leaf")

    show_cmd = commands.add_parser(
        "show", parents=[directory], help="Show details about certificate/private key pair"
    )
    show_cmd.add_argument("--alias", default="", help="Alias of certificate to show")
    show_cmd.set_defaults(handler=show, operation="show")

    list_cmd = commands.add_parser("list", parents=[directory], help="List all certificates in given directory")
    list_cmd.set_defaults(handler=list_pairs, operation="list")

    remove_cmd = commands.add_parser(
        "remove",
        parents=[directory],
        help="Remove certificate and private key corresponding to provided alias",
    )
    remove_cmd.add_argument("--alias", default="", help="Alias of certificate to remove")
    remove_cmd.set_defaults(handler=remove, operation="remove")

    return parser
