"""
Validation rules for certificate requests.

A rule is a pure function CertRequest -> Result[CertRequest]. Rules are
chained with flat_map, so the first failing rule wins and nothing after it
runs:

  Success(request)
    → require_subject()
      → require_alias()
        → require_parent_alias()
          → valid_at_least_years(1)

Every failure carries ErrorCode.MISSING_FIELD and happens before any I/O
or key generation.
"""

from __future__ import annotations

from typing import Callable, TypeAlias

from pkitool.domain.models import CertRequest
from pkitool.railway import ErrorCode
from pkitool.railway.result import Result

Rule: TypeAlias = Callable[[CertRequest], Result[CertRequest]]

ALIAS_MISSING = "certificate alias is required"
SUBJECT_MISSING = "certificate subject is required"
PARENT_ALIAS_MISSING = "parent certificate alias is required"


def require_alias() -> Rule:
    def rule(request: CertRequest) -> Result[CertRequest]:
        return Result.success(request).ensure(
            lambda r: len(r.alias) > 0, ErrorCode.MISSING_FIELD, ALIAS_MISSING
        )

    return rule


def require_subject() -> Rule:
    """Subject must have a non-empty string form."""

    def rule(request: CertRequest) -> Result[CertRequest]:
        return Result.success(request).ensure(
            lambda r: len(str(r.subject)) > 0, ErrorCode.MISSING_FIELD, SUBJECT_MISSING
        )

    return rule


def require_parent_alias() -> Rule:
    def rule(request: CertRequest) -> Result[CertRequest]:
        return Result.success(request).ensure(
            lambda r: len(r.parent_alias) > 0, ErrorCode.MISSING_FIELD, PARENT_ALIAS_MISSING
        )

    return rule


def valid_at_least_years(years: int) -> Rule:
    def rule(request: CertRequest) -> Result[CertRequest]:
        return Result.success(request).ensure(
            lambda r: r.valid_years >= years,
            ErrorCode.MISSING_FIELD,
            f"invalid valid_years: {request.valid_years}, should be at least {years}",
        )

    return rule


def check(request: CertRequest, *rules: Rule) -> Result[CertRequest]:
    """Run the rules in order, stopping at the first failure."""
    result: Result[CertRequest] = Result.success(request)
    for rule in rules:
        result = result.flat_map(rule)
    return result
