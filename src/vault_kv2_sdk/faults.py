"""
Fault classification.

The secret store reports most failure semantics as free text under a handful
of HTTP status codes, so classification is an ordered table of
(status, message pattern) rules rather than a status-code switch. The first
matching rule wins; responses that match nothing become ``UNCLASSIFIED``.
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional, Pattern, Sequence, Tuple, Type

from .envelope import ResponseEnvelope
from .exceptions import (
    AbsentResourceError,
    AccessDeniedError,
    CasRequiredError,
    ConcurrencyConflictError,
    FaultKind,
    PermissionPolicyError,
    UnclassifiedError,
    VaultError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FaultRule:
    """
    One classification rule.

    ``statuses`` empty means any failure status; ``pattern`` None means any
    message. Patterns are matched case-insensitively with ``re.search``.
    """

    kind: FaultKind
    statuses: FrozenSet[int] = frozenset()
    pattern: Optional[str] = None
    restriction: Optional[str] = None

    @property
    def compiled(self) -> Optional[Pattern]:
        return _compile(self.pattern) if self.pattern else None

    def matches(self, status_code: int, message: str) -> bool:
        if self.statuses and status_code not in self.statuses:
            return False
        regex = self.compiled
        return regex is None or regex.search(message) is not None


_PATTERN_CACHE: Dict[str, Pattern] = {}


def _compile(pattern: str) -> Pattern:
    regex = _PATTERN_CACHE.get(pattern)
    if regex is None:
        regex = _PATTERN_CACHE[pattern] = re.compile(pattern, re.IGNORECASE)
    return regex


@dataclass(frozen=True)
class Fault:
    """The outcome of classifying a failed response."""

    kind: FaultKind
    status_code: int
    message: str
    restriction: Optional[str] = None


DEFAULT_RULES: Tuple[FaultRule, ...] = (
    FaultRule(FaultKind.ABSENT_RESOURCE, frozenset({404})),
    FaultRule(FaultKind.ACCESS_DENIED, frozenset({403})),
    FaultRule(
        FaultKind.CONCURRENCY_CONFLICT,
        frozenset({400}),
        r"did not match the current version",
    ),
    FaultRule(
        FaultKind.CAS_REQUIRED,
        frozenset({400}),
        r"check-and-set parameter required",
    ),
    FaultRule(
        FaultKind.PERMISSION_POLICY,
        frozenset({400, 500}),
        r"exporting is disallowed",
        "export-disallowed",
    ),
    FaultRule(
        FaultKind.PERMISSION_POLICY,
        frozenset({400, 500}),
        r"plaintext backup is disallowed",
        "plaintext-backup-disallowed",
    ),
    FaultRule(
        FaultKind.PERMISSION_POLICY,
        frozenset({400, 500}),
        r"deletion is not allowed",
        "deletion-disallowed",
    ),
    FaultRule(FaultKind.ABSENT_RESOURCE, frozenset({400}), r"\bnot found\b"),
)


_EXCEPTIONS: Dict[FaultKind, Type[VaultError]] = {
    FaultKind.ABSENT_RESOURCE: AbsentResourceError,
    FaultKind.ACCESS_DENIED: AccessDeniedError,
    FaultKind.CONCURRENCY_CONFLICT: ConcurrencyConflictError,
    FaultKind.CAS_REQUIRED: CasRequiredError,
    FaultKind.PERMISSION_POLICY: PermissionPolicyError,
    FaultKind.UNCLASSIFIED: UnclassifiedError,
}


class FaultClassifier:
    """Maps failed responses onto exactly one ``FaultKind``."""

    def __init__(self, rules: Sequence[FaultRule] = DEFAULT_RULES):
        self.rules: Tuple[FaultRule, ...] = tuple(rules)

    def with_rules(self, *rules: FaultRule) -> "FaultClassifier":
        """Return a classifier that evaluates ``rules`` before the current ones."""
        return FaultClassifier(rules + self.rules)

    def classify(self, envelope: ResponseEnvelope) -> Optional[Fault]:
        """Classify ``envelope``; None for success responses."""
        if envelope.is_success:
            return None

        message = envelope.message
        for rule in self.rules:
            if rule.matches(envelope.status_code, message):
                return Fault(rule.kind, envelope.status_code, message, rule.restriction)

        return Fault(FaultKind.UNCLASSIFIED, envelope.status_code, message)

    @staticmethod
    def to_exception(fault: Fault) -> VaultError:
        message = fault.message or f"Request failed with status {fault.status_code}"
        exc_class = _EXCEPTIONS[fault.kind]
        if exc_class is PermissionPolicyError:
            return PermissionPolicyError(message, fault.status_code, restriction=fault.restriction)
        return exc_class(message, fault.status_code)

    def raise_for_status(self, envelope: ResponseEnvelope) -> ResponseEnvelope:
        """Raise the classified exception for a failed response, else return it."""
        fault = self.classify(envelope)
        if fault is None:
            return envelope
        logger.debug(f"Classified HTTP {fault.status_code} as {fault.kind.value}: {fault.message}")
        raise self.to_exception(fault)
