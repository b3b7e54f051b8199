"""
Exception classes for the KV2 SDK.
"""

from enum import Enum
from typing import Optional


class FaultKind(str, Enum):
    """Classified fault kinds reported by the secret store."""
    ABSENT_RESOURCE = "absent_resource"
    ACCESS_DENIED = "access_denied"
    CONCURRENCY_CONFLICT = "concurrency_conflict"
    CAS_REQUIRED = "cas_required"
    PERMISSION_POLICY = "permission_policy"
    UNCLASSIFIED = "unclassified"


class NavigationErrorKind(str, Enum):
    """Reasons a dot-path extraction can fail."""
    PATH_NOT_FOUND = "path_not_found"
    TYPE_MISMATCH = "type_mismatch"


class VaultError(Exception):
    """Base exception for the KV2 SDK."""

    kind: Optional[FaultKind] = None

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AbsentResourceError(VaultError):
    """The requested path or version does not exist."""
    kind = FaultKind.ABSENT_RESOURCE


class AccessDeniedError(VaultError):
    """The credential is not permitted to perform the call."""
    kind = FaultKind.ACCESS_DENIED


class ConcurrencyConflictError(VaultError):
    """The check-and-set version did not match the current version."""
    kind = FaultKind.CONCURRENCY_CONFLICT

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        expected_version: Optional[int] = None,
    ):
        super().__init__(message, status_code)
        self.expected_version = expected_version


class SecretExistsError(ConcurrencyConflictError):
    """A create-only save found the path already holds versions."""


class CasRequiredError(VaultError):
    """The path enforces check-and-set but no CAS value was sent."""
    kind = FaultKind.CAS_REQUIRED


class PermissionPolicyError(VaultError):
    """A server-side policy forbids the operation."""
    kind = FaultKind.PERMISSION_POLICY

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        restriction: Optional[str] = None,
    ):
        super().__init__(message, status_code)
        self.restriction = restriction


class UnclassifiedError(VaultError):
    """Any failure response that matched no classification rule."""
    kind = FaultKind.UNCLASSIFIED

    def __str__(self) -> str:
        return f"HTTP {self.status_code}: {self.message}"


class NavigationError(VaultError):
    """A dot path could not be resolved or converted."""

    def __init__(self, message: str, kind: NavigationErrorKind, path: str = ""):
        super().__init__(message)
        self.navigation_kind = kind
        self.path = path


class VaultConnectionError(VaultError):
    """Connection to the secret store failed."""
