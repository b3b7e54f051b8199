"""
Vault KV2 Python SDK

Client library for versioned secret stores (KV version 2 engines).
Provides check-and-set saves, version-addressed reads, soft delete,
destroy and purge, with typed response decoding and fault classification.
"""

from .client import VaultClient
from .auth import AuthMethod, TokenAuth
from .config import ClientConfig
from .envelope import AttributeMap, Node, ResponseEnvelope, ValueKind, register_converter
from .exceptions import (
    FaultKind,
    NavigationErrorKind,
    VaultError,
    AbsentResourceError,
    AccessDeniedError,
    ConcurrencyConflictError,
    SecretExistsError,
    CasRequiredError,
    PermissionPolicyError,
    UnclassifiedError,
    NavigationError,
    VaultConnectionError,
)
from .faults import DEFAULT_RULES, Fault, FaultClassifier, FaultRule
from .kv2 import KV2SecretStore, SecretStore
from .models import (
    EngineSettings,
    ListOptions,
    SaveMode,
    SecretMetadata,
    VersionedSecret,
    VersionInfo,
    VersionMetadata,
    VersionState,
)
from .transport import HttpxTransport, Transport, TransportResponse

__version__ = "1.0.0"

__all__ = [
    "VaultClient",
    "AuthMethod",
    "TokenAuth",
    "ClientConfig",
    "AttributeMap",
    "Node",
    "ResponseEnvelope",
    "ValueKind",
    "register_converter",
    "FaultKind",
    "NavigationErrorKind",
    "VaultError",
    "AbsentResourceError",
    "AccessDeniedError",
    "ConcurrencyConflictError",
    "SecretExistsError",
    "CasRequiredError",
    "PermissionPolicyError",
    "UnclassifiedError",
    "NavigationError",
    "VaultConnectionError",
    "DEFAULT_RULES",
    "Fault",
    "FaultClassifier",
    "FaultRule",
    "KV2SecretStore",
    "SecretStore",
    "EngineSettings",
    "ListOptions",
    "SaveMode",
    "SecretMetadata",
    "VersionedSecret",
    "VersionInfo",
    "VersionMetadata",
    "VersionState",
    "HttpxTransport",
    "Transport",
    "TransportResponse",
]
