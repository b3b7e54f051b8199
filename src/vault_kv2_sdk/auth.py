"""
Credential contexts for the KV2 SDK.

A credential is an immutable value handed to every store call; nothing in the
SDK keeps a mutable "current token".
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Optional


class AuthMethod(ABC):
    """Base class for authentication methods."""

    @abstractmethod
    def get_headers(self) -> Dict[str, str]:
        """Get authentication headers."""


@dataclass(frozen=True)
class TokenAuth(AuthMethod):
    """Static token authentication."""

    token: str = field(repr=False)
    namespace: Optional[str] = None

    def __post_init__(self):
        if not self.token:
            raise ValueError("token must not be empty")

    def get_headers(self) -> Dict[str, str]:
        """Get authentication headers."""
        headers = {
            "X-Vault-Token": self.token,
            "Content-Type": "application/json",
        }
        if self.namespace:
            headers["X-Vault-Namespace"] = self.namespace
        return headers

    def with_namespace(self, namespace: Optional[str]) -> "TokenAuth":
        return TokenAuth(self.token, namespace)
