"""
Vault Client

Entry point that owns the transport and hands out KV2 stores.
"""

import logging
from typing import Any, Dict, Optional

from .config import ClientConfig
from .envelope import ResponseEnvelope
from .faults import FaultClassifier
from .kv2 import KV2SecretStore
from .transport import HttpxTransport, Transport

logger = logging.getLogger(__name__)

PACKAGE_LOGGER = "vault_kv2_sdk"


class VaultClient:
    """
    Main client for interacting with a secret store.

    The client holds no credential. Stores it creates take the credential on
    every call, so one client can serve many callers concurrently.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        config: Optional[ClientConfig] = None,
        transport: Optional[Transport] = None,
        classifier: Optional[FaultClassifier] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: Address of the secret store; defaults to ``config.address``
            config: Optional client configuration
            transport: Optional transport; an ``HttpxTransport`` is built otherwise
            classifier: Optional fault classifier shared by every store

        The ``vault_kv2_sdk`` logger is process-wide. Its level is only changed
        when ``log_level`` was set explicitly (argument or ``VAULT_LOG_LEVEL``).
        """
        self.config = config or ClientConfig()
        self.transport = transport or HttpxTransport(base_url, self.config)
        self.classifier = classifier or FaultClassifier()
        if "log_level" in self.config.model_fields_set:
            logging.getLogger(PACKAGE_LOGGER).setLevel(self.config.log_level)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self):
        """Close the underlying transport."""
        await self.transport.aclose()

    def kv2(self, mount_point: Optional[str] = None) -> KV2SecretStore:
        """Return a store bound to a KV2 mount (``config.kv_mount`` by default)."""
        return KV2SecretStore(
            self.transport,
            mount_point or self.config.kv_mount,
            classifier=self.classifier,
        )

    async def health_check(self) -> Dict[str, Any]:
        """Check secret store health.

        Standby and sealed nodes answer with non-2xx codes; those raise the
        classified exception like any other failure.
        """
        response = await self.transport.send("GET", "sys/health")
        envelope = self.classifier.raise_for_status(
            ResponseEnvelope(response.status_code, response.body)
        )
        return envelope.extract(dict)
