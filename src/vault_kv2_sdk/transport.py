"""
Transport layer.

A transport sends one authenticated request and hands back the status code
and raw body. It does not interpret failure statuses; that is the job of the
fault classifier.
"""

import logging
import ssl
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .auth import AuthMethod
from .config import ClientConfig
from .exceptions import VaultConnectionError

logger = logging.getLogger(__name__)

API_PREFIX = "/v1/"

# Raised before the request reaches the server.
RETRYABLE_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout, httpx.PoolTimeout)


@dataclass(frozen=True)
class TransportResponse:
    status_code: int
    body: bytes = b""


class Transport(ABC):
    """Sends requests to the secret store."""

    @abstractmethod
    async def send(
        self,
        method: str,
        path: str,
        auth: Optional[AuthMethod] = None,
        json: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> TransportResponse:
        """Send a request for ``path`` (relative to the API prefix)."""

    async def aclose(self) -> None:
        """Release any pooled connections."""


class HttpxTransport(Transport):
    """
    Transport backed by a pooled ``httpx.AsyncClient``.

    Failures to establish a connection are retried with exponential backoff.
    Read and write failures are not, since the server may already have
    applied the request. HTTP responses, whatever their status, are returned
    as they are.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        config: Optional[ClientConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the transport.

        Args:
            base_url: Address of the secret store; defaults to ``config.address``
            config: Optional client configuration
            transport: Optional httpx transport (e.g. ``httpx.MockTransport``)
        """
        self.config = config or ClientConfig()
        self.base_url = (base_url or self.config.address).rstrip("/")

        headers = {}
        if self.config.namespace:
            headers["X-Vault-Namespace"] = self.config.namespace

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.config.timeout,
            limits=httpx.Limits(
                max_keepalive_connections=self.config.max_connections,
                max_connections=self.config.max_connections,
            ),
            verify=self._verify(),
            headers=headers,
            transport=transport,
        )

    def _verify(self):
        if self.config.ca_bundle:
            return ssl.create_default_context(cafile=self.config.ca_bundle)
        return self.config.verify_ssl

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self) -> None:
        """Close the async HTTP client."""
        await self._client.aclose()

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.config.max_retries),
            wait=wait_exponential(
                multiplier=self.config.retry_backoff_factor,
                max=self.config.retry_max_wait,
            ),
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            reraise=True,
        )

    async def send(
        self,
        method: str,
        path: str,
        auth: Optional[AuthMethod] = None,
        json: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> TransportResponse:
        url = API_PREFIX + path.lstrip("/")
        headers = auth.get_headers() if auth is not None else {}

        if self.config.log_requests:
            logger.debug(f"{method} {url} params={params or {}}")

        try:
            async for attempt in self._retrying():
                with attempt:
                    response = await self._client.request(
                        method=method,
                        url=url,
                        headers=headers,
                        json=json,
                        params=params,
                    )
        except (httpx.TransportError, RetryError) as e:
            logger.error(f"Request failed: {method} {url}: {e}")
            raise VaultConnectionError(f"Failed to connect to secret store: {e}")

        if self.config.log_responses:
            logger.debug(f"{method} {url} -> {response.status_code}")

        return TransportResponse(response.status_code, response.content)
