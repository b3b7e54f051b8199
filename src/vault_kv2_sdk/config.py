"""
Configuration classes for the KV2 SDK.
"""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientConfig(BaseSettings):
    """Configuration for the KV2 client.

    Every field can be supplied through a ``VAULT_``-prefixed environment
    variable, e.g. ``VAULT_ADDRESS`` or ``VAULT_TIMEOUT``.
    """

    model_config = SettingsConfigDict(
        env_prefix="VAULT_",
        case_sensitive=False,
        extra="forbid",
    )

    address: str = Field("http://127.0.0.1:8200", description="Secret store base address")
    namespace: Optional[str] = Field(None, description="Namespace sent with every request")
    kv_mount: str = Field("secret", description="Default KV2 mount point")

    timeout: float = Field(30.0, gt=0, description="Request timeout in seconds")
    max_connections: int = Field(10, ge=1, description="Maximum number of connections")
    max_retries: int = Field(3, ge=1, description="Attempts per request on connection failures")
    retry_backoff_factor: float = Field(1.0, ge=0, description="Retry backoff factor")
    retry_max_wait: float = Field(10.0, ge=0, description="Upper bound for a single retry wait")
    verify_ssl: bool = Field(True, description="Whether to verify SSL certificates")
    ca_bundle: Optional[str] = Field(None, description="Path to CA bundle file")

    # Logging configuration
    log_level: str = Field("INFO", description="Level of the process-wide vault_kv2_sdk logger")
    log_requests: bool = Field(False, description="Whether to log HTTP requests")
    log_responses: bool = Field(False, description="Whether to log HTTP responses")

    @field_validator("address")
    @classmethod
    def validate_address(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("address must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level
