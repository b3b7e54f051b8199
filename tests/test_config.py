"""
Tests for client configuration.
"""

import pytest
from pydantic import ValidationError

from vault_kv2_sdk import ClientConfig


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("VAULT_ADDRESS", "VAULT_NAMESPACE", "VAULT_TIMEOUT", "VAULT_KV_MOUNT", "VAULT_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    config = ClientConfig()
    assert config.address == "http://127.0.0.1:8200"
    assert config.kv_mount == "secret"
    assert config.timeout == 30.0
    assert config.max_retries == 3
    assert config.verify_ssl is True
    assert config.log_level == "INFO"


def test_environment(monkeypatch):
    monkeypatch.setenv("VAULT_ADDRESS", "https://vault.example.com:8200/")
    monkeypatch.setenv("VAULT_NAMESPACE", "team-a")
    monkeypatch.setenv("VAULT_TIMEOUT", "5")
    monkeypatch.setenv("VAULT_KV_MOUNT", "kv")

    config = ClientConfig()
    assert config.address == "https://vault.example.com:8200"
    assert config.namespace == "team-a"
    assert config.timeout == 5.0
    assert config.kv_mount == "kv"


def test_arguments_override_environment(monkeypatch):
    monkeypatch.setenv("VAULT_KV_MOUNT", "kv")
    assert ClientConfig(kv_mount="secrets").kv_mount == "secrets"


def test_invalid_address():
    with pytest.raises(ValidationError, match="http"):
        ClientConfig(address="vault.example.com")


@pytest.mark.parametrize("field,value", [("timeout", 0), ("max_retries", 0), ("max_connections", 0)])
def test_bounds(field, value):
    with pytest.raises(ValidationError):
        ClientConfig(**{field: value})


def test_unknown_field():
    with pytest.raises(ValidationError):
        ClientConfig(tiemout=5)


def test_log_level(monkeypatch):
    assert ClientConfig(log_level="debug").log_level == "DEBUG"
    monkeypatch.setenv("VAULT_LOG_LEVEL", "warning")
    assert ClientConfig().log_level == "WARNING"
    with pytest.raises(ValidationError):
        ClientConfig(log_level="LOUD")
