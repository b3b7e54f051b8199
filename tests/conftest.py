import httpx
import pytest
import pytest_asyncio

from fake_vault import FakeVault
from vault_kv2_sdk import ClientConfig, HttpxTransport, TokenAuth, VaultClient

TOKEN = "hvs.test-token"


@pytest.fixture
def fake_vault():
    return FakeVault(token=TOKEN)


@pytest.fixture
def auth():
    return TokenAuth(TOKEN)


@pytest.fixture
def client_config():
    return ClientConfig(
        address="http://vault.test:8200",
        timeout=10,
        max_retries=2,
        retry_backoff_factor=0,
        verify_ssl=False,
    )


@pytest_asyncio.fixture
async def client(fake_vault, client_config):
    transport = HttpxTransport(
        config=client_config,
        transport=httpx.MockTransport(fake_vault.handler),
    )
    async with VaultClient(config=client_config, transport=transport) as client:
        yield client


@pytest.fixture
def store(client):
    return client.kv2()
