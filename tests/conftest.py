import pytest
from unittest.mock import AsyncMock

from tests.fixtures.responses import OPENAI_STYLE_RESPONSE


@pytest.fixture(scope="session")
def anyio_backend():
    """The gateway is asyncio-based; run anyio-marked tests on asyncio only."""
    return "asyncio"


@pytest.fixture(scope="session")
def key_pair():
    """One RSA key pair for the whole session; generation is slow."""
    from utils.rsa_crypto import RSACrypto
    return RSACrypto.generate_key_pair(2048)


@pytest.fixture(scope="session")
def other_key_pair():
    from utils.rsa_crypto import RSACrypto
    return RSACrypto.generate_key_pair(2048)


@pytest.fixture
def crypto(key_pair):
    from utils.rsa_crypto import RSACrypto
    public_pem, private_pem = key_pair
    return RSACrypto(public_pem, private_pem)


@pytest.fixture
def store(tmp_path):
    """Config store on a throwaway SQLite file."""
    from utils.config_store import ConfigStore
    return ConfigStore(db_path=str(tmp_path / "gateway.db"))


@pytest.fixture
def mock_transport():
    """Transport returning a successful OpenAI-style body."""
    from tests.fixtures.mock_clients import as_body
    return AsyncMock(return_value=as_body(OPENAI_STYLE_RESPONSE))


@pytest.fixture
def lifecycle(store, crypto, mock_transport):
    from services.config_lifecycle import ConfigurationLifecycle
    return ConfigurationLifecycle(store=store, crypto=crypto, transport=mock_transport, timeout=5.0)


@pytest.fixture
def openai_config():
    """User-authored OpenAI-compatible configuration (not persisted)."""
    from models.gateway_models import AIConfiguration
    return AIConfiguration(
        owner_id="user-1",
        name="My OpenAI",
        endpoint_url="https://api.example.com/v1/chat/completions",
        secret="sk-plain",
        model_name="m",
        request_template={"model": "m", "messages": []},
        response_thinking_path="choices[0].message.reasoning_content",
    )


@pytest.fixture
def stored_config(store, crypto, openai_config):
    """The OpenAI-compatible configuration persisted with an encrypted secret."""
    openai_config.secret = crypto.encrypt_secret("sk-user-secret")
    return store.create(openai_config)


@pytest.fixture
def auth_headers():
    """Authentication headers for API requests."""
    return {"X-API-Key": "test-key", "X-User-Id": "user-1"}


@pytest.fixture
def configured_app(monkeypatch, lifecycle):
    """Pre-configured app with the lifecycle wired to test doubles."""
    from fastapi.testclient import TestClient
    from auth import APIKeyMiddleware
    from main import app
    from services.config_lifecycle import get_lifecycle

    monkeypatch.setattr(APIKeyMiddleware, "API_KEY", "test-key")
    monkeypatch.setattr("main.get_rsa_crypto", lambda: lifecycle.crypto)
    app.dependency_overrides[get_lifecycle] = lambda: lifecycle

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
