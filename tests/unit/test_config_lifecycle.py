import asyncio
import dataclasses
import sqlite3
from unittest.mock import AsyncMock

import pytest

from config import Config
from models.gateway_models import ConfigState, UserCredential
from services.config_lifecycle import ConfigurationLifecycle, build_platform_config
from tests.fixtures.mock_clients import RecordingTransport
from tests.fixtures.responses import OPENAI_STYLE_RESPONSE
from utils.exceptions import (
    AuthFailureError,
    CredentialMissingError,
    DecryptionFailedError,
    GatewayValidationError,
    MalformedResponseError,
    NetworkError,
    NoContentExtractedError,
    UpstreamTimeoutError,
)


@pytest.fixture
def no_platform_key(monkeypatch):
    monkeypatch.setattr(Config, "ENCRYPTED_PLATFORM_API_KEY", "")
    monkeypatch.setattr(Config, "PLATFORM_API_KEY", "")


@pytest.fixture
def platform_key(monkeypatch):
    monkeypatch.setattr(Config, "ENCRYPTED_PLATFORM_API_KEY", "")
    monkeypatch.setattr(Config, "PLATFORM_API_KEY", "sk-platform")


@pytest.mark.anyio
async def test_invoke_success_marks_available(lifecycle, stored_config, mock_transport):
    """Given a working endpoint, a call should return content and mark the configuration available."""
    result = await lifecycle.invoke(stored_config, "sk-user-secret", "Hello")

    assert result.content == "hi"
    assert result.thinking == "because"
    assert result.model_name == "m"
    assert result.config_id == stored_config.id

    url, headers, body, timeout = mock_transport.await_args.args
    assert url == stored_config.endpoint_url
    assert headers["Authorization"] == "Bearer sk-user-secret"
    assert body["messages"][-1] == {"role": "user", "content": "Hello"}
    assert timeout == 5.0

    loaded = lifecycle.store.get(stored_config.id)
    assert loaded.state == ConfigState.AVAILABLE
    assert loaded.last_used_at is not None


@pytest.mark.anyio
@pytest.mark.parametrize("outcome, error_type", [
    (UpstreamTimeoutError("slow"), UpstreamTimeoutError),
    (AuthFailureError("bad key"), AuthFailureError),
    ("not json", MalformedResponseError),
    ({"choices": []}, NoContentExtractedError),
    (RuntimeError("boom"), NetworkError),
])
async def test_invoke_failure_marks_unavailable(lifecycle, stored_config, outcome, error_type):
    """Given a failing call, the error should propagate and the configuration should become unavailable."""
    lifecycle.transport = RecordingTransport([outcome])

    with pytest.raises(error_type):
        await lifecycle.invoke(stored_config, "sk", "Hello")

    loaded = lifecycle.store.get(stored_config.id)
    assert loaded.state == ConfigState.UNAVAILABLE
    assert stored_config.is_available is False


@pytest.mark.anyio
async def test_recovery_after_failure(lifecycle, stored_config):
    lifecycle.transport = RecordingTransport([UpstreamTimeoutError("slow"), OPENAI_STYLE_RESPONSE])

    with pytest.raises(UpstreamTimeoutError):
        await lifecycle.invoke(stored_config, "sk", "Hello")
    assert lifecycle.store.get(stored_config.id).state == ConfigState.UNAVAILABLE

    await lifecycle.invoke(stored_config, "sk", "Hello")
    assert lifecycle.store.get(stored_config.id).state == ConfigState.AVAILABLE


@pytest.mark.anyio
async def test_validation_error_skips_network_and_availability(lifecycle, stored_config, mock_transport):
    """Given a broken configuration, the call should fail before the network and leave availability alone."""
    lifecycle.store.mark_usage(stored_config.id, True, used_at=50.0)
    stored_config.endpoint_url = "not-a-url"

    with pytest.raises(GatewayValidationError):
        await lifecycle.invoke(stored_config, "sk", "Hello")

    mock_transport.assert_not_awaited()
    loaded = lifecycle.store.get(stored_config.id)
    assert loaded.is_available is True
    assert loaded.last_used_at == 50.0


@pytest.mark.anyio
async def test_missing_secret_skips_network(lifecycle, stored_config, mock_transport):
    with pytest.raises(CredentialMissingError):
        await lifecycle.invoke(stored_config, "", "Hello")
    mock_transport.assert_not_awaited()
    assert lifecycle.store.get(stored_config.id).state == ConfigState.UNTESTED


@pytest.mark.anyio
async def test_cancellation_leaves_availability_unchanged(lifecycle, stored_config):
    """Given a call cancelled mid-flight, no availability change should be recorded."""
    lifecycle.store.mark_usage(stored_config.id, True, used_at=50.0)
    lifecycle.transport = AsyncMock(side_effect=asyncio.CancelledError())

    with pytest.raises(asyncio.CancelledError):
        await lifecycle.invoke(stored_config, "sk", "Hello")

    loaded = lifecycle.store.get(stored_config.id)
    assert loaded.is_available is True
    assert loaded.last_used_at == 50.0


@pytest.mark.anyio
async def test_bookkeeping_failure_does_not_fail_call(lifecycle, stored_config, mocker):
    """Given a storage error while recording the outcome, the call result should still be returned."""
    mocker.patch.object(lifecycle.store, "mark_usage", side_effect=sqlite3.OperationalError("locked"))

    result = await lifecycle.invoke(stored_config, "sk", "Hello")
    assert result.content == "hi"


@pytest.mark.anyio
async def test_unsaved_configuration_records_nothing(lifecycle, openai_config, mocker):
    spy = mocker.spy(lifecycle.store, "mark_usage")
    await lifecycle.invoke(openai_config, "sk", "Hello")
    spy.assert_not_called()


def test_resolve_prefers_most_recent_available(lifecycle, stored_config):
    second = lifecycle.store.create(dataclasses.replace(stored_config, id=None, name="second"))
    lifecycle.store.mark_usage(stored_config.id, True, used_at=10.0)
    lifecycle.store.mark_usage(second.id, True, used_at=20.0)

    assert lifecycle.resolve("user-1").id == second.id


def test_resolve_creates_system_default_once(lifecycle, stored_config):
    """Given no available configuration, resolve should fall back to a single persisted system default."""
    first = lifecycle.resolve("user-1")
    second = lifecycle.resolve("user-1")

    assert first.is_system_default
    assert first.id == second.id
    assert first.owner_id == "user-1"
    assert first.endpoint_url == Config.PLATFORM_API_URL
    assert len(lifecycle.store.list_for_owner("user-1")) == 2


def test_secret_override_wins(lifecycle, stored_config, crypto):
    assert lifecycle.resolve_secret(stored_config, "user-1", "sk-override") == "sk-override"
    encrypted = crypto.encrypt_secret("sk-encrypted-override")
    assert lifecycle.resolve_secret(stored_config, "user-1", encrypted) == "sk-encrypted-override"


def test_user_config_uses_its_own_secret(lifecycle, stored_config):
    assert lifecycle.resolve_secret(stored_config, "user-1") == "sk-user-secret"


def test_user_config_without_secret_is_missing_credential(lifecycle, openai_config):
    openai_config.secret = None
    with pytest.raises(CredentialMissingError):
        lifecycle.resolve_secret(openai_config, "user-1")


def test_system_default_uses_custom_credential(lifecycle, crypto, platform_key):
    lifecycle.store.set_credential(UserCredential("user-1", True, crypto.encrypt_secret("sk-custom")))
    config = build_platform_config("user-1")
    assert lifecycle.resolve_secret(config, "user-1") == "sk-custom"


def test_system_default_custom_opt_in_without_key_fails(lifecycle, platform_key):
    lifecycle.store.set_credential(UserCredential("user-1", True, None))
    with pytest.raises(CredentialMissingError):
        lifecycle.resolve_secret(build_platform_config("user-1"), "user-1")


def test_system_default_falls_back_to_platform_secret(lifecycle, platform_key):
    assert lifecycle.resolve_secret(build_platform_config("user-1"), "user-1") == "sk-platform"


def test_system_default_without_platform_secret_fails(lifecycle, no_platform_key):
    with pytest.raises(CredentialMissingError):
        lifecycle.resolve_secret(build_platform_config("user-1"), "user-1")


def test_encrypted_platform_secret_is_decrypted(lifecycle, crypto, monkeypatch):
    monkeypatch.setattr(Config, "ENCRYPTED_PLATFORM_API_KEY", crypto.encrypt_secret("sk-enc-platform"))
    monkeypatch.setattr(Config, "PLATFORM_API_KEY", "sk-plain-platform")
    assert lifecycle.get_platform_secret() == "sk-enc-platform"


def test_unreadable_platform_secret_falls_back_to_plain(lifecycle, monkeypatch):
    monkeypatch.setattr(Config, "ENCRYPTED_PLATFORM_API_KEY", "rsa:Zm9v")
    monkeypatch.setattr(Config, "PLATFORM_API_KEY", "sk-plain-platform")
    assert lifecycle.get_platform_secret() == "sk-plain-platform"


def test_corrupted_stored_secret_raises(lifecycle, openai_config):
    openai_config.secret = "rsa:Zm9v"
    with pytest.raises(DecryptionFailedError):
        lifecycle.resolve_secret(openai_config, "user-1")


@pytest.mark.anyio
async def test_generate_resolves_and_invokes(lifecycle, stored_config, mock_transport):
    lifecycle.store.mark_usage(stored_config.id, True)

    result = await lifecycle.generate("user-1", "Hello", [{"role": "user", "content": "Hi"}])

    assert result.config_id == stored_config.id
    headers = mock_transport.await_args.args[1]
    assert headers["Authorization"] == "Bearer sk-user-secret"


@pytest.mark.anyio
async def test_generate_without_any_credential_fails_before_network(lifecycle, mock_transport, no_platform_key):
    with pytest.raises(CredentialMissingError):
        await lifecycle.generate("new-user", "Hello")
    mock_transport.assert_not_awaited()


@pytest.mark.anyio
async def test_test_configuration_reports_success(lifecycle, stored_config):
    result = await lifecycle.test_configuration(stored_config)
    assert result.success
    assert result.content == "hi"
    assert stored_config.state == ConfigState.AVAILABLE


@pytest.mark.anyio
async def test_test_configuration_never_raises(lifecycle, stored_config):
    lifecycle.transport = RecordingTransport([AuthFailureError("Invalid API key")])

    result = await lifecycle.test_configuration(stored_config)

    assert not result.success
    assert result.error_code == "auth_failure"
    assert lifecycle.store.get(stored_config.id).state == ConfigState.UNAVAILABLE


@pytest.mark.anyio
async def test_test_configuration_reports_unresolvable_secret(lifecycle, openai_config):
    openai_config.secret = None
    result = await lifecycle.test_configuration(openai_config)
    assert not result.success
    assert result.error_code == "credential_missing"


@pytest.mark.anyio
async def test_raw_credential_uses_platform_shape(lifecycle):
    transport = RecordingTransport([OPENAI_STYLE_RESPONSE])
    lifecycle.transport = transport

    result = await lifecycle.test_raw_credential("sk-raw")

    assert result.success
    call = transport.calls[0]
    assert call["url"] == Config.PLATFORM_API_URL
    assert call["headers"]["Authorization"] == "Bearer sk-raw"
    assert call["body"]["model"] == Config.PLATFORM_MODEL
    assert lifecycle.store.list_for_owner("__system__") == []


def test_default_transport_is_http(store, crypto):
    from utils.http_client import post_json
    assert ConfigurationLifecycle(store=store, crypto=crypto).transport is post_json


@pytest.mark.anyio
async def test_slow_transport_hits_overall_deadline(lifecycle, stored_config):
    """Given a transport that outlives the timeout, the call should fail as a timeout and mark the config unavailable."""
    async def trickling_transport(url, headers, body, timeout):
        await asyncio.sleep(5)
        return "{}"

    lifecycle.transport = trickling_transport

    with pytest.raises(UpstreamTimeoutError):
        await lifecycle.invoke(stored_config, "sk", "Hello", timeout=0.05)

    assert lifecycle.store.get(stored_config.id).state == ConfigState.UNAVAILABLE
