"""
Configuration lifecycle for the AI gateway.
Resolves a usable configuration, issues the call and tracks availability.
"""
import asyncio
import copy
import sqlite3
from typing import Awaitable, Callable, Iterable, Optional

from config import Config
from models.gateway_models import AIConfiguration, GenerationResult, SecretPlacement, TestResult
from services.request_materializer import RequestMaterializer
from services.response_extractor import ResponseExtractor
from utils.config_store import ConfigStore, get_config_store
from utils.constants import (
    PLATFORM_REQUEST_TEMPLATE,
    PLATFORM_RESPONSE_EXAMPLE,
    PLATFORM_RESPONSE_TEXT_PATH,
    PLATFORM_RESPONSE_THINKING_PATH,
    TEST_PROMPT,
)
from utils.exceptions import CredentialMissingError, GatewayError, NetworkError, UpstreamTimeoutError
from utils.http_client import post_json
from utils.logger import app_logger
from utils.rsa_crypto import RSACrypto, get_rsa_crypto

Transport = Callable[..., Awaitable[str]]

SYSTEM_OWNER = "__system__"


def build_platform_config(owner_id: str = SYSTEM_OWNER, secret: Optional[str] = None) -> AIConfiguration:
    """Platform default configuration: OpenAI-compatible shape against the platform provider."""
    request_template = copy.deepcopy(PLATFORM_REQUEST_TEMPLATE)
    request_template["model"] = Config.PLATFORM_MODEL
    response_example = copy.deepcopy(PLATFORM_RESPONSE_EXAMPLE)
    response_example["model"] = Config.PLATFORM_MODEL

    return AIConfiguration(
        owner_id=owner_id,
        name=Config.PLATFORM_CONFIG_NAME,
        endpoint_url=Config.PLATFORM_API_URL,
        secret=secret,
        secret_placement=SecretPlacement.HEADER,
        model_name=Config.PLATFORM_MODEL,
        request_template=request_template,
        response_template_example=response_example,
        message_list_path="messages",
        role_field_path="role",
        text_field_path="content",
        response_text_path=PLATFORM_RESPONSE_TEXT_PATH,
        response_thinking_path=PLATFORM_RESPONSE_THINKING_PATH,
        is_system_default=True,
    )


class ConfigurationLifecycle:
    """Drives configuration resolution, invocation and availability bookkeeping."""

    def __init__(
        self,
        store: Optional[ConfigStore] = None,
        crypto: Optional[RSACrypto] = None,
        transport: Optional[Transport] = None,
        timeout: Optional[float] = None
    ):
        self._store = store
        self._crypto = crypto
        self.transport = transport or post_json
        self.timeout = timeout if timeout is not None else Config.AI_TIMEOUT

    @property
    def store(self) -> ConfigStore:
        if self._store is None:
            self._store = get_config_store()
        return self._store

    @property
    def crypto(self) -> RSACrypto:
        if self._crypto is None:
            self._crypto = get_rsa_crypto()
        return self._crypto

    def get_platform_secret(self) -> Optional[str]:
        """Platform secret from configuration; None when not configured or unreadable."""
        if Config.ENCRYPTED_PLATFORM_API_KEY:
            try:
                return self.crypto.decrypt_secret(Config.ENCRYPTED_PLATFORM_API_KEY)
            except GatewayError as e:
                app_logger.warning(f"Failed to decrypt platform API key: {e.message}")

        return Config.PLATFORM_API_KEY or None

    def platform_info(self) -> dict:
        return {
            "endpoint_url": Config.PLATFORM_API_URL,
            "model": Config.PLATFORM_MODEL,
            "has_platform_key": bool(self.get_platform_secret()),
        }

    def create_system_default(self, caller_id: str) -> AIConfiguration:
        """Persist a platform default configuration scoped to the caller."""
        stored_secret = Config.ENCRYPTED_PLATFORM_API_KEY or None
        config = build_platform_config(caller_id, stored_secret)
        app_logger.info(f"Creating system default configuration for {caller_id}")
        return self.store.create(config)

    def resolve(self, caller_id: str) -> AIConfiguration:
        """
        Pick the caller's most recently used available configuration.
        Falls back to the caller's system default, creating it on first use.
        """
        config = self.store.find_available(caller_id)
        if config:
            app_logger.info(f"Resolved configuration {config.id} ('{config.name}') for {caller_id}")
            return config

        config = self.store.find_system_default(caller_id)
        if config:
            app_logger.info(f"No available configuration for {caller_id}, using system default {config.id}")
            return config

        return self.create_system_default(caller_id)

    def resolve_secret(
        self,
        config: AIConfiguration,
        caller_id: Optional[str] = None,
        secret_override: Optional[str] = None
    ) -> str:
        """
        Resolve the plaintext secret for a call.

        Precedence: explicit override > caller's own secret > platform secret.
        For user-authored configurations the caller's own secret is the one stored
        on the configuration; for the system default it is the caller's
        account-level custom secret.

        Raises:
            CredentialMissingError: No usable secret
            DecryptionFailedError: Stored secret cannot be recovered
        """
        if secret_override:
            if self.crypto.is_encrypted(secret_override):
                return self.crypto.decrypt_secret(secret_override)
            return secret_override

        if not config.is_system_default:
            if not config.secret:
                raise CredentialMissingError(f"Configuration '{config.name}' has no secret")
            return self.crypto.decrypt_secret(config.secret)

        if caller_id is not None:
            credential = self.store.get_credential(caller_id)
            if credential.use_custom_secret:
                if not credential.secret:
                    raise CredentialMissingError(
                        "Custom API key is enabled but no key has been provided"
                    )
                return self.crypto.decrypt_secret(credential.secret)

        platform_secret = self.get_platform_secret()
        if not platform_secret:
            raise CredentialMissingError("No platform API key configured")
        return platform_secret

    def _record_outcome(self, config: AIConfiguration, available: bool) -> None:
        """Best-effort availability bookkeeping; storage errors are logged, not raised."""
        if config.id is None:
            return

        try:
            config.last_used_at = self.store.mark_usage(config.id, available)
            config.is_available = available
        except sqlite3.Error as e:
            app_logger.error(f"Failed to update availability of configuration {config.id}: {e}")

    async def invoke(
        self,
        config: AIConfiguration,
        secret: str,
        prompt: str,
        history: Optional[Iterable] = None,
        timeout: Optional[float] = None
    ) -> GenerationResult:
        """
        Call the configured API and extract the result.

        Validation errors raise before any network call and leave availability
        untouched. Transport and extraction failures mark the configuration
        unavailable and propagate. A cancelled call records nothing.
        """
        config.validate()
        if not secret:
            raise CredentialMissingError("No API key available for this configuration")

        headers, body = RequestMaterializer.build(config, secret, prompt, history or ())
        timeout = timeout if timeout is not None else self.timeout

        try:
            app_logger.info(f"AI call: config={config.id} model='{config.model_name}' -> {config.endpoint_url}")
            # overall deadline; httpx only bounds each connect/read phase
            raw_body = await asyncio.wait_for(
                self.transport(config.endpoint_url, headers, body, timeout),
                timeout
            )
            extracted = ResponseExtractor.extract(raw_body, config)
        except asyncio.TimeoutError as e:
            app_logger.warning(f"AI call timed out after {timeout}s: config={config.id}")
            self._record_outcome(config, False)
            raise UpstreamTimeoutError("Request timeout. Please try again.") from e
        except asyncio.CancelledError:
            app_logger.info(f"AI call cancelled: config={config.id}, availability unchanged")
            raise
        except GatewayError as e:
            app_logger.warning(f"AI call failed: config={config.id} [{e.code}] {e.message}")
            self._record_outcome(config, False)
            raise
        except Exception as e:
            app_logger.error(f"AI call failed: config={config.id} unexpected {type(e).__name__}: {e}")
            self._record_outcome(config, False)
            raise NetworkError(f"AI service error: {e}") from e

        self._record_outcome(config, True)
        app_logger.info(f"AI call completed: config={config.id}, {len(str(extracted.content))} characters")

        return GenerationResult(
            content=extracted.content,
            thinking=extracted.thinking,
            model_name=config.model_name,
            config_id=config.id,
            raw_response=extracted.raw
        )

    async def test(self, config: AIConfiguration, secret: str) -> TestResult:
        """Invoke with a canned prompt; failures are captured in the result."""
        try:
            result = await self.invoke(config, secret, TEST_PROMPT)
        except GatewayError as e:
            return TestResult(
                success=False,
                message="Error connecting to AI API",
                error=e.message,
                error_code=e.code
            )

        return TestResult(
            success=True,
            message="Connection successful",
            content=result.content,
            thinking=result.thinking
        )

    async def test_configuration(self, config: AIConfiguration, secret_override: Optional[str] = None) -> TestResult:
        """Resolve the configuration's secret and test it. Never raises."""
        try:
            secret = self.resolve_secret(config, config.owner_id, secret_override)
        except GatewayError as e:
            return TestResult(
                success=False,
                message="Could not resolve API key",
                error=e.message,
                error_code=e.code
            )

        return await self.test(config, secret)

    async def test_raw_credential(self, secret: str) -> TestResult:
        """Test a raw secret against the platform shape without persisting anything."""
        return await self.test(build_platform_config(), secret)

    async def generate(
        self,
        caller_id: str,
        prompt: str,
        history: Optional[Iterable] = None,
        secret_override: Optional[str] = None
    ) -> GenerationResult:
        """Resolve the caller's configuration and secret, then invoke."""
        config = self.resolve(caller_id)
        secret = self.resolve_secret(config, caller_id, secret_override)
        return await self.invoke(config, secret, prompt, history)


_lifecycle: Optional[ConfigurationLifecycle] = None


def get_lifecycle() -> ConfigurationLifecycle:
    """Get the global lifecycle instance."""
    global _lifecycle
    if _lifecycle is None:
        _lifecycle = ConfigurationLifecycle()
    return _lifecycle
