"""
Data models for the configuration-driven AI gateway.
Contains the AI configuration record, conversation turns and call results.
"""
import time
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Optional
from urllib.parse import urlparse

from utils.exceptions import GatewayValidationError
from utils.path_address import PathAddress


class SecretPlacement(str, Enum):
    """Where the secret goes in the outbound request."""
    HEADER = "header"
    BODY = "body"
    CUSTOM_HEADER = "custom_header"


class ConfigState(str, Enum):
    UNTESTED = "untested"
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


DEFAULT_HEADERS = {"Content-Type": "application/json"}


@dataclass
class AIConfiguration:
    """
    Declarative description of a chat-completion style HTTP API.
    The request template is the literal skeleton of every outbound body.
    """
    owner_id: str
    endpoint_url: str
    request_template: Any
    name: str = "Custom AI"
    secret: Optional[str] = None
    secret_placement: SecretPlacement = SecretPlacement.HEADER
    custom_header_name: Optional[str] = None
    secret_body_path: Optional[str] = None
    model_name: str = ""
    response_template_example: Any = None
    message_list_path: Optional[str] = "messages"
    role_field_path: str = "role"
    text_field_path: str = "content"
    response_text_path: str = "choices[0].message.content"
    response_thinking_path: Optional[str] = None
    user_role_value: str = "user"
    assistant_role_value: str = "assistant"
    system_role_value: str = "system"
    extra_headers: dict = field(default_factory=lambda: dict(DEFAULT_HEADERS))
    is_available: bool = False
    last_used_at: Optional[float] = None
    is_system_default: bool = False
    id: Optional[int] = None
    created_at: Optional[float] = None
    updated_at: Optional[float] = None

    def __post_init__(self):
        if self.secret_placement is None:
            self.secret_placement = SecretPlacement.HEADER
        elif not isinstance(self.secret_placement, SecretPlacement):
            try:
                self.secret_placement = SecretPlacement(self.secret_placement)
            except ValueError as e:
                raise GatewayValidationError(f"Unknown secret placement '{self.secret_placement}'") from e

    @property
    def state(self) -> ConfigState:
        """Availability state derived from call outcomes."""
        if self.is_available:
            return ConfigState.AVAILABLE
        if self.last_used_at is None:
            return ConfigState.UNTESTED
        return ConfigState.UNAVAILABLE

    def validate(self) -> None:
        """
        Structural validation, run before any network call.

        Raises:
            GatewayValidationError: Missing or inconsistent fields
        """
        parsed = urlparse(self.endpoint_url or "")
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise GatewayValidationError("endpoint_url must be an absolute http(s) URL")

        if not isinstance(self.request_template, (dict, list)):
            raise GatewayValidationError("request_template must be a JSON object or array")

        if self.secret_placement == SecretPlacement.CUSTOM_HEADER and not self.custom_header_name:
            raise GatewayValidationError("custom_header_name is required when secret_placement is 'custom_header'")

        if self.secret_placement == SecretPlacement.BODY and not self.secret_body_path:
            raise GatewayValidationError("secret_body_path is required when secret_placement is 'body'")

        for required in ("name", "response_text_path", "role_field_path", "text_field_path",
                         "user_role_value", "assistant_role_value", "system_role_value"):
            value = getattr(self, required)
            if not isinstance(value, str) or not value:
                raise GatewayValidationError(f"{required} is required")

        if not isinstance(self.model_name, str):
            raise GatewayValidationError("model_name must be a string")

        if not isinstance(self.extra_headers, dict):
            raise GatewayValidationError("extra_headers must be a mapping of header names to values")

        for path_name in ("secret_body_path", "message_list_path", "role_field_path",
                          "text_field_path", "response_text_path", "response_thinking_path"):
            path = getattr(self, path_name)
            if path and not PathAddress.is_valid(path):
                raise GatewayValidationError(f"{path_name} '{path}' is not a valid path expression")

    def reset_availability(self) -> None:
        """Back to untested after create/update."""
        self.is_available = False
        self.last_used_at = None

    def to_public_dict(self) -> dict:
        """Serialize for API responses; the secret never leaves the server."""
        data = asdict(self)
        data.pop("secret", None)
        data["secret_placement"] = self.secret_placement.value
        data["has_secret"] = bool(self.secret)
        data["state"] = self.state.value
        return data

    def touch(self) -> None:
        now = time.time()
        if self.created_at is None:
            self.created_at = now
        self.updated_at = now


@dataclass
class ConversationTurn:
    """One prior turn of a conversation. Ephemeral, never persisted."""
    role: str
    text: str

    @classmethod
    def coerce(cls, turn: Any) -> "ConversationTurn":
        """Accept turns as ConversationTurn, mappings or objects with role/text (or content)."""
        if isinstance(turn, ConversationTurn):
            return turn
        if isinstance(turn, dict):
            text = turn.get("text", turn.get("content", ""))
            return cls(role=turn.get("role", ""), text=text)
        text = getattr(turn, "text", None)
        if text is None:
            text = getattr(turn, "content", "")
        return cls(role=getattr(turn, "role", ""), text=text)


@dataclass
class UserCredential:
    """A caller's account-level secret settings."""
    owner_id: str
    use_custom_secret: bool = False
    secret: Optional[str] = None
    updated_at: Optional[float] = None

    @property
    def has_custom_secret(self) -> bool:
        return bool(self.use_custom_secret and self.secret)


@dataclass
class ExtractionResult:
    """Content recovered from an upstream response."""
    content: Any
    thinking: Any = None
    raw: Any = None


@dataclass
class GenerationResult:
    """Normalized result of a gateway call."""
    content: Any
    thinking: Any = None
    model_name: str = ""
    config_id: Optional[int] = None
    raw_response: Any = None

    def to_dict(self, include_raw: bool = False) -> dict:
        data = {
            "content": self.content,
            "thinking": self.thinking,
            "model": self.model_name,
            "config_id": self.config_id,
        }
        if include_raw:
            data["raw_response"] = self.raw_response
        return data


@dataclass
class TestResult:
    """Outcome of a configuration or credential test. Failures are data, not exceptions."""
    success: bool
    message: str
    content: Any = None
    thinking: Any = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    # keep pytest from collecting this as a test class
    __test__ = False

    def to_dict(self) -> dict:
        data = {"success": self.success, "message": self.message}
        if self.success:
            data["response"] = {
                "role": "assistant",
                "content": self.content,
                "thinking": self.thinking,
            }
        else:
            data["error"] = self.error
            data["error_code"] = self.error_code
        return data
