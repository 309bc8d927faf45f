"""
Request materialization for configuration-driven AI calls.
Turns a stored request template into a concrete outbound body and headers.
"""
import copy
from typing import Iterable, Optional, Tuple

from models.gateway_models import AIConfiguration, ConversationTurn, SecretPlacement
from utils.exceptions import GatewayValidationError
from utils.path_address import PathAddress


class RequestMaterializer:
    """Builds outbound (headers, body) pairs from an AIConfiguration."""

    @staticmethod
    def _put_header(headers: dict, name: str, value) -> None:
        """Set a header, replacing any existing entry whose name differs only in case."""
        for existing in [key for key in headers if key.lower() == name.lower()]:
            del headers[existing]
        headers[name] = value

    @staticmethod
    def build_headers(config: AIConfiguration, secret: Optional[str]) -> dict:
        """Start from the configured headers, then place the secret if it belongs in a header."""
        headers = dict(config.extra_headers or {})

        if not any(name.lower() == "content-type" for name in headers):
            headers["Content-Type"] = "application/json"

        placement = config.secret_placement or SecretPlacement.HEADER
        if placement == SecretPlacement.HEADER:
            RequestMaterializer._put_header(headers, "Authorization", f"Bearer {secret}")
        elif placement == SecretPlacement.CUSTOM_HEADER:
            if not config.custom_header_name:
                raise GatewayValidationError("custom_header_name is required when secret_placement is 'custom_header'")
            RequestMaterializer._put_header(headers, config.custom_header_name, secret)

        return headers

    @staticmethod
    def map_role(config: AIConfiguration, role: str) -> str:
        if role == "user":
            return config.user_role_value
        if role == "assistant":
            return config.assistant_role_value
        return role

    @staticmethod
    def build_message(config: AIConfiguration, role_value: str, text: str) -> dict:
        """One message record with the role and text fields populated."""
        message = {}
        PathAddress.set(message, config.role_field_path, role_value)
        PathAddress.set(message, config.text_field_path, text)
        return message

    @staticmethod
    def build_messages(config: AIConfiguration, prompt: str, history: Iterable = ()) -> list:
        """
        Message list for the request: history in order without system turns,
        followed by the new prompt as a user turn.
        """
        messages = []
        for raw_turn in history or ():
            turn = ConversationTurn.coerce(raw_turn)
            if turn.role == "system":
                continue
            role_value = RequestMaterializer.map_role(config, turn.role)
            messages.append(RequestMaterializer.build_message(config, role_value, turn.text))

        if prompt:
            messages.append(RequestMaterializer.build_message(config, config.user_role_value, prompt))

        return messages

    @staticmethod
    def build(
        config: AIConfiguration,
        secret: Optional[str],
        prompt: str,
        history: Iterable = ()
    ) -> Tuple[dict, object]:
        """
        Materialize an outbound request.

        Args:
            config: AI configuration
            secret: Plaintext secret
            prompt: New user prompt
            history: Prior conversation turns

        Returns:
            Tuple of (headers, body). Neither the template nor the history is modified.
        """
        headers = RequestMaterializer.build_headers(config, secret)
        body = copy.deepcopy(config.request_template)

        if config.secret_placement == SecretPlacement.BODY:
            if not config.secret_body_path:
                raise GatewayValidationError("secret_body_path is required when secret_placement is 'body'")
            PathAddress.set(body, config.secret_body_path, secret)

        messages = RequestMaterializer.build_messages(config, prompt, history)
        if config.message_list_path and messages:
            PathAddress.set(body, config.message_list_path, messages)

        return headers, body
