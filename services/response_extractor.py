"""
Response extraction for configuration-driven AI calls.
"""
import json
from typing import Any

from models.gateway_models import AIConfiguration, ExtractionResult
from utils.exceptions import GatewayValidationError, MalformedResponseError, NoContentExtractedError
from utils.path_address import ABSENT, PathAddress


class ResponseExtractor:
    """Recovers generated text from arbitrary response shapes via configured paths."""

    @staticmethod
    def parse(raw_body: Any) -> Any:
        """Parse a raw body; already-decoded structures pass through."""
        if isinstance(raw_body, (dict, list)):
            return raw_body
        if isinstance(raw_body, bytes):
            raw_body = raw_body.decode("utf-8", errors="replace")
        if not isinstance(raw_body, str):
            raise MalformedResponseError("Invalid JSON response from AI service")

        try:
            return json.loads(raw_body)
        except json.JSONDecodeError as e:
            raise MalformedResponseError("Invalid JSON response from AI service") from e

    @staticmethod
    def _is_empty(value: Any) -> bool:
        return value is ABSENT or value is None or value == "" or value == [] or value == {}

    @staticmethod
    def extract(raw_body: Any, config: AIConfiguration) -> ExtractionResult:
        """
        Extract content and optional thinking text.

        Raises:
            MalformedResponseError: Body is not parseable
            NoContentExtractedError: Content path is absent or empty
        """
        if not config.response_text_path:
            raise GatewayValidationError("response_text_path is required")

        parsed = ResponseExtractor.parse(raw_body)

        content = PathAddress.get(parsed, config.response_text_path)
        if ResponseExtractor._is_empty(content):
            raise NoContentExtractedError(
                f"Could not extract response content at '{config.response_text_path}'"
            )

        thinking = None
        if config.response_thinking_path:
            value = PathAddress.get(parsed, config.response_thinking_path)
            thinking = None if value is ABSENT else value

        return ExtractionResult(content=content, thinking=thinking, raw=parsed)
