import json

import pytest

from models.gateway_models import AIConfiguration
from services.response_extractor import ResponseExtractor
from tests.fixtures.responses import ANTHROPIC_STYLE_RESPONSE, GEMINI_STYLE_RESPONSE, OPENAI_STYLE_RESPONSE
from utils.exceptions import MalformedResponseError, NoContentExtractedError


def make_config(text_path, thinking_path=None):
    return AIConfiguration(
        owner_id="user-1",
        endpoint_url="https://api.example.com",
        request_template={},
        response_text_path=text_path,
        response_thinking_path=thinking_path,
    )


@pytest.mark.parametrize("payload, text_path, expected", [
    (OPENAI_STYLE_RESPONSE, "choices[0].message.content", "hi"),
    (ANTHROPIC_STYLE_RESPONSE, "content[0].text", "Bonjour"),
    (GEMINI_STYLE_RESPONSE, "candidates[0].content.parts[0].text", "The quick fox jumps."),
])
def test_extracts_content_across_vendor_shapes(payload, text_path, expected):
    """Given a vendor response and its text path, the content should be recovered."""
    result = ResponseExtractor.extract(json.dumps(payload), make_config(text_path))
    assert result.content == expected
    assert result.thinking is None
    assert result.raw == payload


def test_extracts_thinking_when_configured():
    config = make_config("choices[0].message.content", "choices[0].message.reasoning_content")
    result = ResponseExtractor.extract(json.dumps(OPENAI_STYLE_RESPONSE), config)
    assert result.content == "hi"
    assert result.thinking == "because"


def test_missing_thinking_is_none():
    config = make_config("content[0].text", "content[0].thinking")
    result = ResponseExtractor.extract(json.dumps(ANTHROPIC_STYLE_RESPONSE), config)
    assert result.thinking is None


def test_accepts_bytes_and_decoded_bodies():
    config = make_config("choices[0].message.content")
    assert ResponseExtractor.extract(json.dumps(OPENAI_STYLE_RESPONSE).encode(), config).content == "hi"
    assert ResponseExtractor.extract(OPENAI_STYLE_RESPONSE, config).content == "hi"


def test_non_string_content_is_returned_as_is():
    config = make_config("result")
    assert ResponseExtractor.extract('{"result": {"a": 1}}', config).content == {"a": 1}


@pytest.mark.parametrize("body", ["not json", "", "{\"choices\": [", 42])
def test_malformed_body_raises(body):
    with pytest.raises(MalformedResponseError):
        ResponseExtractor.extract(body, make_config("choices[0].message.content"))


@pytest.mark.parametrize("payload", [
    {"choices": []},
    {"choices": [{"message": {"content": ""}}]},
    {"choices": [{"message": {"content": None}}]},
    {"error": {"message": "bad"}},
])
def test_absent_or_empty_content_raises(payload):
    """Given a response without usable content at the path, extraction should fail with no_content."""
    with pytest.raises(NoContentExtractedError):
        ResponseExtractor.extract(json.dumps(payload), make_config("choices[0].message.content"))
