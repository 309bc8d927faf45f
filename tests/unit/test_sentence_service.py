import pytest
from unittest.mock import AsyncMock

from models.gateway_models import GenerationResult
from services.sentence_service import SentenceService
from utils.constants import DEFAULT_EXPLANATION
from utils.exceptions import GatewayValidationError


def test_validate_words_normalizes():
    assert SentenceService.validate_words(["  Apple ", "Run", "don't", "well-known"]) == [
        "apple", "run", "don't", "well-known"
    ]


@pytest.mark.parametrize("words", [
    "apple",
    [],
    ["ok", ""],
    ["ok", 3],
    ["two words"],
    ["abc1"],
    ["a" * 51],
    ["w"] * 21,
])
def test_validate_words_rejects_invalid_input(words):
    with pytest.raises(GatewayValidationError):
        SentenceService.validate_words(words)


def test_build_prompt_lists_words():
    prompt = SentenceService.build_prompt(["apple", "run"])
    assert "apple, run" in prompt


@pytest.mark.anyio
async def test_generate_sentence_uses_caller_configuration():
    """Given valid words, the lifecycle should be called with the tutor prompt and the result reshaped."""
    lifecycle = AsyncMock()
    lifecycle.generate.return_value = GenerationResult(
        content="The curious cat explored the garden.",
        thinking="Past tense of explore.",
        model_name="m",
        config_id=7,
    )

    result = await SentenceService.generate_sentence(lifecycle, "user-1", ["Curious", "explore"], None)

    caller_id, prompt, history = lifecycle.generate.await_args.args
    assert caller_id == "user-1"
    assert "curious, explore" in prompt
    assert history is None
    assert result == {
        "words": ["curious", "explore"],
        "sentence": "The curious cat explored the garden.",
        "explanation": "Past tense of explore.",
        "ai_model": "m",
        "config_id": 7,
    }


@pytest.mark.anyio
async def test_generate_sentence_defaults_explanation():
    lifecycle = AsyncMock()
    lifecycle.generate.return_value = GenerationResult(content="A sentence.", model_name="m")

    result = await SentenceService.generate_sentence(lifecycle, "user-1", ["sentence"])
    assert result["explanation"] == DEFAULT_EXPLANATION


@pytest.mark.anyio
async def test_generate_sentence_validates_before_calling():
    lifecycle = AsyncMock()
    with pytest.raises(GatewayValidationError):
        await SentenceService.generate_sentence(lifecycle, "user-1", ["1234"])
    lifecycle.generate.assert_not_awaited()
