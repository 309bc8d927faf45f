"""
Sentence generation from vocabulary words.
Builds the tutor prompt and delegates the call to the configuration lifecycle.
"""
import re
from typing import Iterable, List, Optional

from config import Config
from services.config_lifecycle import ConfigurationLifecycle
from utils.constants import DEFAULT_EXPLANATION, SENTENCE_PROMPT, Patterns
from utils.exceptions import GatewayValidationError
from utils.logger import app_logger


class SentenceService:
    """Service for vocabulary sentence generation."""

    @staticmethod
    def validate_words(words) -> List[str]:
        """
        Validate and normalize a word list.

        Returns:
            Trimmed, lower-cased words

        Raises:
            GatewayValidationError: On any invalid word or list size
        """
        if not isinstance(words, list):
            raise GatewayValidationError("Words must be an array")
        if not words:
            raise GatewayValidationError("At least one word is required")
        if len(words) > Config.MAX_WORDS_PER_GENERATION:
            raise GatewayValidationError(
                f"Maximum {Config.MAX_WORDS_PER_GENERATION} words allowed per generation"
            )

        for word in words:
            if not isinstance(word, str) or not word.strip():
                raise GatewayValidationError("All words must be non-empty strings")
            if len(word.strip()) > Config.MAX_WORD_LENGTH:
                raise GatewayValidationError(f"Words must be {Config.MAX_WORD_LENGTH} characters or less")
            if not re.match(Patterns.WORD, word.strip()):
                raise GatewayValidationError(f"Invalid word format: {word}")

        return [word.strip().lower() for word in words]

    @staticmethod
    def build_prompt(words: List[str]) -> str:
        return SENTENCE_PROMPT.format(words=", ".join(words))

    @staticmethod
    async def generate_sentence(
        lifecycle: ConfigurationLifecycle,
        caller_id: str,
        words,
        history: Optional[Iterable] = None
    ) -> dict:
        """Generate a sentence using all words through the caller's configuration."""
        cleaned_words = SentenceService.validate_words(words)
        app_logger.info(f"Sentence generation for {caller_id}: {len(cleaned_words)} words")

        result = await lifecycle.generate(caller_id, SentenceService.build_prompt(cleaned_words), history)

        return {
            "words": cleaned_words,
            "sentence": result.content,
            "explanation": result.thinking or DEFAULT_EXPLANATION,
            "ai_model": result.model_name,
            "config_id": result.config_id,
        }
