"""
Constants and prompts for the AI Config Gateway application.
"""

# Canned prompt used to test a configuration or raw credential
TEST_PROMPT = "Hello, nice to meet you."

# Request body skeleton for the platform default provider (OpenAI-compatible)
PLATFORM_REQUEST_TEMPLATE = {
    "model": "",
    "messages": [],
    "max_tokens": 512,
    "temperature": 0.7,
    "top_p": 0.7,
    "top_k": 50,
    "stream": False,
    "frequency_penalty": 0.5,
    "response_format": {"type": "text"}
}

# Documentation-only example of the platform response shape
PLATFORM_RESPONSE_EXAMPLE = {
    "id": "example_id",
    "object": "chat.completion",
    "created": 1234567890,
    "model": "",
    "choices": [{
        "index": 0,
        "message": {
            "role": "assistant",
            "content": "",
            "reasoning_content": ""
        },
        "finish_reason": "stop"
    }],
    "usage": {
        "prompt_tokens": 0,
        "completion_tokens": 0,
        "total_tokens": 0
    }
}

PLATFORM_RESPONSE_TEXT_PATH = "choices[0].message.content"
PLATFORM_RESPONSE_THINKING_PATH = "choices[0].message.reasoning_content"

SENTENCE_PROMPT = """You are an English language tutor. Create a single, natural sentence that incorporates ALL of the following words: {words}

Requirements:
1. Use ALL provided words naturally in the sentence
2. The sentence should be grammatically correct and meaningful
3. Provide detailed reasoning about your thought process and grammar explanation

Please generate a coherent sentence and explain your reasoning.

Words to include: {words}"""

DEFAULT_EXPLANATION = "Grammar explanation provided by AI"


class Patterns:
    """Regex patterns for input validation."""

    WORD = r"^[a-zA-Z\-']+$"
