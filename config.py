"""
Configuration module for the AI Config Gateway application.
Handles environment variables and application settings.
"""
import os
from dotenv import load_dotenv

load_dotenv()


def _read_pem(name: str) -> str:
    """Read a PEM value from the environment, unescaping literal \\n sequences."""
    return os.getenv(name, "").replace("\\n", "\n").strip()


class Config:
    """Application configuration class."""

    # Application Settings
    APP_TITLE: str = "AI Config Gateway"
    API_KEY: str = os.getenv("API_KEY", "")
    DB_PATH: str = os.getenv("GATEWAY_DB_PATH", "data/gateway.db")

    # RSA key pair used to protect stored secrets
    RSA_PUBLIC_KEY: str = _read_pem("RSA_PUBLIC_KEY")
    RSA_PRIVATE_KEY: str = _read_pem("RSA_PRIVATE_KEY")
    RSA_KEY_SIZE: int = 2048

    # Platform (system default) AI provider
    ENCRYPTED_PLATFORM_API_KEY: str = os.getenv("ENCRYPTED_PLATFORM_API_KEY", "")
    PLATFORM_API_KEY: str = os.getenv("PLATFORM_API_KEY", "")
    PLATFORM_API_URL: str = os.getenv("PLATFORM_API_URL", "https://api.siliconflow.cn/v1/chat/completions")
    PLATFORM_MODEL: str = os.getenv("PLATFORM_MODEL", "Qwen/Qwen3-8B")
    PLATFORM_CONFIG_NAME: str = "SiliconFlow Default"

    # Timeouts (in seconds)
    AI_TIMEOUT: float = float(os.getenv("AI_TIMEOUT", "30"))

    # Outbound connection pool
    AI_MAX_CONNECTIONS: int = 20

    # Sentence generation limits
    MAX_WORDS_PER_GENERATION: int = 20
    MAX_WORD_LENGTH: int = 50

    @classmethod
    def has_rsa_keys(cls) -> bool:
        """Check whether a persisted key pair is configured."""
        return bool(cls.RSA_PUBLIC_KEY and cls.RSA_PRIVATE_KEY)

    @classmethod
    def validate(cls) -> None:
        """Validate configuration and print warnings for missing settings."""
        if not cls.API_KEY:
            print("   WARNING: API_KEY not found in .env file, every protected route will answer 500")

        if not cls.has_rsa_keys():
            print("   WARNING: RSA_PUBLIC_KEY / RSA_PRIVATE_KEY not found in .env file")
            print("   A temporary key pair will be generated; secrets stored with it are lost on restart.")
            print("   Run scripts/encrypt_platform_key.py to create and persist a key pair.")

        if not cls.ENCRYPTED_PLATFORM_API_KEY and not cls.PLATFORM_API_KEY:
            print("   WARNING: ENCRYPTED_PLATFORM_API_KEY not found in .env file")
            print("   Users without their own AI configuration or API key will not be able to generate.")

        if cls.PLATFORM_API_KEY and not cls.ENCRYPTED_PLATFORM_API_KEY:
            print("   WARNING: PLATFORM_API_KEY is stored in plain text")
            print("   Run scripts/encrypt_platform_key.py to store it as ENCRYPTED_PLATFORM_API_KEY.")

Config.validate()
