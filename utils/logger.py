"""
Logging configuration for the gateway.
Log lines pass through a redaction filter so credentials never reach the output.
"""
import logging
import os
import re
import sys

# Bearer tokens, provider-style keys and stored "rsa:" ciphertexts
SECRET_PATTERNS = (
    re.compile(r'(Bearer\s+)([^\s"\',]+)', re.IGNORECASE),
    re.compile(r'()\b((?:sk|pk|key)-[A-Za-z0-9_\-]{6,})'),
    re.compile(r'()(rsa:[A-Za-z0-9+/=]{8,})'),
)


def mask_key(key: str) -> str:
    """Mask a secret for display: 'sk-abc...wxyz'."""
    if not key:
        return ""
    if len(key) <= 8:
        return key[:2] + "..." + key[-2:]
    return key[:6] + "..." + key[-4:]


class SecretRedactionFilter(logging.Filter):
    """Masks anything that looks like a credential in the rendered message."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = message
        for pattern in SECRET_PATTERNS:
            redacted = pattern.sub(lambda m: m.group(1) + mask_key(m.group(2)), redacted)

        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


class ColoredFormatter(logging.Formatter):
    """Level-colored formatter, plain when the stream is not a terminal."""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def __init__(self, fmt: str, datefmt: str, use_colors: bool = True):
        super().__init__(fmt, datefmt=datefmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        if not self.use_colors:
            return super().format(record)

        # copy so other handlers see the plain level name
        record = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelname, self.RESET)
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def setup_logger(name: str, level: int | str | None = None) -> logging.Logger:
    """
    Set up a logger writing redacted, colored lines to stdout.

    Args:
        name: Logger name
        level: Logging level, defaults to the LOG_LEVEL environment variable or INFO

    Returns:
        Configured logger instance
    """
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO").upper()

    logger = logging.getLogger(name)
    logger.setLevel(level)

    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(SecretRedactionFilter())
    handler.setFormatter(ColoredFormatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        use_colors=sys.stdout.isatty()
    ))

    logger.addHandler(handler)
    return logger


app_logger = setup_logger("ai_gateway")
