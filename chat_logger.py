"""
chat_logger.py - Centralized logging configuration for dataviz-chat

Sets up Python logging with:
- File handler: logs/YYYY-MM-DD/chat.txt (one folder per day)
- Console handler: stdout
- Level from the LOG_LEVEL env variable
- Masking of store credentials and model API keys before they reach a log line
"""

import os
import re
import logging
from datetime import datetime
from pathlib import Path

DEFAULT_LOGGER = "dataviz_chat"

_SECRET_PARAMS = re.compile(r"(consumer_key|consumer_secret|api_key|api-key|key)=[^&\s]*")
_BEARER = re.compile(r"(Bearer\s+)[A-Za-z0-9._\-]+")


def sanitize_log_string(text: str) -> str:
    """
    Flatten a user-supplied string onto one log line.

    Newlines, carriage returns, tabs and other control characters become
    spaces so a question cannot forge extra log entries.
    """
    if not text:
        return text
    return "".join(char if ord(char) >= 32 else " " for char in text)


def sanitize_url(url: str) -> str:
    """Mask credential query parameters (consumer_key, consumer_secret, api keys)."""
    if not url:
        return url
    return _SECRET_PARAMS.sub(lambda m: f"{m.group(1)}=***", url)


def mask_secrets(text: str) -> str:
    """Mask bearer tokens and credential params inside free text (error bodies)."""
    if not text:
        return text
    return _BEARER.sub(r"\1***", sanitize_url(text))


class MillisecondFormatter(logging.Formatter):
    def formatTime(self, record, datefmt=None):
        if not datefmt:
            return super().formatTime(record, datefmt)
        stamp = datetime.fromtimestamp(record.created).strftime(datefmt)
        return f"{stamp}.{int(record.msecs):03d}"


def setup_logger(name: str = DEFAULT_LOGGER, log_level: str = "INFO", log_dir: str = "logs") -> logging.Logger:
    """
    Configure and return a logger with file and console handlers.

    Calling it again for an already configured logger is a no-op.
    """
    logger = logging.getLogger(name)
    level = getattr(logging, log_level.upper(), logging.INFO)
    logger.setLevel(level)

    if logger.handlers:
        return logger

    formatter = MillisecondFormatter(
        fmt="[%(asctime)s] [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    # ─── File Handler ───
    day_dir = Path(log_dir) / datetime.now().strftime("%Y-%m-%d")
    day_dir.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(day_dir / "chat.txt", encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    # ─── Console Handler ───
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    return logger


def get_logger(name: str = DEFAULT_LOGGER) -> logging.Logger:
    """Return the named logger, configuring it from LOG_LEVEL / LOG_DIR on first use."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        setup_logger(name, os.getenv("LOG_LEVEL", "INFO"), os.getenv("LOG_DIR", "logs"))
    return logger
