"""Logging helpers with secret redaction."""

from __future__ import annotations

import logging
import re
from typing import Iterable

_REDACTIONS = [
    re.compile(r"Bearer\s+[A-Za-z0-9\-_.]+"),
    re.compile(r"sk-[A-Za-z0-9]+"),
]
_QUERY_KEY = re.compile(r"([?&]key=)[^&\s]+")


def redact(text: str, extra_secrets: Iterable[str] | None = None) -> str:
    """Redact known secret patterns and explicit secrets from text."""
    redacted = text
    for pattern in _REDACTIONS:
        redacted = pattern.sub("Bearer [REDACTED]", redacted)
    redacted = _QUERY_KEY.sub(r"\1[REDACTED]", redacted)
    if extra_secrets:
        for secret in extra_secrets:
            if secret:
                redacted = redacted.replace(secret, "[REDACTED]")
    return redacted


def mask_api_key(api_key: str) -> str:
    """Mask an API key for debug output, keeping a short recognizable prefix."""
    if len(api_key) <= 12:
        return "*" * len(api_key)
    return api_key[:6] + "*" * (len(api_key) - 6)


def get_logger(name: str) -> logging.Logger:
    """Return a configured logger."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger


def set_verbose(verbose: bool) -> None:
    """Switch every docagent logger between INFO and DEBUG."""
    level = logging.DEBUG if verbose else logging.INFO
    for name, logger in logging.root.manager.loggerDict.items():
        if name.startswith("docagent") and isinstance(logger, logging.Logger):
            logger.setLevel(level)
