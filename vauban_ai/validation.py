"""Input checks applied before anything is sent to a vendor."""

import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

VALID_ROLES = frozenset({"system", "user", "assistant"})

SECRET_PATTERN = re.compile(
    r"(sk-|hf_|gsk_|api[_-]?key|key=|bearer\s+)[a-zA-Z0-9\-_]{20,}", re.IGNORECASE
)

# Longest vendor or exception text copied into a log line
LOG_DETAIL_LENGTH = 300


class InputValidator:
    """Security-focused input validation"""

    # Patterns that might indicate injection attempts
    SUSPICIOUS_PATTERNS = [
        r"<\s*script\b",
        r"javascript\s*:",
        r"\{\{.*\}\}",
        r"__proto__",
    ]

    MAX_PROMPT_LENGTH = 500000
    MAX_MESSAGES = 100

    @classmethod
    def validate_prompt(cls, prompt: Any) -> tuple[bool, str]:
        """Validate a single prompt string"""
        if not prompt or not isinstance(prompt, str):
            return False, "Invalid prompt: must be a non-empty string"

        if len(prompt) > cls.MAX_PROMPT_LENGTH:
            return False, f"Prompt exceeds maximum length of {cls.MAX_PROMPT_LENGTH}"

        # Log but don't block; article text legitimately contains code
        for pattern in cls.SUSPICIOUS_PATTERNS:
            if re.search(pattern, prompt, re.IGNORECASE):
                logger.warning(f"Potentially suspicious pattern in prompt: {pattern}")

        return True, ""

    @classmethod
    def validate_messages(cls, messages: Any) -> tuple[bool, str]:
        """Validate a chat message list"""
        if not messages or not isinstance(messages, list):
            return False, "Invalid messages: must be a non-empty list"

        if len(messages) > cls.MAX_MESSAGES:
            return False, f"Too many messages: max {cls.MAX_MESSAGES}"

        for i, msg in enumerate(messages):
            if not isinstance(msg, dict) or "role" not in msg or "content" not in msg:
                return False, f"Message {i} missing required fields"

            if msg["role"] not in VALID_ROLES:
                return False, f"Message {i} has invalid role: {msg['role']!r}"

            is_valid, error = cls.validate_prompt(msg["content"])
            if not is_valid:
                return False, f"Message {i}: {error}"

        return True, ""

    @classmethod
    def sanitize_for_logging(cls, text: str, max_len: int = 100) -> str:
        """Sanitize text for safe logging (no sensitive data)"""
        if not text:
            return ""
        # Redact first: a truncated key is too short to match
        sanitized = SECRET_PATTERN.sub("[REDACTED]", text)
        return sanitized[:max_len] + ("..." if len(sanitized) > max_len else "")
