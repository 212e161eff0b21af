"""Tests for input validation and log redaction"""

import pytest

from vauban_ai.validation import LOG_DETAIL_LENGTH, InputValidator


class TestInputValidator:
    def test_valid_prompt(self):
        assert InputValidator.validate_prompt("Bonjour") == (True, "")

    @pytest.mark.parametrize("prompt", ["", None, 42])
    def test_invalid_prompt(self, prompt):
        is_valid, error = InputValidator.validate_prompt(prompt)
        assert is_valid is False
        assert error

    def test_unknown_role_rejected(self):
        is_valid, error = InputValidator.validate_messages([{"role": "tool", "content": "x"}])
        assert is_valid is False
        assert "invalid role" in error


class TestSanitizeForLogging:
    @pytest.mark.parametrize(
        "secret",
        [
            "gsk_" + "abcDEF1234" * 3,
            "key=AIzaSy" + "Q1w2E3r4T5" * 3,
            "Bearer " + "hf_" + "z9Y8x7W6v5" * 3,
        ],
    )
    def test_keys_redacted(self, secret):
        sanitized = InputValidator.sanitize_for_logging(f"request failed: {secret} rejected")
        assert "[REDACTED]" in sanitized
        assert secret not in sanitized

    def test_key_at_truncation_boundary_not_leaked(self):
        text = "x" * 90 + "gsk_" + "abcDEF1234" * 3
        sanitized = InputValidator.sanitize_for_logging(text)
        assert "abcDEF" not in sanitized

    def test_long_text_truncated(self):
        sanitized = InputValidator.sanitize_for_logging("a" * 1000, max_len=LOG_DETAIL_LENGTH)
        assert sanitized == "a" * LOG_DETAIL_LENGTH + "..."

    def test_plain_text_untouched(self):
        assert InputValidator.sanitize_for_logging("Connection refused") == "Connection refused"

    def test_empty(self):
        assert InputValidator.sanitize_for_logging("") == ""
