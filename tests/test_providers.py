"""Tests for the provider registry and availability resolver"""

import pytest

from vauban_ai.providers import (
    IMAGE_FALLBACK_CHAIN,
    IMAGE_PROVIDERS,
    MODEL_PRIORITY_BY_TASK,
    TEXT_FALLBACK_CHAIN,
    TEXT_PROVIDERS,
    ImageProvider,
    TaskSensitivity,
    TextProvider,
    get_available_fallback_providers,
    get_available_image_providers,
    get_available_text_providers,
    get_best_available_image_provider,
    get_best_available_text_provider,
    get_provider_api_key,
    get_task_sensitivity_for_action,
    is_provider_available,
)


class TestRegistry:
    """Static registry shape"""

    def test_every_provider_has_a_descriptor(self):
        assert set(TEXT_PROVIDERS) == set(TextProvider)
        assert set(IMAGE_PROVIDERS) == set(ImageProvider)

    def test_descriptor_keys_match_enum_values(self):
        for provider, descriptor in {**TEXT_PROVIDERS, **IMAGE_PROVIDERS}.items():
            assert descriptor.key == provider.value
            assert descriptor.models, f"{provider} lists no models"

    def test_keyed_providers_name_their_variable(self):
        for descriptor in {**TEXT_PROVIDERS, **IMAGE_PROVIDERS}.values():
            if descriptor.requires_api_key:
                assert descriptor.api_key_env_var.endswith("_API_KEY")

    def test_localai_needs_no_key(self):
        assert TEXT_PROVIDERS[TextProvider.LOCALAI].requires_api_key is False

    def test_fallback_chains_never_include_self(self):
        for provider, chain in {**TEXT_FALLBACK_CHAIN, **IMAGE_FALLBACK_CHAIN}.items():
            assert provider not in chain

    def test_fallback_chains_stay_within_modality(self):
        for chain in TEXT_FALLBACK_CHAIN.values():
            assert all(isinstance(p, TextProvider) for p in chain)
        for chain in IMAGE_FALLBACK_CHAIN.values():
            assert all(isinstance(p, ImageProvider) for p in chain)

    def test_priority_lists_cover_every_sensitivity(self):
        assert set(MODEL_PRIORITY_BY_TASK) == set(TaskSensitivity)


class TestAvailability:
    """Availability is a pure function of the credential state"""

    @pytest.mark.parametrize(
        "provider",
        [p for p in (*TextProvider, *ImageProvider) if p != TextProvider.LOCALAI],
    )
    def test_keyed_provider_tracks_credential(self, provider, credentials, monkeypatch):
        descriptor = TEXT_PROVIDERS.get(provider) or IMAGE_PROVIDERS[provider]
        assert is_provider_available(provider, credentials) is False

        monkeypatch.setenv(descriptor.api_key_env_var, "")
        assert is_provider_available(provider, credentials) is False

        monkeypatch.setenv(descriptor.api_key_env_var, "test-key-123456")
        assert is_provider_available(provider, credentials) is True

    def test_keyless_provider_always_available(self, credentials):
        assert is_provider_available(TextProvider.LOCALAI, credentials) is True
        assert get_provider_api_key(TextProvider.LOCALAI, credentials) is None

    def test_available_lists(self, credentials, monkeypatch):
        monkeypatch.setenv("GROQ_API_KEY", "gsk-test-123456")
        monkeypatch.setenv("TOGETHER_API_KEY", "together-test-123456")

        assert get_available_text_providers(credentials) == [
            TextProvider.GROQ,
            TextProvider.LOCALAI,
        ]
        assert get_available_image_providers(credentials) == [ImageProvider.TOGETHER]

    def test_best_text_provider_prefers_gemini(self, credentials, monkeypatch):
        assert get_best_available_text_provider(credentials) == TextProvider.LOCALAI

        monkeypatch.setenv("GROQ_API_KEY", "gsk-test-123456")
        assert get_best_available_text_provider(credentials) == TextProvider.GROQ

        monkeypatch.setenv("OPENROUTER_API_KEY", "sk-or-test-123456")
        assert get_best_available_text_provider(credentials) == TextProvider.OPENROUTER

        monkeypatch.setenv("GEMINI_API_KEY", "AIza-test-123456")
        assert get_best_available_text_provider(credentials) == TextProvider.GEMINI

    def test_best_image_provider_defaults_to_huggingface(self, credentials, monkeypatch):
        assert get_best_available_image_provider(credentials) == ImageProvider.HUGGINGFACE

        monkeypatch.setenv("POLLINATIONS_API_KEY", "pollinations-123456")
        assert get_best_available_image_provider(credentials) == ImageProvider.POLLINATIONS

    def test_fallback_providers_filtered_by_availability(self, credentials, monkeypatch):
        assert get_available_fallback_providers(TextProvider.GEMINI, credentials) == [
            TextProvider.LOCALAI
        ]

        monkeypatch.setenv("GROQ_API_KEY", "gsk-test-123456")
        assert get_available_fallback_providers(TextProvider.GEMINI, credentials) == [
            TextProvider.GROQ,
            TextProvider.LOCALAI,
        ]

    def test_image_fallback_with_no_keys_is_empty(self, credentials):
        assert get_available_fallback_providers(ImageProvider.HUGGINGFACE, credentials) == []


class TestTaskSensitivity:
    @pytest.mark.parametrize(
        "action,expected",
        [
            ("suggest_title", TaskSensitivity.LIGHT),
            ("suggest_tags", TaskSensitivity.LIGHT),
            ("improve", TaskSensitivity.MEDIUM),
            ("expand", TaskSensitivity.HEAVY),
            ("translate_en", TaskSensitivity.HEAVY),
        ],
    )
    def test_known_actions(self, action, expected):
        assert get_task_sensitivity_for_action(action) == expected

    def test_unknown_or_missing_action_is_medium(self):
        assert get_task_sensitivity_for_action("dance") == TaskSensitivity.MEDIUM
        assert get_task_sensitivity_for_action(None) == TaskSensitivity.MEDIUM
