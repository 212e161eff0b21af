"""
Provider Registry
=================
Static description of every text and image vendor the orchestrator can
reach, the fallback chains between them, and the task-sensitivity tables
used for automatic model selection.

Everything here is built once at import time and never mutated.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType

from .credentials import CredentialManager, get_credential_manager


class TextProvider(str, Enum):
    """Vendors that serve chat completions"""

    GEMINI = "gemini"
    GROQ = "groq"
    OPENROUTER = "openrouter"
    LOCALAI = "localai"


class ImageProvider(str, Enum):
    """Vendors that serve image synthesis"""

    HUGGINGFACE = "huggingface"
    TOGETHER = "together"
    POLLINATIONS = "pollinations"


class TaskSensitivity(str, Enum):
    """How much generation quality an action needs"""

    LIGHT = "light"
    MEDIUM = "medium"
    HEAVY = "heavy"


AnyProvider = TextProvider | ImageProvider


@dataclass(frozen=True)
class ProviderDescriptor:
    """Immutable vendor definition"""

    key: str
    name: str
    models: tuple[str, ...]
    base_url: str
    requires_api_key: bool
    api_key_env_var: str
    commercial: bool
    latency: str = ""
    free_tier: str = ""

    @property
    def default_model(self) -> str | None:
        return self.models[0] if self.models else None


@dataclass(frozen=True)
class LocalModelInfo:
    """Display metadata for a model the local engine can serve"""

    name: str
    size: str
    speed: str
    quality: str


DEFAULT_LOCALAI_URL = "http://localhost:8081/v1"

TEXT_PROVIDERS: Mapping[TextProvider, ProviderDescriptor] = MappingProxyType(
    {
        TextProvider.GEMINI: ProviderDescriptor(
            key="gemini",
            name="Google Gemini",
            models=("gemini-2.0-flash", "gemini-1.5-flash"),
            base_url="https://generativelanguage.googleapis.com/v1beta",
            requires_api_key=True,
            api_key_env_var="GEMINI_API_KEY",
            commercial=True,
            latency="~150ms",
            free_tier="1000 req/day",
        ),
        TextProvider.GROQ: ProviderDescriptor(
            key="groq",
            name="Groq (test only)",
            models=("llama-3.3-70b-versatile", "mixtral-8x7b-32768"),
            base_url="https://api.groq.com/openai/v1",
            requires_api_key=True,
            api_key_env_var="GROQ_API_KEY",
            commercial=False,
            latency="<50ms",
            free_tier="500K tokens/day",
        ),
        TextProvider.OPENROUTER: ProviderDescriptor(
            key="openrouter",
            name="OpenRouter (free models)",
            # Only ":free" models, so routing through here never costs money
            models=(
                "google/gemini-2.0-flash-exp:free",
                "google/gemini-2.5-flash-preview-05-20:free",
                "meta-llama/llama-3.3-70b-instruct:free",
                "mistralai/mistral-small-3.1-24b-instruct:free",
                "qwen/qwen3-235b-a22b:free",
            ),
            base_url="https://openrouter.ai/api/v1",
            requires_api_key=True,
            api_key_env_var="OPENROUTER_API_KEY",
            commercial=True,
            latency="~100-500ms",
            free_tier="free (rate limited)",
        ),
        TextProvider.LOCALAI: ProviderDescriptor(
            key="localai",
            name="LocalAI",
            # Installed models are discovered at runtime; these are the defaults
            models=("qwen2-1.5b", "mistral"),
            base_url=os.environ.get("LOCALAI_API_URL", DEFAULT_LOCALAI_URL),
            requires_api_key=False,
            api_key_env_var="",
            commercial=True,
            latency="~3-30s",
            free_tier="unlimited",
        ),
    }
)

IMAGE_PROVIDERS: Mapping[ImageProvider, ProviderDescriptor] = MappingProxyType(
    {
        ImageProvider.HUGGINGFACE: ProviderDescriptor(
            key="huggingface",
            name="Hugging Face",
            models=(
                "black-forest-labs/FLUX.1-schnell",
                "stabilityai/stable-diffusion-xl-base-1.0",
                "stabilityai/stable-diffusion-3.5-large",
            ),
            base_url="https://api-inference.huggingface.co/models",
            requires_api_key=True,
            api_key_env_var="HUGGINGFACE_API_KEY",
            commercial=True,
            latency="~3-15s",
            free_tier="free (rate limited)",
        ),
        ImageProvider.TOGETHER: ProviderDescriptor(
            key="together",
            name="Together AI",
            models=("black-forest-labs/FLUX.1-schnell", "black-forest-labs/FLUX.1.1-pro"),
            base_url="https://api.together.xyz/v1",
            requires_api_key=True,
            api_key_env_var="TOGETHER_API_KEY",
            commercial=True,
            latency="1.5-2s",
            free_tier="$1 credit",
        ),
        ImageProvider.POLLINATIONS: ProviderDescriptor(
            key="pollinations",
            name="Pollinations",
            models=("flux",),
            base_url="https://image.pollinations.ai",
            requires_api_key=True,
            api_key_env_var="POLLINATIONS_API_KEY",
            commercial=True,
            latency="3-8s",
            free_tier="signup required",
        ),
    }
)

LOCALAI_MODELS_METADATA: Mapping[str, LocalModelInfo] = MappingProxyType(
    {
        # Ultra-light (< 1GB)
        "smollm2-360m": LocalModelInfo("SmolLM2 360M", "230MB", "~1s", "Experimental"),
        "tinyllama": LocalModelInfo("TinyLlama 1.1B", "670MB", "~3s", "Basic"),
        # Light (1-2GB)
        "qwen2-1.5b": LocalModelInfo("Qwen2 1.5B", "941MB", "~5s", "Good"),
        "gemma-2b": LocalModelInfo("Gemma 2B", "1.5GB", "~6s", "Good"),
        # Medium (2-4GB)
        "phi-3-mini": LocalModelInfo("Phi-3 Mini", "2.4GB", "~8s", "Very good"),
        # Large (4GB+)
        "mistral": LocalModelInfo("Mistral 7B", "4.1GB", "~30s", "Excellent"),
        "llama3-8b": LocalModelInfo("Llama 3 8B", "4.7GB", "~40s", "Excellent"),
    }
)

# Models under 1.5B follow instructions poorly, so they sit at the tail
MODEL_PRIORITY_BY_TASK: Mapping[TaskSensitivity, tuple[str, ...]] = MappingProxyType(
    {
        TaskSensitivity.LIGHT: (
            "qwen2-1.5b",
            "gemma-2b",
            "phi-3-mini",
            "tinyllama",
            "mistral",
            "smollm2-360m",
        ),
        TaskSensitivity.MEDIUM: (
            "qwen2-1.5b",
            "gemma-2b",
            "phi-3-mini",
            "mistral",
            "tinyllama",
            "smollm2-360m",
        ),
        TaskSensitivity.HEAVY: (
            "mistral",
            "llama3-8b",
            "phi-3-mini",
            "qwen2-1.5b",
            "gemma-2b",
            "tinyllama",
        ),
    }
)

ULTIMATE_FALLBACK_MODEL = "qwen2-1.5b"

ACTION_TASK_SENSITIVITY: Mapping[str, TaskSensitivity] = MappingProxyType(
    {
        "suggest_title": TaskSensitivity.LIGHT,
        "suggest_tags": TaskSensitivity.LIGHT,
        "suggest_excerpt": TaskSensitivity.LIGHT,
        "fix_grammar": TaskSensitivity.LIGHT,
        "improve": TaskSensitivity.MEDIUM,
        "simplify": TaskSensitivity.MEDIUM,
        "expand": TaskSensitivity.HEAVY,
        "translate_en": TaskSensitivity.HEAVY,
        "translate_fr": TaskSensitivity.HEAVY,
        "continue": TaskSensitivity.HEAVY,
    }
)

OPENROUTER_MODEL_BY_TASK: Mapping[TaskSensitivity, str] = MappingProxyType(
    {
        TaskSensitivity.LIGHT: "google/gemini-2.0-flash-exp:free",
        TaskSensitivity.MEDIUM: "google/gemini-2.0-flash-exp:free",
        TaskSensitivity.HEAVY: "google/gemini-2.0-flash-exp:free",
    }
)

TEXT_FALLBACK_CHAIN: Mapping[TextProvider, tuple[TextProvider, ...]] = MappingProxyType(
    {
        TextProvider.GEMINI: (TextProvider.OPENROUTER, TextProvider.GROQ, TextProvider.LOCALAI),
        TextProvider.OPENROUTER: (TextProvider.GEMINI, TextProvider.GROQ, TextProvider.LOCALAI),
        TextProvider.GROQ: (TextProvider.OPENROUTER, TextProvider.GEMINI, TextProvider.LOCALAI),
        TextProvider.LOCALAI: (TextProvider.OPENROUTER, TextProvider.GEMINI, TextProvider.GROQ),
    }
)

IMAGE_FALLBACK_CHAIN: Mapping[ImageProvider, tuple[ImageProvider, ...]] = MappingProxyType(
    {
        ImageProvider.HUGGINGFACE: (ImageProvider.TOGETHER, ImageProvider.POLLINATIONS),
        ImageProvider.TOGETHER: (ImageProvider.HUGGINGFACE, ImageProvider.POLLINATIONS),
        ImageProvider.POLLINATIONS: (ImageProvider.HUGGINGFACE, ImageProvider.TOGETHER),
    }
)

TEXT_PROVIDER_PRIORITY = (
    TextProvider.GEMINI,
    TextProvider.OPENROUTER,
    TextProvider.GROQ,
    TextProvider.LOCALAI,
)
IMAGE_PROVIDER_PRIORITY = (
    ImageProvider.HUGGINGFACE,
    ImageProvider.TOGETHER,
    ImageProvider.POLLINATIONS,
)


def get_descriptor(provider: AnyProvider) -> ProviderDescriptor:
    if isinstance(provider, TextProvider):
        return TEXT_PROVIDERS[provider]
    return IMAGE_PROVIDERS[provider]


def get_provider_api_key(
    provider: AnyProvider,
    credentials: CredentialManager | None = None,
) -> str | None:
    """Resolve the credential for a provider, or None if it needs none"""
    descriptor = get_descriptor(provider)
    if not descriptor.requires_api_key:
        return None

    manager = credentials or get_credential_manager()
    return manager.get_api_key(descriptor.api_key_env_var)


def is_provider_available(
    provider: AnyProvider,
    credentials: CredentialManager | None = None,
) -> bool:
    """
    A provider is usable when it needs no key, or its key is non-empty.

    Validity of the key is not checked here; a bad key surfaces as an
    API error when the vendor rejects the request.
    """
    descriptor = get_descriptor(provider)
    if not descriptor.requires_api_key:
        return True
    return bool(get_provider_api_key(provider, credentials))


def get_available_text_providers(
    credentials: CredentialManager | None = None,
) -> list[TextProvider]:
    return [p for p in TEXT_PROVIDERS if is_provider_available(p, credentials)]


def get_available_image_providers(
    credentials: CredentialManager | None = None,
) -> list[ImageProvider]:
    return [p for p in IMAGE_PROVIDERS if is_provider_available(p, credentials)]


def get_best_available_text_provider(
    credentials: CredentialManager | None = None,
) -> TextProvider:
    for provider in TEXT_PROVIDER_PRIORITY:
        if is_provider_available(provider, credentials):
            return provider
    return TextProvider.LOCALAI


def get_best_available_image_provider(
    credentials: CredentialManager | None = None,
) -> ImageProvider:
    for provider in IMAGE_PROVIDER_PRIORITY:
        if is_provider_available(provider, credentials):
            return provider
    return ImageProvider.HUGGINGFACE


def get_fallback_chain(provider: AnyProvider) -> tuple[AnyProvider, ...]:
    if isinstance(provider, TextProvider):
        return TEXT_FALLBACK_CHAIN.get(provider, ())
    return IMAGE_FALLBACK_CHAIN.get(provider, ())


def get_available_fallback_providers(
    provider: AnyProvider,
    credentials: CredentialManager | None = None,
) -> list[AnyProvider]:
    """Fallback chain for ``provider``, restricted to usable alternates"""
    return [
        alternate
        for alternate in get_fallback_chain(provider)
        if is_provider_available(alternate, credentials)
    ]


def get_task_sensitivity_for_action(action: str | None) -> TaskSensitivity:
    if not action:
        return TaskSensitivity.MEDIUM
    return ACTION_TASK_SENSITIVITY.get(action, TaskSensitivity.MEDIUM)


def get_openrouter_model_for_task(sensitivity: TaskSensitivity) -> str:
    return OPENROUTER_MODEL_BY_TASK[sensitivity]
