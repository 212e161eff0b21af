"""
AI Orchestrator
===============
Dispatches text and image generation requests to the configured vendor.

When the caller pins a provider, exactly that provider is called once.
Otherwise the provider comes from the user's config, and a failure walks
that provider's fallback chain until an available alternate succeeds.
Every call ends in an ``AIResult`` or an ``AIError``; nothing raises.
"""

import functools
import logging
import time
from dataclasses import dataclass, replace
from typing import Any

import httpx

from .actions import (
    COVER_HEIGHT,
    COVER_WIDTH,
    TEST_IMAGE_PROMPT,
    AIAction,
    build_action_messages,
    build_cover_prompt,
    build_custom_messages,
)
from .config import ConfigStore
from .credentials import CredentialManager, get_credential_manager
from .errors import AIResponse, no_provider_error, validation_error
from .fallback import run_with_fallback
from .images import (
    DEFAULT_HEIGHT,
    DEFAULT_STEPS,
    DEFAULT_WIDTH,
    BaseImageProvider,
    HuggingFaceProvider,
    ImageRequest,
    ObjectURLStore,
    PollinationsProvider,
    TogetherProvider,
    get_object_url_store,
)
from .models import InstalledModelsCache, LocalModelStatus, ModelSelector, fetch_localai_models
from .providers import (
    IMAGE_PROVIDERS,
    TEXT_PROVIDERS,
    ImageProvider,
    TaskSensitivity,
    TextProvider,
    get_available_fallback_providers,
    get_provider_api_key,
    get_task_sensitivity_for_action,
)
from .text import (
    BaseTextProvider,
    GeminiProvider,
    OpenAICompatibleProvider,
    OpenRouterProvider,
    TextRequest,
)
from .transport import AbortSignal
from .validation import InputValidator

logger = logging.getLogger(__name__)

TEST_IMAGE_SIZE = 512


@dataclass
class AIRequestOptions:
    """Per-call overrides for text generation"""

    provider: TextProvider | str | None = None
    model: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    signal: AbortSignal | None = None
    task_sensitivity: TaskSensitivity | None = None
    action: str | None = None


@dataclass
class ImageGenerationOptions:
    """Per-call overrides for image generation"""

    provider: ImageProvider | str | None = None
    model: str | None = None
    width: int | None = None
    height: int | None = None
    steps: int = DEFAULT_STEPS
    signal: AbortSignal | None = None


@dataclass(frozen=True)
class ConnectionReport:
    provider: str
    connected: bool
    latency_ms: float | None = None
    error: str | None = None


class AIOrchestrator:
    """
    Routes generation requests to vendors.

    Features:
    - Provider and model resolution from config when none is pinned
    - Fallback across available alternates for implicit providers
    - Task-aware model selection for the local engine
    - Blob image responses exposed as local object URLs

    Use as an async context manager so a client it created gets closed.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        credentials: CredentialManager | None = None,
        config_store: ConfigStore | None = None,
        model_selector: ModelSelector | None = None,
        object_urls: ObjectURLStore | None = None,
    ) -> None:
        self._owns_client = client is None
        self.client = client if client is not None else httpx.AsyncClient()
        self.credentials = credentials or get_credential_manager()
        self.config_store = config_store or ConfigStore(credentials=self.credentials)
        self.model_selector = model_selector or ModelSelector(
            InstalledModelsCache(functools.partial(fetch_localai_models, self.client))
        )
        self.object_urls = object_urls if object_urls is not None else get_object_url_store()

    async def __aenter__(self) -> "AIOrchestrator":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    # Adapters

    def text_adapter(self, provider: TextProvider) -> BaseTextProvider:
        descriptor = TEXT_PROVIDERS[provider]
        match provider:
            case TextProvider.GEMINI:
                return GeminiProvider(descriptor, self.client)
            case TextProvider.OPENROUTER:
                return OpenRouterProvider(descriptor, self.client)
            case TextProvider.GROQ | TextProvider.LOCALAI:
                return OpenAICompatibleProvider(descriptor, self.client)
        raise ValueError(f"No text adapter for {provider!r}")

    def image_adapter(self, provider: ImageProvider) -> BaseImageProvider:
        descriptor = IMAGE_PROVIDERS[provider]
        match provider:
            case ImageProvider.HUGGINGFACE:
                return HuggingFaceProvider(descriptor, self.client, self.object_urls)
            case ImageProvider.TOGETHER:
                return TogetherProvider(descriptor, self.client, self.object_urls)
            case ImageProvider.POLLINATIONS:
                return PollinationsProvider(descriptor, self.client, self.object_urls)
        raise ValueError(f"No image adapter for {provider!r}")

    # Text generation

    async def chat_completion(
        self,
        messages: list[dict[str, Any]],
        options: AIRequestOptions | None = None,
    ) -> AIResponse[str]:
        """
        Generate a chat completion.

        Args:
            messages: Chat messages with ``role`` and ``content``
            options: Optional provider/model/sampling overrides and abort signal

        Returns:
            AIResult with the generated text, or AIError
        """
        options = options or AIRequestOptions()

        is_valid, error = InputValidator.validate_messages(messages)
        if not is_valid:
            return validation_error(error)

        try:
            explicit_provider = TextProvider(options.provider) if options.provider else None
        except ValueError:
            return validation_error(f"Unknown text provider: {options.provider!r}")

        sensitivity = options.task_sensitivity or get_task_sensitivity_for_action(options.action)

        if explicit_provider is not None:
            return await self._complete_with(
                explicit_provider,
                messages,
                options,
                sensitivity,
                explicit_model=options.model,
            )

        config = self.config_store.get_ai_config()
        primary = config.text_provider
        response = await self._complete_with(
            primary,
            messages,
            options,
            sensitivity,
            explicit_model=options.model,
            configured_model=config.text_model,
            auto_selection=config.auto_model_selection,
        )
        if response.success:
            return response

        async def _attempt(alternate: TextProvider) -> AIResponse[str]:
            return await self._complete_with(
                alternate,
                messages,
                options,
                sensitivity,
                auto_selection=config.auto_model_selection,
            )

        outcome = await run_with_fallback(
            primary,
            response,
            get_available_fallback_providers(primary, self.credentials),
            _attempt,
            options.signal,
        )
        return outcome.response

    async def _complete_with(
        self,
        provider: TextProvider,
        messages: list[dict[str, Any]],
        options: AIRequestOptions,
        sensitivity: TaskSensitivity,
        explicit_model: str | None = None,
        configured_model: str | None = None,
        auto_selection: bool = False,
    ) -> AIResponse[str]:
        """One dispatch against one provider, model selection included"""
        descriptor = TEXT_PROVIDERS[provider]
        api_key = get_provider_api_key(provider, self.credentials)
        if descriptor.requires_api_key and not api_key:
            return no_provider_error(descriptor.name, descriptor.api_key_env_var, provider.value)

        choice = await self.model_selector.select_model(
            provider,
            explicit_model=explicit_model,
            sensitivity=sensitivity,
            configured_model=configured_model,
            auto_selection=auto_selection,
        )
        logger.debug(
            f"Dispatching to {provider.value} with {choice.model}"
            f"{' (auto-selected)' if choice.auto_selected else ''}"
        )

        return await self.text_adapter(provider).complete(
            TextRequest(
                messages=messages,
                model=choice.model,
                api_key=api_key,
                temperature=options.temperature,
                max_tokens=options.max_tokens,
                signal=options.signal,
            )
        )

    async def perform_ai_action(
        self,
        action: AIAction | str,
        text: str,
        options: AIRequestOptions | None = None,
    ) -> AIResponse[str]:
        """Run one of the fixed editorial actions on ``text``"""
        try:
            action = AIAction(action)
        except ValueError:
            return validation_error(f"Unknown AI action: {action!r}")

        options = replace(options or AIRequestOptions(), action=action.value)
        return await self.chat_completion(build_action_messages(action, text), options)

    async def custom_prompt(
        self,
        prompt: str,
        context: str = "",
        options: AIRequestOptions | None = None,
    ) -> AIResponse[str]:
        return await self.chat_completion(build_custom_messages(prompt, context), options)

    # Image generation

    async def generate_image(
        self,
        prompt: str,
        options: ImageGenerationOptions | None = None,
    ) -> AIResponse[str]:
        """
        Generate an image.

        Returns:
            AIResult whose data is either the vendor's hosted URL or a
            ``blob:`` URL registered in ``self.object_urls``
        """
        options = options or ImageGenerationOptions()

        is_valid, error = InputValidator.validate_prompt(prompt)
        if not is_valid:
            return validation_error(error)

        try:
            explicit_provider = ImageProvider(options.provider) if options.provider else None
        except ValueError:
            return validation_error(f"Unknown image provider: {options.provider!r}")

        if explicit_provider is not None:
            return await self._generate_with(explicit_provider, prompt, options, options.model)

        config = self.config_store.get_ai_config()
        primary = config.image_provider
        response = await self._generate_with(
            primary, prompt, options, options.model or config.image_model
        )
        if response.success:
            return response

        async def _attempt(alternate: ImageProvider) -> AIResponse[str]:
            return await self._generate_with(alternate, prompt, options)

        outcome = await run_with_fallback(
            primary,
            response,
            get_available_fallback_providers(primary, self.credentials),
            _attempt,
            options.signal,
        )
        return outcome.response

    async def _generate_with(
        self,
        provider: ImageProvider,
        prompt: str,
        options: ImageGenerationOptions,
        model: str | None = None,
    ) -> AIResponse[str]:
        descriptor = IMAGE_PROVIDERS[provider]
        api_key = get_provider_api_key(provider, self.credentials)
        if descriptor.requires_api_key and not api_key:
            return no_provider_error(descriptor.name, descriptor.api_key_env_var, provider.value)

        model = model or descriptor.default_model or ""
        logger.debug(f"Generating image with {provider.value} ({model})")

        return await self.image_adapter(provider).generate(
            ImageRequest(
                prompt=prompt,
                model=model,
                api_key=api_key,
                width=options.width or DEFAULT_WIDTH,
                height=options.height or DEFAULT_HEIGHT,
                steps=options.steps,
                signal=options.signal,
            )
        )

    async def generate_cover_image(
        self,
        title: str,
        content: str,
        options: ImageGenerationOptions | None = None,
    ) -> AIResponse[str]:
        """Blog cover, Open Graph size unless the caller sets dimensions"""
        options = options or ImageGenerationOptions()
        options = replace(
            options,
            width=options.width or COVER_WIDTH,
            height=options.height or COVER_HEIGHT,
        )
        return await self.generate_image(build_cover_prompt(title, content), options)

    # Diagnostics

    async def check_connection(self, provider: TextProvider | str | None = None) -> bool:
        """Probe a text vendor's model listing; defaults to the configured provider"""
        if provider is None:
            provider = self.config_store.get_ai_config().text_provider
        provider = TextProvider(provider)

        descriptor = TEXT_PROVIDERS[provider]
        api_key = get_provider_api_key(provider, self.credentials)
        if descriptor.requires_api_key and not api_key:
            return False

        return await self.text_adapter(provider).check_connection(api_key)

    async def test_provider_connection(self, provider: TextProvider | str) -> ConnectionReport:
        provider = TextProvider(provider)
        descriptor = TEXT_PROVIDERS[provider]

        if descriptor.requires_api_key and not get_provider_api_key(provider, self.credentials):
            return ConnectionReport(
                provider.value,
                connected=False,
                error=f"{descriptor.api_key_env_var} is not configured",
            )

        start_time = time.monotonic()
        connected = await self.check_connection(provider)
        return ConnectionReport(
            provider.value,
            connected=connected,
            latency_ms=(time.monotonic() - start_time) * 1000,
            error=None if connected else f"Could not reach {descriptor.name}",
        )

    async def test_image_generation(self, provider: ImageProvider | str) -> AIResponse[str]:
        return await self.generate_image(
            TEST_IMAGE_PROMPT,
            ImageGenerationOptions(
                provider=ImageProvider(provider),
                width=TEST_IMAGE_SIZE,
                height=TEST_IMAGE_SIZE,
            ),
        )

    # Local engine

    async def list_local_models(self, force_refresh: bool = False) -> list[LocalModelStatus]:
        return await self.model_selector.local_models_with_status(force_refresh=force_refresh)

    def notify_model_installed(self) -> None:
        """Forget the cached installed-model list so the next call re-fetches it"""
        self.model_selector.invalidate()


async def chat_completion(
    messages: list[dict[str, Any]],
    options: AIRequestOptions | None = None,
) -> AIResponse[str]:
    async with AIOrchestrator() as orchestrator:
        return await orchestrator.chat_completion(messages, options)


async def generate_image(
    prompt: str,
    options: ImageGenerationOptions | None = None,
) -> AIResponse[str]:
    async with AIOrchestrator() as orchestrator:
        return await orchestrator.generate_image(prompt, options)


async def generate_cover_image(
    title: str,
    content: str,
    options: ImageGenerationOptions | None = None,
) -> AIResponse[str]:
    async with AIOrchestrator() as orchestrator:
        return await orchestrator.generate_cover_image(title, content, options)
