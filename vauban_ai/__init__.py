"""
Vauban AI - Multi-Provider Generation Orchestrator
==================================================

Routes text and image generation requests to third-party AI vendors,
normalizes their responses into one result type, and falls back to
alternate vendors when the configured one fails.

Security Features:
- No API keys stored in code
- Secure credential storage (keyring/encrypted file)
- Input validation before any request is sent
- API keys redacted from logs

Example Usage:
    >>> from vauban_ai import AIOrchestrator, AIRequestOptions, set_api_key
    >>>
    >>> # Configure credentials (run once)
    >>> set_api_key("GEMINI_API_KEY", "AIza...")
    >>>
    >>> import asyncio
    >>>
    >>> async def main():
    ...     async with AIOrchestrator() as orchestrator:
    ...         result = await orchestrator.chat_completion(
    ...             [{"role": "user", "content": "Explain IPFS pinning"}]
    ...         )
    ...         print(result.data if result.success else result.error)
    >>>
    >>> asyncio.run(main())
"""

__version__ = "1.0.0"

from .actions import AIAction, parse_tag_suggestions, parse_title_suggestions
from .config import AIConfig, ConfigError, ConfigStore, get_ai_config, set_ai_config
from .credentials import (
    CredentialManager,
    get_api_key,
    get_credential_manager,
    set_api_key,
)
from .errors import AIError, AIResponse, AIResult, ErrorCode
from .images import ObjectURLStore, get_object_url_store
from .models import InstalledModelsCache, ModelChoice, ModelSelector
from .orchestrator import (
    AIOrchestrator,
    AIRequestOptions,
    ConnectionReport,
    ImageGenerationOptions,
    chat_completion,
    generate_cover_image,
    generate_image,
)
from .providers import (
    ImageProvider,
    TaskSensitivity,
    TextProvider,
    get_available_fallback_providers,
    is_provider_available,
)
from .transport import AbortSignal

__all__ = [
    # Version
    "__version__",

    # Credential management
    "get_api_key",
    "set_api_key",
    "get_credential_manager",
    "CredentialManager",

    # Configuration
    "AIConfig",
    "ConfigError",
    "ConfigStore",
    "get_ai_config",
    "set_ai_config",

    # Providers and models
    "TextProvider",
    "ImageProvider",
    "TaskSensitivity",
    "is_provider_available",
    "get_available_fallback_providers",
    "InstalledModelsCache",
    "ModelChoice",
    "ModelSelector",

    # Results
    "AIResult",
    "AIError",
    "AIResponse",
    "ErrorCode",

    # Orchestrator
    "AIOrchestrator",
    "AIRequestOptions",
    "ImageGenerationOptions",
    "ConnectionReport",
    "AbortSignal",
    "ObjectURLStore",
    "get_object_url_store",
    "chat_completion",
    "generate_image",
    "generate_cover_image",

    # Text helpers
    "AIAction",
    "parse_title_suggestions",
    "parse_tag_suggestions",
]
