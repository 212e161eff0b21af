"""
Model selection for text generation.

Resolution order, first match wins:
1. an explicit model from the caller
2. for LocalAI with auto selection on: the task's priority list intersected
   with the models the engine reports as installed
3. the model from the user's config, when it applies to this provider
4. the registry default for the provider
"""

import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import httpx
from pydantic import BaseModel

from .providers import (
    LOCALAI_MODELS_METADATA,
    MODEL_PRIORITY_BY_TASK,
    TEXT_PROVIDERS,
    ULTIMATE_FALLBACK_MODEL,
    LocalModelInfo,
    TaskSensitivity,
    TextProvider,
    get_openrouter_model_for_task,
)
from .validation import LOG_DETAIL_LENGTH, InputValidator

logger = logging.getLogger(__name__)

INSTALLED_MODELS_TTL = 30.0
MODEL_LIST_TIMEOUT = 5.0


class _ModelEntry(BaseModel):
    id: str


class ModelListResponse(BaseModel):
    """OpenAI-compatible ``GET /models`` body"""

    data: list[_ModelEntry] = []


def _is_embedding_model(model_id: str) -> bool:
    return model_id == "text-embedding" or "embed" in model_id


async def fetch_localai_models(
    client: httpx.AsyncClient,
    base_url: str | None = None,
) -> list[str]:
    """List chat-capable models loaded in the local engine."""
    url = f"{base_url or TEXT_PROVIDERS[TextProvider.LOCALAI].base_url}/models"
    response = await client.get(url, timeout=MODEL_LIST_TIMEOUT)
    response.raise_for_status()
    parsed = ModelListResponse.model_validate(response.json())
    return [entry.id for entry in parsed.data if not _is_embedding_model(entry.id)]


@dataclass(frozen=True)
class InstalledModelsSnapshot:
    models: tuple[str, ...]
    fetched_at: float


class InstalledModelsCache:
    """
    Time-bounded view of the models installed in the local engine.

    The cache holds one immutable snapshot. Concurrent refreshes may both
    fetch; whichever finishes last replaces the snapshot.
    """

    def __init__(
        self,
        fetcher: Callable[[], Awaitable[list[str]]],
        ttl: float = INSTALLED_MODELS_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fetcher = fetcher
        self.ttl = ttl
        self._clock = clock
        self._snapshot: InstalledModelsSnapshot | None = None

    @property
    def snapshot(self) -> InstalledModelsSnapshot | None:
        return self._snapshot

    def is_fresh(self) -> bool:
        snapshot = self._snapshot
        return snapshot is not None and (self._clock() - snapshot.fetched_at) < self.ttl

    async def get(self, force_refresh: bool = False) -> list[str]:
        snapshot = self._snapshot
        if not force_refresh and snapshot is not None and self.is_fresh():
            return list(snapshot.models)

        try:
            models = await self._fetcher()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(
                "Failed to fetch LocalAI models: "
                f"{InputValidator.sanitize_for_logging(str(e), max_len=LOG_DETAIL_LENGTH)}"
            )
            return list(snapshot.models) if snapshot else []

        self._snapshot = InstalledModelsSnapshot(tuple(models), self._clock())
        return list(models)

    def invalidate(self) -> None:
        """Drop the snapshot, e.g. after a model was installed"""
        self._snapshot = None


@dataclass(frozen=True)
class ModelChoice:
    model: str
    auto_selected: bool = False
    is_optimal: bool = False


@dataclass(frozen=True)
class LocalModelStatus:
    id: str
    info: LocalModelInfo
    installed: bool


class ModelSelector:
    """Chooses a concrete model for each dispatch"""

    def __init__(self, installed_models: InstalledModelsCache) -> None:
        self.installed_models = installed_models

    async def best_model_for_task(
        self,
        sensitivity: TaskSensitivity,
        installed: list[str] | None = None,
    ) -> ModelChoice:
        if installed is None:
            installed = await self.installed_models.get()
        installed_set = set(installed)
        priority = MODEL_PRIORITY_BY_TASK[sensitivity]

        for model in priority:
            if model in installed_set:
                return ModelChoice(model, auto_selected=True, is_optimal=model == priority[0])

        if installed:
            return ModelChoice(installed[0], auto_selected=True)

        return ModelChoice(ULTIMATE_FALLBACK_MODEL, auto_selected=True)

    async def select_model(
        self,
        provider: TextProvider,
        explicit_model: str | None = None,
        sensitivity: TaskSensitivity = TaskSensitivity.MEDIUM,
        configured_model: str | None = None,
        auto_selection: bool = False,
        installed: list[str] | None = None,
    ) -> ModelChoice:
        # Not validated against the registry; an unknown id is the vendor's to reject
        if explicit_model:
            return ModelChoice(explicit_model)

        if provider == TextProvider.LOCALAI and auto_selection:
            return await self.best_model_for_task(sensitivity, installed)

        if configured_model:
            return ModelChoice(configured_model)

        if provider == TextProvider.OPENROUTER:
            return ModelChoice(get_openrouter_model_for_task(sensitivity))

        return ModelChoice(TEXT_PROVIDERS[provider].default_model or ULTIMATE_FALLBACK_MODEL)

    async def local_models_with_status(self, force_refresh: bool = False) -> list[LocalModelStatus]:
        """Known local models plus anything else installed, installed first."""
        installed = await self.installed_models.get(force_refresh=force_refresh)
        installed_set = set(installed)

        statuses = [
            LocalModelStatus(model_id, info, model_id in installed_set)
            for model_id, info in LOCALAI_MODELS_METADATA.items()
        ]
        for model_id in installed:
            if model_id not in LOCALAI_MODELS_METADATA:
                statuses.append(
                    LocalModelStatus(
                        model_id,
                        LocalModelInfo(model_id, "unknown", "unknown", "unknown"),
                        True,
                    )
                )

        return sorted(statuses, key=lambda s: (not s.installed, s.info.name.lower()))

    def invalidate(self) -> None:
        self.installed_models.invalidate()
