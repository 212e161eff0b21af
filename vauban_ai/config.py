"""
AI configuration and logging setup.

User settings live in ``~/.vauban_ai/config.json``::

    {
      "ai": {
        "textProvider": "gemini",
        "textModel": "gemini-2.0-flash",
        "imageProvider": "huggingface",
        "imageModel": "black-forest-labs/FLUX.1-schnell",
        "autoModelSelection": true
      },
      "logging": {"level": "INFO", "file": "~/.vauban_ai/vauban.log"}
    }
"""

import json
import logging
import os
import threading
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from .credentials import CONFIG_DIR, CredentialManager
from .providers import (
    IMAGE_PROVIDERS,
    TEXT_PROVIDERS,
    ImageProvider,
    TextProvider,
    get_best_available_image_provider,
    get_best_available_text_provider,
)

logger = logging.getLogger(__name__)

CONFIG_FILE = CONFIG_DIR / "config.json"
AI_SECTION = "ai"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class ConfigError(ValueError):
    """Raised when a config that is about to be saved is invalid"""


class AIConfig(BaseModel):
    """Provider and model choices used when a caller does not pin a provider"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    text_provider: TextProvider
    text_model: str = Field(min_length=1)
    image_provider: ImageProvider
    image_model: str = Field(min_length=1)
    auto_model_selection: bool = True


def get_default_config(credentials: CredentialManager | None = None) -> AIConfig:
    """Defaults derived from whichever providers currently have credentials"""
    text_provider = get_best_available_text_provider(credentials)
    image_provider = get_best_available_image_provider(credentials)

    return AIConfig(
        text_provider=text_provider,
        text_model=TEXT_PROVIDERS[text_provider].default_model or "mistral",
        image_provider=image_provider,
        image_model=IMAGE_PROVIDERS[image_provider].default_model or "flux",
        auto_model_selection=True,
    )


ConfigListener = Callable[[AIConfig], None]


class ConfigStore:
    """JSON-file backed store for ``AIConfig``"""

    def __init__(
        self,
        path: Path = CONFIG_FILE,
        credentials: CredentialManager | None = None,
    ) -> None:
        self.path = path
        self.credentials = credentials
        self._listeners: list[ConfigListener] = []
        self._lock = threading.Lock()

    def _read_file(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}

        try:
            with self.path.open("r", encoding="utf-8") as config_file:
                loaded = json.load(config_file)
        except (OSError, ValueError) as exc:
            logger.warning(f"Failed to load config from {self.path}: {exc}")
            return {}

        if not isinstance(loaded, dict):
            logger.warning(f"Config file {self.path} did not contain an object.")
            return {}

        return loaded

    def _write_section(self, section: str, value: dict[str, Any]) -> None:
        with self._lock:
            data = self._read_file()
            data[section] = value
            self.path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
            temp_file = self.path.with_suffix(".tmp")
            with temp_file.open("w", encoding="utf-8") as config_file:
                json.dump(data, config_file, indent=2)
            temp_file.replace(self.path)

    def read_section(self, section: str) -> dict[str, Any]:
        value = self._read_file().get(section, {})
        return value if isinstance(value, dict) else {}

    def get_ai_config(self) -> AIConfig:
        """
        Current config, or defaults when nothing valid is stored.

        A stored text model that its provider no longer lists is replaced
        by the defaults, which are written back.
        """
        stored = self._read_file().get(AI_SECTION)
        if stored is None:
            return get_default_config(self.credentials)

        try:
            config = AIConfig.model_validate(stored)
        except ValidationError as exc:
            logger.warning(f"Ignoring invalid AI config: {exc.error_count()} error(s)")
            return get_default_config(self.credentials)

        if config.text_model not in TEXT_PROVIDERS[config.text_provider].models:
            logger.warning(
                f"Stored model {config.text_model!r} no longer exists, resetting to defaults"
            )
            defaults = get_default_config(self.credentials)
            try:
                self._write_section(AI_SECTION, defaults.model_dump(mode="json", by_alias=True))
            except OSError as exc:
                logger.warning(f"Failed to save reset config to {self.path}: {exc}")
            return defaults

        return config

    def set_ai_config(self, config: AIConfig | Mapping[str, Any]) -> AIConfig:
        if not isinstance(config, AIConfig):
            try:
                config = AIConfig.model_validate(dict(config))
            except ValidationError as exc:
                raise ConfigError(f"Invalid AI config: {exc}") from exc

        self._write_section(AI_SECTION, config.model_dump(mode="json", by_alias=True))
        self._notify(config)
        return config

    def update_ai_config(self, **partial: Any) -> AIConfig:
        current = self.get_ai_config().model_dump()
        current.update(partial)
        return self.set_ai_config(current)

    def reset_ai_config(self) -> AIConfig:
        return self.set_ai_config(get_default_config(self.credentials))

    def is_using_default_config(self) -> bool:
        return AI_SECTION not in self._read_file()

    def subscribe(self, callback: ConfigListener) -> Callable[[], None]:
        """Register for change notifications; returns an unsubscribe function"""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _notify(self, config: AIConfig) -> None:
        for listener in list(self._listeners):
            listener(config)


_store: ConfigStore | None = None


def get_config_store() -> ConfigStore:
    global _store
    if _store is None:
        _store = ConfigStore()
    return _store


def get_ai_config() -> AIConfig:
    return get_config_store().get_ai_config()


def set_ai_config(config: AIConfig | Mapping[str, Any]) -> AIConfig:
    return get_config_store().set_ai_config(config)


def configure_logging(
    verbose: bool = False,
    log_config: Mapping[str, Any] | None = None,
) -> None:
    """Configure root logging from the ``logging`` section of the config file"""
    if log_config is None:
        log_config = get_config_store().read_section("logging")

    level = logging.DEBUG if verbose else logging.INFO
    if not verbose and "level" in log_config:
        level = getattr(logging, str(log_config["level"]).upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler()]

    log_file = log_config.get("file")
    if log_file:
        try:
            handlers.append(
                logging.FileHandler(os.path.expanduser(log_file), encoding="utf-8")
            )
        except OSError as e:
            logger.warning(f"Failed to set up log file {log_file}: {e}")

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)

    # httpx logs full request URLs, and Gemini carries its key in the query string
    logging.getLogger("httpx").setLevel(logging.WARNING)
