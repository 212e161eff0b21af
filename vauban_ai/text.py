"""
Text Wire Adapters
==================
Two wire protocols cover every text vendor:

- OpenAI-compatible chat completions (Groq, OpenRouter, LocalAI)
- Gemini ``generateContent``

Each adapter owns its vendor's request and response schema and hands back
only the normalized ``AIResult``/``AIError`` union.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Literal

import httpx
from pydantic import BaseModel, Field

from .errors import (
    AIResponse,
    AIResult,
    ResponseValidationError,
    api_error,
    classify_exception,
    validation_error,
)
from .providers import ProviderDescriptor
from .transport import AbortSignal, send_request
from .validation import LOG_DETAIL_LENGTH, InputValidator

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 2048
CONNECTION_CHECK_TIMEOUT = 5.0

OPENROUTER_REFERER = "https://vauban.blog"
OPENROUTER_TITLE = "Vauban Blog"


# OpenAI-compatible response schema


class ChatCompletionMessage(BaseModel):
    role: Literal["assistant", "user", "system"]
    content: str


class ChatCompletionChoice(BaseModel):
    index: int
    message: ChatCompletionMessage
    finish_reason: str | None


class ChatCompletionResponse(BaseModel):
    id: str
    object: str
    created: float
    model: str
    choices: list[ChatCompletionChoice]


# Gemini response schema


class GeminiPart(BaseModel):
    text: str


class GeminiContent(BaseModel):
    parts: list[GeminiPart]
    role: str


class GeminiCandidate(BaseModel):
    content: GeminiContent
    finish_reason: str | None = Field(default=None, alias="finishReason")


class GeminiResponse(BaseModel):
    candidates: list[GeminiCandidate]


@dataclass
class TextRequest:
    """Vendor-agnostic completion request, already resolved to a model"""

    messages: list[dict[str, Any]]
    model: str
    api_key: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    signal: AbortSignal | None = None


@dataclass(frozen=True)
class HTTPCall:
    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, str] = field(default_factory=dict)
    json: dict[str, Any] | None = None


class BaseTextProvider(ABC):
    """Abstract base class for text wire adapters"""

    timeout: float = 60.0

    def __init__(self, descriptor: ProviderDescriptor, client: httpx.AsyncClient):
        self.descriptor = descriptor
        self.client = client

    @property
    def provider_name(self) -> str:
        return self.descriptor.key

    @abstractmethod
    def build_request(self, request: TextRequest) -> HTTPCall:
        """Translate a request into this vendor's exact HTTP call"""

    @abstractmethod
    def parse_response(self, payload: Any) -> str:
        """Extract generated text; raise ResponseValidationError on bad shape"""

    @abstractmethod
    def build_connection_check(self, api_key: str | None) -> HTTPCall:
        """Cheap authenticated request used to probe the vendor"""

    async def complete(self, request: TextRequest) -> AIResponse[str]:
        start_time = time.monotonic()
        call = self.build_request(request)

        try:
            response = await send_request(
                self.client,
                call.method,
                call.url,
                timeout=self.timeout,
                signal=request.signal,
                headers=call.headers,
                params=call.params or None,
                json=call.json,
            )
        except Exception as e:
            error = classify_exception(e, self.provider_name)
            logger.debug(f"{self.descriptor.name} request failed: {error.code.value}")
            return error

        if not response.is_success:
            return api_error(self.descriptor.name, response, self.provider_name)

        try:
            content = self.parse_response(response.json())
        except ValueError as e:
            # Covers malformed JSON and pydantic's ValidationError
            return validation_error(
                f"Invalid {self.descriptor.name} response: {e}", self.provider_name
            )
        except ResponseValidationError as e:
            return validation_error(str(e), self.provider_name)

        return AIResult(
            data=content,
            provider=self.provider_name,
            model=request.model,
            latency_ms=(time.monotonic() - start_time) * 1000,
        )

    async def check_connection(self, api_key: str | None) -> bool:
        call = self.build_connection_check(api_key)
        try:
            response = await self.client.request(
                call.method,
                call.url,
                headers=call.headers,
                params=call.params or None,
                timeout=CONNECTION_CHECK_TIMEOUT,
            )
        except httpx.HTTPError as e:
            logger.info(
                f"{self.descriptor.name} connection check failed: "
                f"{InputValidator.sanitize_for_logging(str(e), max_len=LOG_DETAIL_LENGTH)}"
            )
            return False
        return response.is_success


class OpenAICompatibleProvider(BaseTextProvider):
    """Chat-completions protocol shared by Groq, OpenRouter and LocalAI"""

    timeout = 60.0

    def auth_headers(self, api_key: str | None) -> dict[str, str]:
        headers = {}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        return headers

    def build_request(self, request: TextRequest) -> HTTPCall:
        headers = {"Content-Type": "application/json"}
        headers.update(self.auth_headers(request.api_key))

        return HTTPCall(
            method="POST",
            url=f"{self.descriptor.base_url}/chat/completions",
            headers=headers,
            json={
                "model": request.model,
                "messages": [
                    {"role": m["role"], "content": m["content"]} for m in request.messages
                ],
                "temperature": (
                    request.temperature
                    if request.temperature is not None
                    else DEFAULT_TEMPERATURE
                ),
                "max_tokens": request.max_tokens or DEFAULT_MAX_TOKENS,
            },
        )

    def parse_response(self, payload: Any) -> str:
        parsed = ChatCompletionResponse.model_validate(payload)
        if not parsed.choices:
            raise ResponseValidationError(f"No content in {self.descriptor.name} response")
        return parsed.choices[0].message.content

    def build_connection_check(self, api_key: str | None) -> HTTPCall:
        return HTTPCall(
            method="GET",
            url=f"{self.descriptor.base_url}/models",
            headers=self.auth_headers(api_key),
        )


class OpenRouterProvider(OpenAICompatibleProvider):
    """OpenRouter wants the calling app identified on every request"""

    def auth_headers(self, api_key: str | None) -> dict[str, str]:
        headers = super().auth_headers(api_key)
        headers["HTTP-Referer"] = OPENROUTER_REFERER
        headers["X-Title"] = OPENROUTER_TITLE
        return headers


class GeminiProvider(BaseTextProvider):
    """Google Gemini ``generateContent`` protocol"""

    timeout = 30.0

    @staticmethod
    def to_gemini_contents(
        messages: list[dict[str, Any]],
    ) -> tuple[list[dict[str, Any]], dict[str, Any] | None]:
        """
        Split chat messages into Gemini ``contents`` and ``systemInstruction``.

        Gemini has no system role: system messages are hoisted out, and the
        remaining roles map ``assistant`` to ``model``, everything else to ``user``.
        """
        system_parts = [
            {"text": m["content"]} for m in messages if m["role"] == "system"
        ]
        contents = [
            {
                "role": "model" if m["role"] == "assistant" else "user",
                "parts": [{"text": m["content"]}],
            }
            for m in messages
            if m["role"] != "system"
        ]
        system_instruction = {"parts": system_parts} if system_parts else None
        return contents, system_instruction

    def build_request(self, request: TextRequest) -> HTTPCall:
        contents, system_instruction = self.to_gemini_contents(request.messages)

        body: dict[str, Any] = {"contents": contents}
        if system_instruction is not None:
            body["systemInstruction"] = system_instruction
        body["generationConfig"] = {
            "temperature": (
                request.temperature
                if request.temperature is not None
                else DEFAULT_TEMPERATURE
            ),
            "maxOutputTokens": request.max_tokens or DEFAULT_MAX_TOKENS,
        }

        return HTTPCall(
            method="POST",
            url=f"{self.descriptor.base_url}/models/{request.model}:generateContent",
            headers={"Content-Type": "application/json"},
            # Gemini takes the key as a query parameter, not a header
            params={"key": request.api_key or ""},
            json=body,
        )

    def parse_response(self, payload: Any) -> str:
        parsed = GeminiResponse.model_validate(payload)
        if not parsed.candidates or not parsed.candidates[0].content.parts:
            raise ResponseValidationError(f"No content in {self.descriptor.name} response")
        return parsed.candidates[0].content.parts[0].text

    def build_connection_check(self, api_key: str | None) -> HTTPCall:
        return HTTPCall(
            method="GET",
            url=f"{self.descriptor.base_url}/models",
            params={"key": api_key or ""},
        )

