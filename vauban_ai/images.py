"""
Image Wire Adapters
===================
One adapter per image vendor. A successful response is either a JSON body
pointing at a hosted image, or the raw image bytes. Adapters branch on the
declared content type; raw bytes are parked in an ``ObjectURLStore`` and the
caller receives a local ``blob:`` URL that resolves back to those bytes.
"""

import base64
import binascii
import logging
import random
import threading
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import BaseModel

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

logger = logging.getLogger(__name__)

DEFAULT_WIDTH = 1024
DEFAULT_HEIGHT = 768
DEFAULT_STEPS = 4
BLOB_URL_PREFIX = "blob:vauban-ai/"


@dataclass(frozen=True)
class StoredBlob:
    data: bytes
    content_type: str


class ObjectURLStore:
    """In-process registry mapping ``blob:`` URLs to image bytes"""

    def __init__(self) -> None:
        self._blobs: dict[str, StoredBlob] = {}
        self._lock = threading.Lock()

    def create(self, data: bytes, content_type: str = "image/png") -> str:
        url = f"{BLOB_URL_PREFIX}{uuid.uuid4()}"
        with self._lock:
            self._blobs[url] = StoredBlob(bytes(data), content_type)
        return url

    def resolve(self, url: str) -> StoredBlob | None:
        with self._lock:
            return self._blobs.get(url)

    def revoke(self, url: str) -> bool:
        with self._lock:
            return self._blobs.pop(url, None) is not None

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._blobs

    def __len__(self) -> int:
        with self._lock:
            return len(self._blobs)


_object_urls: ObjectURLStore | None = None


def get_object_url_store() -> ObjectURLStore:
    """
    Process-wide store, so URLs outlive the orchestrator that created them.

    Blobs stay in memory until revoked; call ``revoke`` once an image has
    been saved or displayed.
    """
    global _object_urls
    if _object_urls is None:
        _object_urls = ObjectURLStore()
    return _object_urls


# Response schemas


class HostedImageResponse(BaseModel):
    url: str


class TogetherImageData(BaseModel):
    url: str | None = None
    b64_json: str | None = None


class TogetherImageResponse(BaseModel):
    data: list[TogetherImageData]


@dataclass
class ImageRequest:
    """Vendor-agnostic image request, already resolved to a model"""

    prompt: str
    model: str
    api_key: str | None = None
    width: int = DEFAULT_WIDTH
    height: int = DEFAULT_HEIGHT
    steps: int = DEFAULT_STEPS
    signal: AbortSignal | None = None


def _media_type(response: httpx.Response) -> str:
    return response.headers.get("Content-Type", "").split(";")[0].strip().lower()


class BaseImageProvider(ABC):
    """Abstract base class for image wire adapters"""

    timeout: float = 60.0

    def __init__(
        self,
        descriptor: ProviderDescriptor,
        client: httpx.AsyncClient,
        object_urls: ObjectURLStore,
    ):
        self.descriptor = descriptor
        self.client = client
        self.object_urls = object_urls

    @property
    def provider_name(self) -> str:
        return self.descriptor.key

    @abstractmethod
    async def send(self, request: ImageRequest) -> httpx.Response:
        """Issue this vendor's HTTP call"""

    def parse_json(self, payload: Any) -> str:
        """Extract an image URL from a JSON body"""
        return HostedImageResponse.model_validate(payload).url

    def wrap_blob(self, data: bytes, content_type: str) -> str:
        if not data:
            raise ResponseValidationError(f"Empty image in {self.descriptor.name} response")
        logger.debug(f"Wrapping {len(data)} bytes from {self.descriptor.name} in an object URL")
        return self.object_urls.create(data, content_type or "image/png")

    async def generate(self, request: ImageRequest) -> AIResponse[str]:
        start_time = time.monotonic()

        try:
            response = await self.send(request)
        except Exception as e:
            return classify_exception(e, self.provider_name)

        if not response.is_success:
            return api_error(self.descriptor.name, response, self.provider_name)

        media_type = _media_type(response)
        try:
            if media_type == "application/json" or media_type.endswith("+json"):
                url = self.parse_json(response.json())
            else:
                url = self.wrap_blob(response.content, media_type)
        except ValueError as e:
            return validation_error(
                f"Invalid {self.descriptor.name} response: {e}", self.provider_name
            )
        except ResponseValidationError as e:
            return validation_error(str(e), self.provider_name)

        return AIResult(
            data=url,
            provider=self.provider_name,
            model=request.model,
            latency_ms=(time.monotonic() - start_time) * 1000,
        )


class HuggingFaceProvider(BaseImageProvider):
    """Hugging Face inference API; answers with raw image bytes"""

    async def send(self, request: ImageRequest) -> httpx.Response:
        return await send_request(
            self.client,
            "POST",
            f"{self.descriptor.base_url}/{request.model}",
            timeout=self.timeout,
            signal=request.signal,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {request.api_key}",
                "X-Wait-For-Model": "true",
            },
            json={
                "inputs": request.prompt,
                "parameters": {
                    "width": request.width,
                    "height": request.height,
                    "num_inference_steps": request.steps,
                },
            },
        )


class TogetherProvider(BaseImageProvider):
    """Together AI image generations; answers with a hosted URL"""

    async def send(self, request: ImageRequest) -> httpx.Response:
        return await send_request(
            self.client,
            "POST",
            f"{self.descriptor.base_url}/images/generations",
            timeout=self.timeout,
            signal=request.signal,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {request.api_key}",
            },
            json={
                "model": request.model,
                "prompt": request.prompt,
                "width": request.width,
                "height": request.height,
                "steps": request.steps,
                "n": 1,
                "response_format": "url",
            },
        )

    def parse_json(self, payload: Any) -> str:
        parsed = TogetherImageResponse.model_validate(payload)
        image = parsed.data[0] if parsed.data else None
        if image is not None and image.url:
            return image.url
        if image is not None and image.b64_json:
            try:
                data = base64.b64decode(image.b64_json, validate=True)
            except binascii.Error as e:
                raise ResponseValidationError(f"Invalid base64 image from Together AI: {e}") from e
            return self.wrap_blob(data, "image/png")
        raise ResponseValidationError("No image URL in Together AI response")


class PollinationsProvider(BaseImageProvider):
    """Pollinations prompt-in-path API; answers with raw image bytes"""

    @staticmethod
    def new_seed() -> int:
        # Unique per call so the vendor's cache never replays an old image
        return int(time.time() * 1000) + random.randint(0, 999999)  # noqa: S311

    async def send(self, request: ImageRequest) -> httpx.Response:
        return await send_request(
            self.client,
            "GET",
            f"{self.descriptor.base_url}/prompt/{quote(request.prompt, safe='')}",
            timeout=self.timeout,
            signal=request.signal,
            headers={"Authorization": f"Bearer {request.api_key}"},
            params={
                "width": str(request.width),
                "height": str(request.height),
                "model": request.model,
                "seed": str(self.new_seed()),
                "nologo": "true",
                "enhance": "true",
            },
        )
