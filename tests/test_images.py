"""Tests for image wire adapters and object URLs"""

import base64
import json

import httpx
import pytest

from vauban_ai.errors import ErrorCode
from vauban_ai.images import (
    BLOB_URL_PREFIX,
    HuggingFaceProvider,
    ImageRequest,
    ObjectURLStore,
    PollinationsProvider,
    TogetherProvider,
)
from vauban_ai.providers import IMAGE_PROVIDERS, ImageProvider

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00fake-image-data" * 8


def adapter(cls, provider: ImageProvider, handler, store: ObjectURLStore):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return cls(IMAGE_PROVIDERS[provider], client, store)


def image_request(**kwargs) -> ImageRequest:
    kwargs.setdefault("prompt", "a lighthouse at dusk")
    kwargs.setdefault("model", "test-model")
    kwargs.setdefault("api_key", "test-key-123456")
    return ImageRequest(**kwargs)


class TestObjectURLStore:
    def test_create_resolve_revoke(self):
        store = ObjectURLStore()
        url = store.create(PNG_BYTES, "image/png")

        assert url.startswith(BLOB_URL_PREFIX)
        assert url in store
        assert store.resolve(url).data == PNG_BYTES
        assert store.resolve(url).content_type == "image/png"

        assert store.revoke(url) is True
        assert store.resolve(url) is None
        assert store.revoke(url) is False

    def test_urls_are_unique(self):
        store = ObjectURLStore()
        assert store.create(b"a") != store.create(b"a")
        assert len(store) == 2


class TestHuggingFace:
    @pytest.mark.asyncio
    async def test_blob_response_resolves_to_same_bytes(self):
        seen: list[httpx.Request] = []
        store = ObjectURLStore()

        def handler(req: httpx.Request) -> httpx.Response:
            seen.append(req)
            return httpx.Response(
                200, content=PNG_BYTES, headers={"Content-Type": "image/png"}
            )

        hf = adapter(HuggingFaceProvider, ImageProvider.HUGGINGFACE, handler, store)
        result = await hf.generate(image_request(model="black-forest-labs/FLUX.1-schnell"))

        assert result.success is True
        assert result.data.startswith(BLOB_URL_PREFIX)
        assert store.resolve(result.data).data == PNG_BYTES

        sent = seen[0]
        assert sent.url.path == "/models/black-forest-labs/FLUX.1-schnell"
        assert sent.headers["Authorization"] == "Bearer test-key-123456"
        assert sent.headers["X-Wait-For-Model"] == "true"
        assert json.loads(sent.content) == {
            "inputs": "a lighthouse at dusk",
            "parameters": {"width": 1024, "height": 768, "num_inference_steps": 4},
        }

    @pytest.mark.asyncio
    async def test_json_response_returns_url_verbatim(self):
        url = "https://cdn.example.com/images/abc.png?sig=xyz"

        def handler(req: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"url": url})

        hf = adapter(HuggingFaceProvider, ImageProvider.HUGGINGFACE, handler, ObjectURLStore())
        result = await hf.generate(image_request())

        assert result.data == url

    @pytest.mark.asyncio
    async def test_empty_blob_is_validation_error(self):
        def handler(req: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"", headers={"Content-Type": "image/png"})

        hf = adapter(HuggingFaceProvider, ImageProvider.HUGGINGFACE, handler, ObjectURLStore())
        result = await hf.generate(image_request())

        assert result.code == ErrorCode.VALIDATION_ERROR

    @pytest.mark.asyncio
    async def test_model_loading_is_api_error(self):
        def handler(req: httpx.Request) -> httpx.Response:
            return httpx.Response(
                503, json={"error": "Model is currently loading", "estimated_time": 20}
            )

        hf = adapter(HuggingFaceProvider, ImageProvider.HUGGINGFACE, handler, ObjectURLStore())
        result = await hf.generate(image_request())

        assert result.code == ErrorCode.API_ERROR
        assert "Model is currently loading" in result.error


class TestTogether:
    @pytest.mark.asyncio
    async def test_hosted_url(self):
        seen: list[httpx.Request] = []
        url = "https://api.together.ai/shrt/abc123"

        def handler(req: httpx.Request) -> httpx.Response:
            seen.append(req)
            return httpx.Response(200, json={"data": [{"url": url}]})

        together = adapter(TogetherProvider, ImageProvider.TOGETHER, handler, ObjectURLStore())
        result = await together.generate(image_request(width=1200, height=630))

        assert result.data == url
        assert seen[0].url.path == "/v1/images/generations"
        assert json.loads(seen[0].content) == {
            "model": "test-model",
            "prompt": "a lighthouse at dusk",
            "width": 1200,
            "height": 630,
            "steps": 4,
            "n": 1,
            "response_format": "url",
        }

    @pytest.mark.asyncio
    async def test_base64_fallback_becomes_object_url(self):
        store = ObjectURLStore()
        encoded = base64.b64encode(PNG_BYTES).decode()

        def handler(req: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"data": [{"b64_json": encoded}]})

        together = adapter(TogetherProvider, ImageProvider.TOGETHER, handler, store)
        result = await together.generate(image_request())

        assert store.resolve(result.data).data == PNG_BYTES

    @pytest.mark.asyncio
    async def test_no_image_is_validation_error(self):
        def handler(req: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"data": []})

        together = adapter(TogetherProvider, ImageProvider.TOGETHER, handler, ObjectURLStore())
        result = await together.generate(image_request())

        assert result.code == ErrorCode.VALIDATION_ERROR
        assert "No image URL" in result.error


class TestPollinations:
    @pytest.mark.asyncio
    async def test_prompt_in_path(self):
        seen: list[httpx.Request] = []
        store = ObjectURLStore()

        def handler(req: httpx.Request) -> httpx.Response:
            seen.append(req)
            return httpx.Response(200, content=PNG_BYTES, headers={"Content-Type": "image/jpeg"})

        pollinations = adapter(PollinationsProvider, ImageProvider.POLLINATIONS, handler, store)
        result = await pollinations.generate(image_request(prompt="cats & dogs", model="flux"))

        sent = seen[0]
        assert sent.method == "GET"
        assert sent.url.raw_path.startswith(b"/prompt/cats%20%26%20dogs")
        assert sent.url.params["model"] == "flux"
        assert sent.url.params["nologo"] == "true"
        assert sent.url.params["enhance"] == "true"
        assert sent.url.params["seed"].isdigit()
        assert store.resolve(result.data).content_type == "image/jpeg"

    @pytest.mark.asyncio
    async def test_failure_is_api_error(self):
        def handler(req: httpx.Request) -> httpx.Response:
            return httpx.Response(401, text="Unauthorized")

        pollinations = adapter(
            PollinationsProvider, ImageProvider.POLLINATIONS, handler, ObjectURLStore()
        )
        result = await pollinations.generate(image_request())

        assert result.code == ErrorCode.API_ERROR
