"""
Result types and failure classification.

Every dispatch ends in exactly one of ``AIResult`` or ``AIError``. Adapters
catch whatever goes wrong at their boundary and turn it into an ``AIError``
carrying one of the five ``ErrorCode`` kinds.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

import httpx

T = TypeVar("T")

UNKNOWN_ERROR = "Unknown error"
TIMEOUT_MESSAGE = "Request timed out"


class ErrorCode(str, Enum):
    NETWORK_ERROR = "NETWORK_ERROR"
    API_ERROR = "API_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    TIMEOUT = "TIMEOUT"
    NO_PROVIDER = "NO_PROVIDER"


@dataclass(frozen=True)
class AIResult(Generic[T]):
    """Successful generation: the payload and who produced it"""

    data: T
    provider: str
    model: str
    latency_ms: float | None = None
    success: bool = field(default=True, init=False)


@dataclass(frozen=True)
class AIError:
    """Failed generation: a human-readable message and its kind"""

    error: str
    code: ErrorCode
    provider: str | None = None
    success: bool = field(default=False, init=False)


AIResponse = AIResult[T] | AIError


class RequestAborted(Exception):
    """Raised when a request is cancelled through its abort signal"""


class ResponseValidationError(Exception):
    """A 2xx response whose body does not have the expected shape"""


def classify_exception(exc: BaseException, provider: str | None = None) -> AIError:
    """Map a raised exception onto TIMEOUT or NETWORK_ERROR"""
    if isinstance(exc, (RequestAborted, httpx.TimeoutException, asyncio.TimeoutError)):
        return AIError(TIMEOUT_MESSAGE, ErrorCode.TIMEOUT, provider)

    message = str(exc) or type(exc).__name__
    return AIError(message, ErrorCode.NETWORK_ERROR, provider)


def _response_detail(response: httpx.Response) -> str:
    """Best-effort extraction of the vendor's error text"""
    try:
        text = response.text
    except (httpx.ResponseNotRead, UnicodeDecodeError, LookupError):
        return UNKNOWN_ERROR

    try:
        payload = response.json()
    except ValueError:
        payload = None

    if isinstance(payload, dict):
        error_info = payload.get("error")
        if isinstance(error_info, dict):
            message = error_info.get("message")
            if isinstance(message, str) and message:
                return message
        elif isinstance(error_info, str) and error_info:
            return error_info

    return text.strip() or UNKNOWN_ERROR


def format_http_error(label: str, response: httpx.Response) -> str:
    """Format a vendor rejection so a user can act on it."""
    status_code = response.status_code
    detail = _response_detail(response)
    retry_after = response.headers.get("Retry-After")

    if status_code == 429:
        message = (
            f"{label} rate limit or quota exceeded (HTTP 429): {detail}. "
            "Switch provider or retry in a minute."
        )
    else:
        message = f"{label} error: HTTP {status_code}: {detail}"

    if retry_after:
        message = f"{message} Retry-After: {retry_after}."

    return message


def api_error(label: str, response: httpx.Response, provider: str | None = None) -> AIError:
    return AIError(format_http_error(label, response), ErrorCode.API_ERROR, provider)


def validation_error(message: str, provider: str | None = None) -> AIError:
    return AIError(message, ErrorCode.VALIDATION_ERROR, provider)


def no_provider_error(
    name: str,
    env_var: str,
    provider: str | None = None,
) -> AIError:
    return AIError(
        f"{name} API key is not configured. Set {env_var} or choose another provider.",
        ErrorCode.NO_PROVIDER,
        provider,
    )
