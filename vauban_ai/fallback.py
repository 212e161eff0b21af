"""
Fallback handling for implicitly selected providers.

When the primary provider fails, the alternates are tried strictly in order,
one request at a time, until one succeeds. If all of them fail the caller
gets the primary's error, since that explains why the preferred path failed.
"""

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from .errors import AIError, AIResponse, ErrorCode
from .providers import AnyProvider
from .transport import AbortSignal
from .validation import LOG_DETAIL_LENGTH, InputValidator

logger = logging.getLogger(__name__)

T = TypeVar("T")

Attempt = Callable[[AnyProvider], Awaitable[AIResponse[T]]]


@dataclass(frozen=True)
class FallbackAttempt:
    """Record of one failed alternate"""

    provider: str
    error: AIError


@dataclass
class FallbackOutcome(Generic[T]):
    response: AIResponse[T]
    attempts: list[FallbackAttempt] = field(default_factory=list)

    def summary(self) -> str:
        if not self.attempts:
            return "No fallback attempts"
        lines = [
            f"  - {attempt.provider}: {attempt.error.code.value} ({attempt.error.error})"
            for attempt in self.attempts
        ]
        return "Fallback attempts:\n" + "\n".join(lines)


async def run_with_fallback(
    primary: AnyProvider,
    primary_response: AIResponse[T],
    alternates: Sequence[AnyProvider],
    attempt: Attempt[T],
    signal: AbortSignal | None = None,
) -> FallbackOutcome[T]:
    """
    Try ``alternates`` in order after a failed primary response.

    ``alternates`` must already be filtered to available providers.
    ``attempt`` performs one full dispatch, model selection included,
    against the given provider.
    """
    if primary_response.success:
        return FallbackOutcome(primary_response)

    assert isinstance(primary_response, AIError)

    if signal is not None and signal.aborted:
        logger.debug(f"Not falling back from {primary.value}: request was aborted")
        return FallbackOutcome(primary_response)

    if not alternates:
        logger.debug(f"No available fallback for {primary.value}")
        return FallbackOutcome(primary_response)

    logger.warning(
        f"{primary.value} failed with {primary_response.code.value}, "
        f"trying {len(alternates)} fallback provider(s)"
    )

    outcome: FallbackOutcome[T] = FallbackOutcome(primary_response)
    for alternate in alternates:
        if signal is not None and signal.aborted:
            logger.info("Request aborted, stopping fallback")
            break

        logger.info(f"Trying fallback provider: {alternate.value}")
        response = await attempt(alternate)
        if response.success:
            logger.info(f"Fallback provider {alternate.value} succeeded")
            outcome.response = response
            return outcome

        assert isinstance(response, AIError)
        outcome.attempts.append(FallbackAttempt(alternate.value, response))
        logger.warning(
            f"Fallback provider {alternate.value} failed with {response.code.value}: "
            f"{InputValidator.sanitize_for_logging(response.error, max_len=LOG_DETAIL_LENGTH)}"
        )

    logger.warning(f"Fallback chain exhausted for {primary.value}")
    return outcome
