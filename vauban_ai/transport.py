"""
HTTP transport helpers shared by every wire adapter.

Requests go through a caller-owned ``httpx.AsyncClient``. A request is bounded
either by a fixed per-adapter timeout or, when the caller supplies one, by an
``AbortSignal`` that governs the whole logical call.
"""

import asyncio
import contextlib
import logging
from typing import Any

import httpx

from .errors import RequestAborted

logger = logging.getLogger(__name__)


class AbortSignal:
    """Cooperative cancellation flag that in-flight requests race against."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None
        self._timer: asyncio.TimerHandle | None = None

    @classmethod
    def timeout(cls, seconds: float) -> "AbortSignal":
        """Create a signal that aborts itself after ``seconds``.

        Must be called from a running event loop.
        """
        signal = cls()
        loop = asyncio.get_running_loop()
        signal._timer = loop.call_later(
            seconds, signal.abort, f"Timed out after {seconds:g}s"
        )
        return signal

    @property
    def aborted(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def abort(self, reason: str | None = None) -> None:
        if self._event.is_set():
            return
        self._reason = reason or "The operation was aborted"
        self._event.set()
        if self._timer is not None:
            self._timer.cancel()

    async def wait(self) -> None:
        await self._event.wait()

    def throw_if_aborted(self) -> None:
        if self.aborted:
            raise RequestAborted(self._reason)


async def send_request(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    timeout: float,
    signal: AbortSignal | None = None,
    **kwargs: Any,
) -> httpx.Response:
    """
    Issue one HTTP request.

    Without a signal the request is bounded by ``timeout``. With a signal
    the signal alone governs it: the request is cancelled as soon as the
    signal fires and ``RequestAborted`` is raised.
    """
    if signal is None:
        return await client.request(method, url, timeout=timeout, **kwargs)

    signal.throw_if_aborted()

    request_task = asyncio.ensure_future(client.request(method, url, timeout=None, **kwargs))
    abort_task = asyncio.ensure_future(signal.wait())
    try:
        done, _ = await asyncio.wait(
            {request_task, abort_task}, return_when=asyncio.FIRST_COMPLETED
        )
    finally:
        for task in (request_task, abort_task):
            if not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task

    if request_task in done:
        return request_task.result()

    logger.debug(f"{method} {url.split('?')[0]} aborted: {signal.reason}")
    raise RequestAborted(signal.reason)
