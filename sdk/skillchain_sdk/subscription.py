"""
Live channel of newly created entities.

A Subscription decouples the read handle's push callback from the caller's
callback through an asyncio.Queue drained by a pump task. Cancellation is a
single synchronous call: once unsubscribe() returns, the caller's callback
is never invoked again, whatever the transport still delivers.

Invariants:
    - unsubscribe() is idempotent and never raises
    - No callback invocation starts after unsubscribe() returns
    - Missed events are not buffered or replayed after unsubscribe()
    - A failing callback does not stop the channel
    - At most MAX_PENDING_EVENTS events wait for the callback; overflow is dropped
    - aclose() never waits on a running callback
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Union

from .errors import DecodeError
from .normalize import to_entity
from .types import Entity

logger = logging.getLogger(__name__)

EntityCallback = Callable[[Entity], Union[None, Awaitable[None]]]

MAX_PENDING_EVENTS = 1000

_STOP = object()


class Subscription:
    """Cancellable push channel for entity-created events.

    Example:
        >>> unsubscribe = await client.subscribe(print)
        >>> ...
        >>> unsubscribe()
    """

    def __init__(self, callback: EntityCallback, max_pending: int = MAX_PENDING_EVENTS) -> None:
        self._callback = callback
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=max_pending)
        self._closed = False
        self._pump: asyncio.Task[None] | None = None
        self._teardown: asyncio.Task[None] | None = None
        self._transport_unsubscribe: Callable[[], Any] | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    async def start(self, public: Any) -> None:
        """Register with the read handle and start dispatching.

        Raises:
            Whatever the read handle raises when the channel cannot open
        """
        self._pump = asyncio.create_task(self._run())
        try:
            self._transport_unsubscribe = await public.subscribe(self._on_raw)
        except BaseException:
            self._closed = True
            await self._stop_pump()
            raise
        logger.debug("Subscription opened")

    def _on_raw(self, raw: Any) -> None:
        if self._closed:
            return
        try:
            self._queue.put_nowait(raw)
        except asyncio.QueueFull:
            logger.warning(f"Subscription backlog full ({self._queue.maxsize}); dropping event")

    async def _run(self) -> None:
        while True:
            raw = await self._queue.get()
            if raw is _STOP or self._closed:
                return

            try:
                entity = to_entity(raw)
            except DecodeError as e:
                logger.warning(f"Dropping undecodable subscription event: {e.message}")
                continue

            try:
                result = self._callback(entity)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(
                    f"Subscription callback failed: {e}",
                    exc_info=True,
                    extra={"entity_key": entity.entity_key},
                )

    def __call__(self) -> None:
        self.unsubscribe()

    def unsubscribe(self) -> None:
        """Stop delivery now and schedule transport teardown."""
        if self._closed:
            return
        self._closed = True
        try:
            self._queue.put_nowait(_STOP)
        except asyncio.QueueFull:
            pass  # the pump wakes on the backlog and sees closed

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop; transport subscription left to the handle's close()")
            return
        self._teardown = loop.create_task(self._release_transport())

    async def _release_transport(self) -> None:
        release, self._transport_unsubscribe = self._transport_unsubscribe, None
        if release is None:
            return
        try:
            result = release()
            if inspect.isawaitable(result):
                await result
            logger.debug("Subscription closed")
        except Exception as e:
            logger.warning(f"Error releasing subscription: {e}")

    async def aclose(self) -> None:
        """Unsubscribe and wait for teardown to finish."""
        self.unsubscribe()
        if self._teardown is not None:
            await self._teardown
        elif self._transport_unsubscribe is not None:
            await self._release_transport()

        await self._stop_pump()

    async def _stop_pump(self) -> None:
        pump = self._pump
        if pump is None or pump is asyncio.current_task():
            return
        pump.cancel()
        # A callback cancelled mid-flight ends the pump with CancelledError.
        await asyncio.gather(pump, return_exceptions=True)
