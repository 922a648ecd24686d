"""
Cooperative cancellation for playback.
A CancellationToken is one-shot: once signaled it stays signaled. Every
suspending operation takes the token explicitly and checks it before waiting.
"""

import asyncio
import logging
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class Cancelled(Exception):
    """Raised when a cancellation token fires before or during a suspension."""

    def __init__(self, reason: Optional[str] = None):
        super().__init__(reason or "Cancelled")
        self.reason = reason


class CancellationToken:
    def __init__(self):
        self._signaled = False
        self._listeners: List[Callable[[], None]] = []
        self.reason: Optional[str] = None

    def is_signaled(self) -> bool:
        return self._signaled

    def signal(self, reason: Optional[str] = None) -> None:
        """
        Signal the token and notify listeners once.
        Listeners run synchronously in the calling thread, so signal from the
        event loop thread (use loop.call_soon_threadsafe(token.signal) elsewhere).
        Signaling twice is a no-op.
        """
        if self._signaled:
            return
        self._signaled = True
        self.reason = reason
        logger.info("Cancellation signaled: %s", reason)

        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            listener()

    def on_signaled(self, listener: Callable[[], None]) -> Callable[[], None]:
        """
        Register a one-shot listener. Returns a function that unregisters it.
        A listener registered on an already signaled token is not called.
        """
        if self._signaled:
            return lambda: None
        self._listeners.append(listener)

        def remove():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return remove

    def check(self) -> None:
        if self._signaled:
            raise Cancelled(self.reason)


async def sleep(millis: float, token: CancellationToken) -> None:
    """
    Wait for `millis` milliseconds unless `token` fires first.
    Raises Cancelled without starting the timer if the token is already signaled.
    """
    token.check()

    loop = asyncio.get_running_loop()
    future = loop.create_future()

    def settle():
        if future.done():
            return
        if token.is_signaled():
            future.set_exception(Cancelled(token.reason))
        else:
            future.set_result(None)

    handle = loop.call_later(millis / 1000, settle)
    remove = token.on_signaled(settle)
    try:
        await future
    finally:
        handle.cancel()
        remove()
