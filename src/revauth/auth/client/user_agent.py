"""User-agent host abstraction for the authorization flow.

The page asking the user for access has to be shown in something that can
browse: an embedded browser control, an external browser, a scripted
headless browser. The flow only needs to tell it where to go, hear about
each page it finishes loading, and close it.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Awaitable, Callable
from types import TracebackType
from typing import Self

from revauth.auth.client.models.flow import NavigationEvent

logger = logging.getLogger(__name__)


class UserAgentHost(ABC):
    """Abstract host of the user agent showing the authorization pages.

    Navigation-completed notifications are delivered through navigations(),
    a single stream that ends when the window is closed.
    """

    @abstractmethod
    async def navigate(self, uri: str) -> None:
        """Send the user agent to a URI. Does nothing once the host is closed.

        Args:
            uri: Absolute URI to load
        """

    @abstractmethod
    def navigations(self) -> AsyncIterator[NavigationEvent]:
        """Stream of navigation-completed notifications.

        Yields one event per page the user agent finishes loading. The
        iterator ends when the user closes the window or the host is closed.

        Yields:
            NavigationEvent: Path and title of the loaded page
        """

    @abstractmethod
    async def close(self) -> None:
        """Close the window. Safe to call more than once."""

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()


_CLOSED = object()


class QueuedUserAgentHost(UserAgentHost):
    """Host for callback-driven embeddings.

    The embedding calls notify_navigation_completed() from its
    document-completed handler and notify_closed() when its window goes
    away. Events are queued until the flow consumes them.

    Both notify methods may be called from a UI thread other than the one
    running the event loop; they are handed to the loop with
    call_soon_threadsafe once the host has been used from that loop.
    """

    def __init__(self, navigator: Callable[[str], Awaitable[None]] | None = None):
        """Initialize the host.

        Args:
            navigator: Optional coroutine function that loads a URI in the
                embedded browser
        """
        self._navigator = navigator
        self._events: asyncio.Queue[NavigationEvent | object] = asyncio.Queue()
        self._closed = False
        self._loop: asyncio.AbstractEventLoop | None = None
        self.navigated_uris: list[str] = []

    @property
    def is_closed(self) -> bool:
        return self._closed

    def notify_navigation_completed(self, path: str, title: str | None) -> None:
        """Report that the user agent finished loading a page."""
        if self._closed:
            logger.debug(f"Ignoring navigation to {path} after close")
            return
        self._put(NavigationEvent(path=path, title=title))

    def notify_closed(self) -> None:
        """Report that the user closed the window."""
        if self._closed:
            return
        self._closed = True
        self._put(_CLOSED)

    async def navigate(self, uri: str) -> None:
        self._bind_loop()
        if self._closed:
            logger.debug(f"Not navigating to {uri}: host is closed")
            return
        self.navigated_uris.append(uri)
        if self._navigator is not None:
            await self._navigator(uri)

    async def navigations(self) -> AsyncIterator[NavigationEvent]:
        self._bind_loop()
        while True:
            # The close marker is consumed once; later readers stop here
            if self._closed and self._events.empty():
                return
            event = await self._events.get()
            if event is _CLOSED:
                return
            yield event

    async def close(self) -> None:
        self._bind_loop()
        self.notify_closed()

    def _bind_loop(self) -> None:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()

    def _put(self, item: NavigationEvent | object) -> None:
        loop = self._loop
        if loop is None or _running_loop() is loop:
            self._events.put_nowait(item)
        else:
            loop.call_soon_threadsafe(self._events.put_nowait, item)


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None
