"""Unbounded multi-producer, single-consumer channel for pipeline stages.

Each producer holds a :class:`Sender` handle. The channel closes once every
registered handle has been released, at which point the receiver drains the
remaining buffered items and its ``async for`` loop ends.
"""

from __future__ import annotations

import asyncio
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")

_CLOSED = object()


class ChannelClosed(RuntimeError):
    """Raised when sending through a released handle or a closed channel."""


class Channel(Generic[T]):
    """Unbounded channel with reference-counted senders."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._senders = 0
        self._closed = False
        self._receiver: Optional[Receiver[T]] = None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def sender_count(self) -> int:
        return self._senders

    def sender(self) -> Sender[T]:
        """Register and return a new producer handle."""
        if self._closed:
            raise ChannelClosed(f"Channel {self.name!r} is closed")
        self._senders += 1
        return Sender(self)

    def receiver(self) -> Receiver[T]:
        """Return the single consumer handle."""
        if self._receiver is None:
            self._receiver = Receiver(self)
        return self._receiver

    def _put(self, item: T) -> None:
        if self._closed:
            raise ChannelClosed(f"Channel {self.name!r} is closed")
        self._queue.put_nowait(item)

    def _release(self) -> None:
        self._senders -= 1
        if self._senders == 0:
            self._closed = True
            self._queue.put_nowait(_CLOSED)

    def __repr__(self) -> str:
        return f"Channel(name={self.name!r}, senders={self._senders}, closed={self._closed})"


class Sender(Generic[T]):
    """A producer handle; the channel stays open while any handle is unreleased."""

    def __init__(self, channel: Channel[T]) -> None:
        self._channel = channel
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def send(self, item: T) -> None:
        if self._released:
            raise ChannelClosed(f"Sender for {self._channel.name!r} was released")
        self._channel._put(item)

    def clone(self) -> Sender[T]:
        if self._released:
            raise ChannelClosed(f"Sender for {self._channel.name!r} was released")
        return self._channel.sender()

    def close(self) -> None:
        if self._released:
            return
        self._released = True
        self._channel._release()

    def __enter__(self) -> Sender[T]:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class Receiver(Generic[T]):
    """Consumer handle iterating until the channel closes and drains."""

    def __init__(self, channel: Channel[T]) -> None:
        self._channel = channel
        self._exhausted = False

    async def recv(self) -> Optional[T]:
        """Return the next item, or ``None`` once the channel is closed and empty."""
        if self._exhausted:
            return None
        item = await self._channel._queue.get()
        if item is _CLOSED:
            self._exhausted = True
            return None
        return item

    def __aiter__(self) -> Receiver[T]:
        return self

    async def __anext__(self) -> T:
        item = await self.recv()
        if item is None and self._exhausted:
            raise StopAsyncIteration
        return item  # type: ignore[return-value]


__all__ = ["Channel", "ChannelClosed", "Receiver", "Sender"]
