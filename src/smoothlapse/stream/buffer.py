"""
Frame Channel
=============

Thread-safe bounded channel between pipeline stages.

This module provides the FrameChannel class, which connects the decoder
thread to the selector and the selector to the encoder thread.

Design Rules:
    - Fixed maximum size; a full channel blocks the producer (never drops)
    - Single producer, single consumer
    - close() ends the stream after queued items are drained
    - abort() discards queued items and wakes both sides
    - None marks end-of-stream and cannot be put as an item
    - Does NOT process or modify items
"""

import logging
import threading
from collections import deque
from typing import Any, Deque, Generic, Iterator, Optional, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar("T")


class ChannelClosed(Exception):
    """Raised when putting into a channel that was closed or aborted."""
    pass


class FrameChannel(Generic[T]):
    """
    Bounded blocking channel with end-of-stream signalling.

    Attributes:
        maxsize: Maximum number of queued items
        producer_waits: Number of puts that had to wait for space

    Example:
        channel = FrameChannel(maxsize=64)

        # Producer thread
        for frame in decoder.frames():
            channel.put(frame)
        channel.close()

        # Consumer thread
        for frame in channel:
            process(frame)
    """

    def __init__(self, maxsize: int = 64, name: str = "channel") -> None:
        """
        Initialize channel.

        Args:
            maxsize: Maximum items to queue. Must be >= 1.
            name: Label used in log messages
        """
        if maxsize < 1:
            raise ValueError("maxsize must be >= 1")

        self.name = name
        self._maxsize = maxsize
        self._items: Deque[Any] = deque()
        self._cond = threading.Condition()
        self._closed = False
        self._aborted = False
        self._total_put = 0
        self._producer_waits = 0

    @property
    def maxsize(self) -> int:
        """Maximum channel size."""
        return self._maxsize

    @property
    def size(self) -> int:
        """Current number of queued items."""
        with self._cond:
            return len(self._items)

    @property
    def total_put(self) -> int:
        """Total items ever put into the channel."""
        return self._total_put

    @property
    def producer_waits(self) -> int:
        """Number of puts that blocked on a full channel."""
        return self._producer_waits

    @property
    def closed(self) -> bool:
        return self._closed or self._aborted

    def put(self, item: T, timeout: Optional[float] = None) -> None:
        """
        Add an item, waiting while the channel is full.

        Args:
            item: Item to enqueue
            timeout: Maximum seconds to wait. None = wait until space.

        Raises:
            ValueError: If item is None
            ChannelClosed: If the channel is closed or aborted
            TimeoutError: If no space became available within timeout
        """
        if item is None:
            raise ValueError("None is reserved as the end-of-stream marker")

        with self._cond:
            if self.closed:
                raise ChannelClosed(f"{self.name} is closed")

            if len(self._items) >= self._maxsize:
                self._producer_waits += 1
                ready = self._cond.wait_for(
                    lambda: self.closed or len(self._items) < self._maxsize,
                    timeout=timeout,
                )
                if not ready:
                    raise TimeoutError(f"{self.name} stayed full for {timeout}s")
                if self.closed:
                    raise ChannelClosed(f"{self.name} is closed")

            self._items.append(item)
            self._total_put += 1
            self._cond.notify_all()

    def get(self, timeout: Optional[float] = None) -> Optional[T]:
        """
        Take the next item.

        Args:
            timeout: Maximum seconds to wait. None = wait forever.

        Returns:
            Next item, or None once the channel is closed and drained
            (or aborted).

        Raises:
            TimeoutError: If nothing arrived within timeout
        """
        with self._cond:
            ready = self._cond.wait_for(
                lambda: self._items or self._closed or self._aborted,
                timeout=timeout,
            )
            if not ready:
                raise TimeoutError(f"{self.name} stayed empty for {timeout}s")
            if self._aborted or not self._items:
                return None

            item = self._items.popleft()
            self._cond.notify_all()
            return item

    def close(self) -> None:
        """Signal end-of-stream. Queued items remain readable."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def abort(self) -> int:
        """
        Discard queued items and wake any waiting producer or consumer.

        Returns:
            Number of items discarded.
        """
        with self._cond:
            discarded = len(self._items)
            self._items.clear()
            self._aborted = True
            self._cond.notify_all()
        if discarded:
            logger.debug(f"{self.name} aborted, discarded {discarded} items")
        return discarded

    def __iter__(self) -> Iterator[T]:
        """Yield items until the channel is closed and drained."""
        while True:
            item = self.get()
            if item is None:
                return
            yield item

    def metrics(self) -> dict:
        """
        Get channel metrics for observability.

        Returns:
            Dict with size, maxsize, total_put, producer_waits
        """
        return {
            "size": self.size,
            "maxsize": self._maxsize,
            "total_put": self._total_put,
            "producer_waits": self._producer_waits,
        }
