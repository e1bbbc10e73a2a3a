"""
ResultStream: eager, single-producer asynchronous result channel.

Usage::

    # Stream mode: iterate records as the driver delivers them
    async for record in adapter.find("users", {}, query):
        process(record)

    # Batch mode: await to collect everything at once
    records = await adapter.find("users", {}, query)

    # Single value: count / update / remove emit exactly one integer
    n = await adapter.count("users", {}, query).first()

The driver request is issued as soon as the stream is created: a producer
task pushes items into an ``asyncio.Queue`` and finishes with either an
end-of-stream marker or the exception that stopped it. Readers that stop
iterating do not cancel the producer.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from .exceptions import StreamClosedError, ValidationError

if TYPE_CHECKING:
    from collections.abc import (
        AsyncIterable,
        AsyncIterator,
        Awaitable,
        Callable,
        Generator,
        Iterable,
    )
T = TypeVar("T")

logger = logging.getLogger("merlin.mongo.streams")

_END = object()

# Driver-driven producers must outlive streams the caller drops unread.
_running: set[asyncio.Task[None]] = set()


class _Failure:
    __slots__ = ("error",)

    def __init__(self, error: BaseException) -> None:
        self.error = error


def _pin(task: asyncio.Task[None]) -> None:
    _running.add(task)
    task.add_done_callback(_running.discard)


def _cancel_pending(task: asyncio.Task[None]) -> None:
    if not task.done() and not task.get_loop().is_closed():
        task.cancel()


async def _produce(
    source: AsyncIterable[Any], queue: asyncio.Queue[Any], label: str
) -> None:
    # Holds no reference to the stream, so a dropped stream can be collected.
    try:
        async for item in source:
            queue.put_nowait(item)
    except asyncio.CancelledError as e:
        queue.put_nowait(_Failure(e))
        raise
    except Exception as e:
        logger.warning("%s failed: %s", label, e)
        queue.put_nowait(_Failure(e))
    else:
        queue.put_nowait(_END)


class ResultStream(Generic[T]):
    """
    Ordered asynchronous stream of operation results.

    ``async for`` yields items in producer order; ``await`` collects them
    into a ``list[T]``. A producer failure is terminal: it is raised after
    any items already delivered and no further items follow.

    Parameters
    ----------
    source:
        Async iterable consumed by the producer task.
    label:
        Short description used in log records, e.g. ``"find users"``.
    pinned:
        Keep the producer alive after the stream is dropped. Only sources
        that finish on their own should be pinned.
    """

    def __init__(
        self,
        source: AsyncIterable[T],
        *,
        label: str = "stream",
        pinned: bool = True,
    ) -> None:
        self._label = label
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._terminal: Any = None
        self._task = asyncio.get_running_loop().create_task(
            _produce(source, self._queue, label)
        )
        if pinned:
            _pin(self._task)

    @property
    def label(self) -> str:
        return self._label

    @property
    def done(self) -> bool:
        """True once the producer has finished, successfully or not."""
        return self._task.done()

    # -- streaming support --------------------------------------------------

    def __aiter__(self) -> AsyncIterator[T]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[T]:
        while self._terminal is None:
            item = await self._queue.get()
            if item is _END or isinstance(item, _Failure):
                self._terminal = item
                break
            yield item
        if isinstance(self._terminal, _Failure):
            raise self._terminal.error

    # -- await support ------------------------------------------------------

    def __await__(self) -> Generator[Any, None, list[T]]:
        """Make ``await stream`` return ``list[T]``."""
        return self.collect().__await__()

    async def collect(self) -> list[T]:
        return [item async for item in self]

    # -- convenience --------------------------------------------------------

    async def first(self) -> T | None:
        """Return the first item, or ``None`` if the stream ends empty.

        Remaining items are drained so a later failure still surfaces.
        """
        items = await self.collect()
        return items[0] if items else None


async def _drain_inbox(
    inbox: asyncio.Queue[Any],
    insert_one: Callable[[dict[str, Any]], Awaitable[dict[str, Any]]],
) -> AsyncIterator[dict[str, Any]]:
    while True:
        record = await inbox.get()
        if record is _END:
            return
        yield await insert_one(record)


class InsertStream(ResultStream[dict[str, Any]]):
    """
    Duplex insert stream: records written in, inserted documents read out.

    Each written record is inserted on its own, strictly in write order, and
    the inserted document (a copy carrying the driver-assigned ``_id``) is
    emitted on the read side. A failed insert ends the whole stream: later
    records are dropped and further writes raise ``StreamClosedError``.

    Until :meth:`end` is called the producer only waits on the input side,
    so dropping an un-ended stream cancels it. Once ended, pending inserts
    run to completion whether or not anyone reads the results.
    """

    def __init__(
        self,
        insert_one: Callable[[dict[str, Any]], Awaitable[dict[str, Any]]],
        *,
        label: str = "insert",
    ) -> None:
        self._inbox: asyncio.Queue[Any] = asyncio.Queue()
        self._ended = False
        super().__init__(
            _drain_inbox(self._inbox, insert_one), label=label, pinned=False
        )
        self._abandon = weakref.finalize(self, _cancel_pending, self._task)
        self._abandon.atexit = False

    def write(self, record: Mapping[str, Any]) -> None:
        """Queue *record* for insertion."""
        if self._ended or self.done:
            raise StreamClosedError(f"{self.label}: stream already ended")
        if not isinstance(record, Mapping):
            raise ValidationError({"record": ["must be a mapping"]})
        self._inbox.put_nowait(dict(record))

    def end(self) -> None:
        """Close the input side; the read side ends after pending inserts.

        Calling it again is a no-op.
        """
        if self._ended:
            return
        self._ended = True
        self._abandon.detach()
        if not self.done:
            _pin(self._task)
        self._inbox.put_nowait(_END)

    async def feed(
        self, records: Iterable[Mapping[str, Any]] | AsyncIterable[Mapping[str, Any]]
    ) -> None:
        """Write every record from *records*, then end the input side."""
        if hasattr(records, "__aiter__"):
            async for record in records:
                self.write(record)
        else:
            for record in records:
                self.write(record)
        self.end()
