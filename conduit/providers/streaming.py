"""Incremental stream decoding and the cancellable delta channel.

Two wire formats are decoded here:

- event-stream: ``data: {json}`` lines, terminated by a ``[DONE]`` sentinel
  or by the transport closing;
- newline-delimited JSON: one object per line, terminated by the transport
  closing.

Both buffer across chunk boundaries: a chunk is split on newlines and the last
(possibly incomplete) line is held back until the next chunk arrives.

:class:`DeltaStream` moves decoded deltas from a producer task (which owns the
HTTP read) to the consumer through a bounded :class:`asyncio.Queue`.
Cancelling it stops the producer, closes the transport and guarantees the
consumer sees no further delta.
"""

from __future__ import annotations

import asyncio
import codecs
import json
import weakref
from collections.abc import Awaitable, Callable, Coroutine
from dataclasses import dataclass
from typing import Any, Protocol, TypeVar

from ..errors import ProtocolError, RequestCancelledError
from ..infra.logging import get_logger

logger = get_logger(__name__)

DONE_SENTINEL = "[DONE]"
DATA_PREFIX = "data:"

Extractor = Callable[[dict[str, Any]], "str | None"]
Emit = Callable[[str], Awaitable[None]]
Producer = Callable[[Emit], Awaitable[None]]

T = TypeVar("T")


class CancelToken:
    """Caller-owned, one-way cancellation flag with synchronous callbacks."""

    def __init__(self) -> None:
        self._cancelled = False
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        callbacks, self._callbacks = self._callbacks, []
        for cb in callbacks:
            try:
                cb()
            except Exception:
                logger.exception("cancel_callback_failed")

    def add_callback(self, cb: Callable[[], None]) -> Callable[[], None]:
        """Run ``cb`` on cancel (immediately if already cancelled). Returns a remover."""
        if self._cancelled:
            cb()
            return lambda: None
        self._callbacks.append(cb)

        def remove() -> None:
            if cb in self._callbacks:
                self._callbacks.remove(cb)

        return remove


async def run_cancellable(
    coro: Coroutine[Any, Any, T], token: CancelToken | None, backend: str
) -> T:
    """Await ``coro``, aborting it with :class:`RequestCancelledError` if ``token`` fires."""
    if token is None:
        return await coro
    if token.cancelled:
        coro.close()
        raise RequestCancelledError(backend)
    task = asyncio.ensure_future(coro)
    remove = token.add_callback(task.cancel)
    try:
        return await task
    except asyncio.CancelledError:
        if token.cancelled:
            raise RequestCancelledError(backend) from None
        raise
    finally:
        remove()


# -- Decoders --


def parse_frame(payload: str) -> dict[str, Any]:
    try:
        envelope = json.loads(payload)
    except json.JSONDecodeError as e:
        raise ProtocolError(payload, e) from e
    if not isinstance(envelope, dict):
        raise ProtocolError(payload)
    return envelope


class LineSplitter:
    """UTF-8 aware newline splitter that keeps the trailing partial line."""

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._pending = ""

    @property
    def pending(self) -> str:
        return self._pending

    def feed(self, chunk: bytes) -> list[str]:
        self._pending += self._decoder.decode(chunk)
        *lines, self._pending = self._pending.split("\n")
        return [line.rstrip("\r") for line in lines]

    def drain(self) -> str:
        rest = self._pending + self._decoder.decode(b"", final=True)
        self._pending = ""
        return rest


class StreamDecoder(Protocol):
    done: bool

    def feed(self, chunk: bytes) -> list[str]: ...
    def finish(self) -> list[str]: ...


def _extract(extract: Extractor, payload: str) -> str | None:
    try:
        envelope = parse_frame(payload)
    except ProtocolError as e:
        logger.debug("stream_frame_skipped", frame=e.frame[:80])
        return None
    delta = extract(envelope)
    return delta if isinstance(delta, str) and delta else None


class EventStreamDecoder:
    def __init__(self, extract: Extractor) -> None:
        self._extract = extract
        self._lines = LineSplitter()
        self.done = False

    def feed(self, chunk: bytes) -> list[str]:
        deltas: list[str] = []
        if self.done:
            return deltas
        for line in self._lines.feed(chunk):
            if not line.startswith(DATA_PREFIX):
                continue
            payload = line[len(DATA_PREFIX):].strip()
            if payload == DONE_SENTINEL:
                self.done = True
                break
            if payload:
                delta = _extract(self._extract, payload)
                if delta:
                    deltas.append(delta)
        return deltas

    def finish(self) -> list[str]:
        rest = self._lines.drain()
        if rest.strip():
            logger.debug("stream_partial_line_dropped", size=len(rest))
        return []


class NDJSONDecoder:
    def __init__(self, extract: Extractor) -> None:
        self._extract = extract
        self._lines = LineSplitter()
        self.done = False

    def feed(self, chunk: bytes) -> list[str]:
        deltas: list[str] = []
        for line in self._lines.feed(chunk):
            if not line.strip():
                continue
            delta = _extract(self._extract, line)
            if delta:
                deltas.append(delta)
        return deltas

    def finish(self) -> list[str]:
        # An unterminated trailing fragment is never emitted.
        rest = self._lines.drain()
        if rest.strip():
            logger.debug("stream_partial_line_dropped", size=len(rest))
        self.done = True
        return []


# -- Channel --

_END = object()


@dataclass
class _Failure:
    error: Exception


class _Channel:
    """Queue and producer task shared by a :class:`DeltaStream`.

    Holds no reference back to the stream, so an abandoned stream can be
    collected while its producer is still blocked on a full queue.
    """

    def __init__(self, maxsize: int) -> None:
        self.queue: asyncio.Queue[Any] = asyncio.Queue(maxsize)
        self.task: asyncio.Task[None] | None = None
        self.closed = False
        self.produced = 0
        self.error: Exception | None = None

    async def emit(self, delta: str) -> None:
        if self.closed:
            return
        self.produced += 1
        await self.queue.put(delta)

    async def run(self, producer: Producer, name: str) -> None:
        try:
            await producer(self.emit)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.error = e
            if self.produced == 0:
                await self.queue.put(_Failure(e))
                return
            logger.warning("stream_interrupted", stream=name, deltas=self.produced, error=str(e))
        await self.queue.put(_END)

    def cancel(self) -> None:
        if self.closed and (self.task is None or self.task.done()):
            return
        self.closed = True
        task = self.task
        if task is not None and not task.done() and not task.get_loop().is_closed():
            task.cancel()
        # Drop anything already buffered, then wake a consumer blocked in get().
        while not self.queue.empty():
            self.queue.get_nowait()
        self.queue.put_nowait(_END)


def _abandon(channel: _Channel, remove_callback: Callable[[], None]) -> None:
    remove_callback()
    channel.cancel()


class DeltaStream:
    """Ordered, finite, non-restartable async iterator of text deltas.

    The producer starts on first iteration. Use ``async with`` or
    :meth:`aclose` when abandoning a stream early; a stream that is simply
    dropped cancels its producer when it is garbage collected.
    """

    def __init__(
        self,
        producer: Producer,
        cancel_token: CancelToken | None = None,
        maxsize: int = 64,
        name: str = "stream",
    ) -> None:
        self.name = name
        self.delta_count = 0
        self._producer = producer
        self._token = cancel_token or CancelToken()
        self._channel = _Channel(maxsize)
        self._remove_callback = self._token.add_callback(self._channel.cancel)
        self._finalizer = weakref.finalize(self, _abandon, self._channel, self._remove_callback)
        self._finalizer.atexit = False

    @property
    def cancel_token(self) -> CancelToken:
        return self._token

    @property
    def closed(self) -> bool:
        return self._channel.closed

    @property
    def error(self) -> Exception | None:
        return self._channel.error

    def __aiter__(self) -> DeltaStream:
        return self

    async def __anext__(self) -> str:
        channel = self._channel
        if channel.closed:
            raise StopAsyncIteration
        if channel.task is None:
            channel.task = asyncio.create_task(channel.run(self._producer, self.name))
        item = await channel.queue.get()
        if channel.closed or item is _END:
            self._finish()
            raise StopAsyncIteration
        if isinstance(item, _Failure):
            self._finish()
            raise item.error
        self.delta_count += 1
        return item

    async def __aenter__(self) -> DeltaStream:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        self._finalizer()
        if self._channel.task is not None:
            await asyncio.gather(self._channel.task, return_exceptions=True)

    async def text(self) -> str:
        return "".join([d async for d in self])

    def _finish(self) -> None:
        self._channel.closed = True
        self._remove_callback()
