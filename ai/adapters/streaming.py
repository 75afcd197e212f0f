from __future__ import annotations
"""Consumer-paced chunk streams.

A ChunkStream is a finite, non-restartable async sequence of StreamChunk.
The network exchange runs on a producer task that pumps the adapter's private
async generator into a bounded queue; the consumer reads with ``async for``.
Exactly one terminal chunk (done or error) ends the sequence.

Ceasing consumption stops the producer: ``aclose()``, leaving an
``async with`` block, or dropping the last reference cancels the task, which
in turn closes the underlying HTTP response.
"""

import asyncio
import weakref
from typing import AsyncIterator, Iterable, List, Optional

from .types import StreamChunk

__all__ = ["ChunkStream", "stream_from_chunks"]

DEFAULT_QUEUE_SIZE = 32


def _cancel(task: "asyncio.Task[None]") -> None:
    if not task.done() and not task.get_loop().is_closed():
        task.cancel()


async def _pump(source: AsyncIterator[StreamChunk], queue: "asyncio.Queue[StreamChunk]") -> None:
    try:
        async for chunk in source:
            await queue.put(chunk)
            if chunk.is_terminal:
                return
        # source ended without an explicit marker
        await queue.put(StreamChunk(done=True))
    except asyncio.CancelledError:
        raise
    except Exception as e:  # noqa: BLE001 - delivered to the consumer as the terminal chunk
        await queue.put(StreamChunk(error=e))
    finally:
        aclose = getattr(source, "aclose", None)
        if aclose is not None:
            await aclose()


class ChunkStream:
    """Async iterator over the chunks of one streamed generation.

    Leaving ``async for`` early does not stop the producer; use
    ``async with`` or ``aclose()`` to release it.
    """

    def __init__(self, source: AsyncIterator[StreamChunk], maxsize: int = DEFAULT_QUEUE_SIZE) -> None:
        self._queue: asyncio.Queue[StreamChunk] = asyncio.Queue(maxsize=maxsize)
        self._finished = False
        self._task = asyncio.get_running_loop().create_task(_pump(source, self._queue))
        self._finalizer = weakref.finalize(self, _cancel, self._task)
        self._finalizer.atexit = False

    # ------------------------------------------------------------------
    def __aiter__(self) -> "ChunkStream":
        return self

    async def __anext__(self) -> StreamChunk:
        if self._finished:
            raise StopAsyncIteration
        chunk = await self._queue.get()
        if chunk.is_terminal:
            self._finished = True
        return chunk

    async def __aenter__(self) -> "ChunkStream":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    @property
    def closed(self) -> bool:
        return self._finished

    async def aclose(self) -> None:
        """Stop consuming; cancels the producer and releases its connection."""
        self._finished = True
        if not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    async def collect(self) -> str:
        """Drain the stream into one string. Raises the error carried by an error chunk."""
        parts: List[str] = []
        error: Optional[BaseException] = None
        async for chunk in self:
            if chunk.error is not None:
                error = chunk.error
                break
            parts.append(chunk.content)
        if error is not None:
            raise error
        return "".join(parts)


def stream_from_chunks(chunks: Iterable[StreamChunk]) -> ChunkStream:
    """Build a ChunkStream replaying fixed chunks (useful for fakes and tests)."""
    async def _source() -> AsyncIterator[StreamChunk]:
        for chunk in chunks:
            yield chunk

    return ChunkStream(_source())
