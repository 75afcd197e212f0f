"""Tests for consumer-paced chunk streams."""
import asyncio
import gc

import pytest

from ai.adapters.streaming import ChunkStream, stream_from_chunks
from ai.adapters.types import StreamChunk
from core.errors import BackendCallFailed


class TestChunkStream:
    """Ordering, termination and cancellation."""

    @pytest.mark.asyncio
    async def test_chunks_in_order_then_terminal(self):
        stream = stream_from_chunks([StreamChunk(content="He"), StreamChunk(content="llo"), StreamChunk(done=True)])
        seen = [chunk async for chunk in stream]
        assert [c.content for c in seen[:2]] == ["He", "llo"]
        assert seen[2].done
        assert len(seen) == 3
        assert stream.closed

    @pytest.mark.asyncio
    async def test_nothing_after_terminal(self):
        stream = stream_from_chunks(
            [StreamChunk(content="a"), StreamChunk(done=True), StreamChunk(content="late"), StreamChunk(done=True)]
        )
        seen = [chunk async for chunk in stream]
        assert [c.content for c in seen] == ["a", ""]
        with pytest.raises(StopAsyncIteration):
            await stream.__anext__()

    @pytest.mark.asyncio
    async def test_missing_marker_gets_done(self):
        stream = stream_from_chunks([StreamChunk(content="x")])
        seen = [chunk async for chunk in stream]
        assert seen[-1].done
        assert len(seen) == 2

    @pytest.mark.asyncio
    async def test_error_chunk_is_terminal(self):
        err = BackendCallFailed("a", "broken")
        stream = stream_from_chunks([StreamChunk(content="part"), StreamChunk(error=err), StreamChunk(content="x")])
        seen = [chunk async for chunk in stream]
        assert seen[-1].error is err
        assert len(seen) == 2

    @pytest.mark.asyncio
    async def test_collect_raises_error(self):
        stream = stream_from_chunks([StreamChunk(content="part"), StreamChunk(error=BackendCallFailed("a", "x"))])
        with pytest.raises(BackendCallFailed):
            await stream.collect()

    @pytest.mark.asyncio
    async def test_source_exception_becomes_error_chunk(self):
        async def source():
            yield StreamChunk(content="a")
            raise RuntimeError("kaboom")

        seen = [chunk async for chunk in ChunkStream(source())]
        assert isinstance(seen[-1].error, RuntimeError)

    @pytest.mark.asyncio
    async def test_bounded_queue_paces_producer(self):
        produced = []

        async def source():
            for i in range(100):
                produced.append(i)
                yield StreamChunk(content=str(i))
            yield StreamChunk(done=True)

        stream = ChunkStream(source(), maxsize=2)
        await asyncio.sleep(0.01)
        assert len(produced) < 10
        await stream.aclose()

    @pytest.mark.asyncio
    async def test_aclose_stops_producer_and_closes_source(self):
        closed = asyncio.Event()

        async def source():
            try:
                while True:
                    yield StreamChunk(content="tick")
                    await asyncio.sleep(0)
            finally:
                closed.set()

        stream = ChunkStream(source(), maxsize=1)
        first = await stream.__anext__()
        assert first.content == "tick"
        await stream.aclose()
        assert closed.is_set()
        assert stream.closed

    @pytest.mark.asyncio
    async def test_async_with_closes(self):
        closed = asyncio.Event()

        async def source():
            try:
                while True:
                    yield StreamChunk(content="tick")
            finally:
                closed.set()

        async with ChunkStream(source(), maxsize=1) as stream:
            await stream.__anext__()
        assert closed.is_set()

    @pytest.mark.asyncio
    async def test_break_inside_async_with_releases_producer(self):
        closed = asyncio.Event()

        async def source():
            try:
                while True:
                    yield StreamChunk(content="tick")
            finally:
                closed.set()

        async with ChunkStream(source(), maxsize=1) as stream:
            async for chunk in stream:
                assert chunk.content == "tick"
                break
        assert closed.is_set()
        assert stream._task.done()

    @pytest.mark.asyncio
    async def test_dropping_reference_cancels_producer(self):
        closed = asyncio.Event()

        async def source():
            try:
                while True:
                    yield StreamChunk(content="tick")
            finally:
                closed.set()

        stream = ChunkStream(source(), maxsize=1)
        task = stream._task
        await asyncio.sleep(0)
        del stream
        gc.collect()
        await asyncio.wait_for(closed.wait(), timeout=1)
        await asyncio.sleep(0)
        assert task.done()
