"""
Unit tests for ResponseStream.

The producer is fed plain async generators; no SDK objects besides the
response types are involved.
"""

import asyncio

import pytest

from gemini_chat.errors import StreamError
from gemini_chat.streaming import ResponseStream, StreamChunk
from tests.fakes import text_response


# ── Helpers ────────────────────────────────────────────────────────────────────

def make_opener(*items, pulls=None):
    """Opener for a generator yielding text responses; exceptions are raised, Events awaited."""

    async def generator():
        for item in items:
            if isinstance(item, asyncio.Event):
                await item.wait()
                continue
            if isinstance(item, BaseException):
                raise item
            if pulls is not None:
                pulls.append(item)
            yield text_response(item)

    async def opener():
        return generator()

    return opener


async def drain(stream):
    return [chunk async for chunk in stream]


# ── Normal end ─────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_chunks_delivered_in_order_then_closed():
    stream = ResponseStream(make_opener("1", "2", "3"))

    chunks = await asyncio.wait_for(drain(stream), timeout=1.0)

    assert chunks == [StreamChunk("1"), StreamChunk("2"), StreamChunk("3")]
    assert all(chunk.ok for chunk in chunks)
    assert stream.closed


@pytest.mark.asyncio
async def test_empty_iterator_closes_without_items():
    stream = ResponseStream(make_opener())
    assert await asyncio.wait_for(drain(stream), timeout=1.0) == []


@pytest.mark.asyncio
async def test_iterating_after_end_stays_exhausted():
    stream = ResponseStream(make_opener("1"))
    await drain(stream)
    assert await drain(stream) == []


# ── Errors ─────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_error_after_chunk_yields_one_error_chunk_then_close():
    boom = RuntimeError("boom")
    stream = ResponseStream(make_opener("1", boom))

    chunks = await asyncio.wait_for(drain(stream), timeout=1.0)

    assert len(chunks) == 2
    assert chunks[0] == StreamChunk("1")
    assert chunks[1].answer == ""
    assert isinstance(chunks[1].error, StreamError)
    assert chunks[1].error.__cause__ is boom
    assert not chunks[1].ok


@pytest.mark.asyncio
async def test_error_while_opening_becomes_error_chunk():
    async def opener():
        raise ConnectionError("refused")

    chunks = await asyncio.wait_for(drain(ResponseStream(opener)), timeout=1.0)

    assert len(chunks) == 1
    assert isinstance(chunks[0].error.cause, ConnectionError)


@pytest.mark.asyncio
async def test_collect_joins_answers():
    stream = ResponseStream(make_opener("a", "b"))
    assert await stream.collect() == "ab"


@pytest.mark.asyncio
async def test_collect_raises_stream_error():
    stream = ResponseStream(make_opener("a", ValueError("bad")))
    with pytest.raises(StreamError):
        await stream.collect()


# ── Backpressure ───────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_producer_waits_for_consumer():
    pulls = []
    stream = ResponseStream(make_opener("1", "2", "3", pulls=pulls))

    await asyncio.sleep(0.05)
    assert pulls == ["1"]  # Nothing consumed yet: only one response in flight

    assert (await stream.__anext__()).answer == "1"
    await asyncio.sleep(0.05)
    assert pulls == ["1", "2"]

    await stream.aclose()


# ── Cancellation ───────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_aclose_mid_flight_closes_stream_for_waiting_consumer():
    gate = asyncio.Event()  # Never set: the producer hangs after the first chunk
    stream = ResponseStream(make_opener("1", gate, "2"))

    assert (await stream.__anext__()).answer == "1"
    waiter = asyncio.create_task(drain(stream))
    await asyncio.sleep(0.01)

    await asyncio.wait_for(stream.aclose(), timeout=1.0)

    assert await asyncio.wait_for(waiter, timeout=1.0) == []
    assert stream.closed


@pytest.mark.asyncio
async def test_aclose_discards_chunk_not_yet_taken():
    stream = ResponseStream(make_opener("1", "2"))
    await asyncio.sleep(0.05)  # "1" is queued, waiting for the consumer

    await stream.aclose()

    assert await drain(stream) == []


@pytest.mark.asyncio
async def test_aclose_before_producer_runs():
    stream = ResponseStream(make_opener("1"))
    await stream.aclose()

    assert stream.closed
    assert await drain(stream) == []


@pytest.mark.asyncio
async def test_aclose_is_idempotent():
    stream = ResponseStream(make_opener("1"))
    await stream.aclose()
    await stream.aclose()
    assert stream.closed


@pytest.mark.asyncio
async def test_context_manager_closes_stream():
    gate = asyncio.Event()
    async with ResponseStream(make_opener("1", gate)) as stream:
        assert (await stream.__anext__()).answer == "1"
    assert stream.closed


# ── Close callbacks ────────────────────────────────────────────────────────────

@pytest.mark.asyncio
@pytest.mark.parametrize(
    "items",
    [("1", "2"), ("1", RuntimeError("boom")), ("1", asyncio.Event())],
    ids=["eof", "error", "cancelled"],
)
async def test_close_callbacks_run_once_on_every_exit_path(items):
    calls = []

    async def on_close():
        calls.append("closed")

    stream = ResponseStream(make_opener(*items))
    stream.add_close_callback(on_close)

    await stream.__anext__()
    await asyncio.sleep(0.05)
    await stream.aclose()
    await stream.aclose()

    assert calls == ["closed"]


@pytest.mark.asyncio
async def test_add_close_callback_after_close_is_rejected():
    stream = ResponseStream(make_opener())
    await drain(stream)

    with pytest.raises(RuntimeError):
        stream.add_close_callback(asyncio.sleep)
