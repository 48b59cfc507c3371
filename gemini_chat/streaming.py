"""
Stream Adapter
==============
Bridges the SDK's pull-style async response iterator into a push-style
stream of `StreamChunk` items consumed with `async for`.

Design
------
- A background asyncio task opens the iterator and pulls it in a loop.  Each
  response is decoded into one chunk.
- Hand-off is unbuffered: after queueing a chunk the producer awaits
  `Queue.join()` until the consumer has taken it, so a slow consumer applies
  backpressure and at most one response is held in memory.
- End of iteration closes the stream with no final item.  Any other error
  queues a single error chunk and then closes the stream.
- `aclose()` cancels the producer, discards chunks not yet taken and waits
  (bounded) for the producer to exit.  Once it returns no consumer will ever
  see another chunk.
- Close callbacks run exactly once on every exit path; the façade uses one to
  release its turn lock.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, List, Optional

from gemini_chat.config import get_settings
from gemini_chat.content.decoder import response_to_answer
from gemini_chat.core.logging import get_logger
from gemini_chat.errors import StreamError
from gemini_chat.metrics.latency import TurnLatency

logger = get_logger(__name__)

IteratorFactory = Callable[[], Awaitable[AsyncIterator[Any]]]
CloseCallback = Callable[[], Awaitable[None]]

_EOF = object()


@dataclass(frozen=True)
class StreamChunk:
    answer: str = ""
    error: Optional[StreamError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ResponseStream:
    def __init__(
        self,
        open_iterator: IteratorFactory,
        conversation_id: str = "",
        turn_id: str = "",
        close_timeout_seconds: Optional[float] = None,
    ) -> None:
        settings = get_settings()
        self._close_timeout = (
            close_timeout_seconds
            if close_timeout_seconds is not None
            else settings.stream_close_timeout_seconds
        )
        self._latency = TurnLatency(conversation_id=conversation_id, turn_id=turn_id, mode="stream")
        self._queue: asyncio.Queue = asyncio.Queue()
        self._callbacks: List[CloseCallback] = []
        self._closed = False
        self._aborted = False
        self._exhausted = False
        self._task = asyncio.create_task(self._produce(open_iterator))
        logger.debug(
            "Stream opened",
            extra={"conversation_id": conversation_id, "turn_id": turn_id},
        )

    # ── Public API ─────────────────────────────────────────────────────────────

    @property
    def closed(self) -> bool:
        """True once the producer has placed its final item (or was cancelled)."""
        return self._closed

    def add_close_callback(self, callback: CloseCallback) -> None:
        """
        Register a coroutine function to await once the stream closes.

        Must be called before the producer gets a chance to run, i.e. right
        after construction without awaiting in between.
        """
        if self._closed:
            raise RuntimeError("Stream is already closed")
        self._callbacks.append(callback)

    async def aclose(self) -> None:
        """Cancel the producer and close the stream.  Idempotent."""
        if asyncio.current_task() is self._task:
            return
        self._aborted = True
        if not self._task.done():
            self._task.cancel()
            _, pending = await asyncio.wait({self._task}, timeout=self._close_timeout)
            if pending:
                logger.warning(
                    "Stream producer did not exit in time",
                    extra={
                        "conversation_id": self._latency.conversation_id,
                        "turn_id": self._latency.turn_id,
                        "timeout_s": self._close_timeout,
                    },
                )
        # The producer never ran its cleanup if it was cancelled before starting
        await self._finish()

    async def collect(self) -> str:
        """Drain the stream and return the joined answer; raise its StreamError if any."""
        answers = []
        async for chunk in self:
            if chunk.error is not None:
                raise chunk.error
            answers.append(chunk.answer)
        return "".join(answers)

    # ── Async iterator / context manager ──────────────────────────────────────

    def __aiter__(self) -> "ResponseStream":
        return self

    async def __anext__(self) -> StreamChunk:
        if self._exhausted or self._aborted:
            raise StopAsyncIteration
        item = await self._queue.get()
        self._queue.task_done()
        if item is _EOF or self._aborted:
            self._exhausted = True
            raise StopAsyncIteration
        return item

    async def __aenter__(self) -> "ResponseStream":
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()

    # ── Producer ───────────────────────────────────────────────────────────────

    async def _produce(self, open_iterator: IteratorFactory) -> None:
        iterator: Optional[AsyncIterator[Any]] = None
        try:
            iterator = await open_iterator()
            async for response in iterator:
                self._latency.count_chunk()
                self._queue.put_nowait(StreamChunk(answer=response_to_answer(response)))
                await self._queue.join()
        except Exception as exc:
            logger.warning(
                "Stream terminated with error",
                extra={
                    "conversation_id": self._latency.conversation_id,
                    "turn_id": self._latency.turn_id,
                    "chunks": self._latency.chunks,
                    "error": str(exc),
                },
            )
            error = StreamError(f"Stream failed: {exc}", "send_message_stream", exc)
            error.__cause__ = exc
            self._queue.put_nowait(StreamChunk(error=error))
        finally:
            aclose = getattr(iterator, "aclose", None)
            if aclose is not None:
                try:
                    await aclose()
                except Exception as exc:
                    logger.debug("Response iterator close failed", extra={"error": str(exc)})
            self._latency.mark("stream")
            self._latency.log()
            await self._finish()

    async def _finish(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._aborted:
            while not self._queue.empty():
                self._queue.get_nowait()
                self._queue.task_done()
        self._queue.put_nowait(_EOF)
        logger.debug(
            "Stream closed",
            extra={
                "conversation_id": self._latency.conversation_id,
                "turn_id": self._latency.turn_id,
                "aborted": self._aborted,
            },
        )

        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                await callback()
            except Exception:
                logger.exception(
                    "Stream close callback failed",
                    extra={"conversation_id": self._latency.conversation_id},
                )
