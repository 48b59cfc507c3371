"""
Chat Adapter: Google Gemini
===========================
Owns one `google.genai.Client` and one async chat session.

States
------
Stopped (initial) → start() → Running → stop() → Stopped.

- Only start() succeeds while stopped; sends raise NotRunningError and
  get_history() returns an empty tuple.
- start() while running raises AlreadyRunningError instead of leaking the
  previous client.
- Turns are serialized by a per-instance asyncio.Lock held for the whole
  turn.  A streaming turn holds it until its stream closes.
- stop() cancels open streams first, then waits for an in-flight
  send_message, then closes the client.  It never raises.

The client is built by an injectable factory so tests can substitute a fake.
"""

import asyncio
import uuid
from typing import Callable, Optional, Sequence, Set, Tuple

from google import genai
from google.genai import types

from gemini_chat.adapters.base import ChatAdapter
from gemini_chat.config import get_settings
from gemini_chat.content.decoder import HistoryEntry, response_to_answer, to_history
from gemini_chat.content.parts import ContentPart, build_parts, to_genai_parts
from gemini_chat.core.logging import get_logger, new_turn_id, set_logging_context
from gemini_chat.errors import (
    AlreadyRunningError,
    EmptyMessageError,
    NotRunningError,
    translate_error,
)
from gemini_chat.metrics.latency import TurnLatency, measure
from gemini_chat.streaming import ResponseStream

logger = get_logger(__name__)

ClientFactory = Callable[[str], genai.Client]


def default_client_factory(credential: str) -> genai.Client:
    settings = get_settings()
    return genai.Client(
        api_key=credential,
        http_options=types.HttpOptions(timeout=int(settings.gemini_timeout_seconds * 1000)),
    )


class GeminiChat(ChatAdapter):
    def __init__(self, client_factory: Optional[ClientFactory] = None) -> None:
        settings = get_settings()
        self._client_factory = client_factory or default_client_factory
        self._default_model = settings.gemini_model
        self._default_credential = settings.gemini_api_key
        self._system_prompt = settings.gemini_system_prompt
        self._temperature = settings.gemini_temperature
        self._max_output_tokens = settings.gemini_max_output_tokens

        self._client: Optional[genai.Client] = None
        self._chat = None
        self._model = ""
        self._conversation_id = ""
        self._stopping = False
        self._turn_lock = asyncio.Lock()
        self._streams: Set[ResponseStream] = set()

    @property
    def running(self) -> bool:
        return self._chat is not None and not self._stopping

    @property
    def model(self) -> str:
        return self._model

    @property
    def conversation_id(self) -> str:
        return self._conversation_id

    # ── Lifecycle ──────────────────────────────────────────────────────────────

    async def start(self, model: Optional[str] = None, credential: Optional[str] = None) -> None:
        # An open stream holds the turn lock; reject before waiting on it
        if self._chat is not None:
            raise AlreadyRunningError()

        async with self._turn_lock:
            if self._chat is not None:
                raise AlreadyRunningError()

            model = model or self._default_model
            credential = credential if credential is not None else self._default_credential
            conversation_id = str(uuid.uuid4())
            set_logging_context(conversation_id=conversation_id)
            logger.info("Starting chat", extra={"conversation_id": conversation_id, "model": model})

            client = None
            try:
                client = self._client_factory(credential)
                await client.aio.models.get(model=model)
                chat = client.aio.chats.create(model=model, config=self._generation_config())
            except Exception as exc:
                if client is not None:
                    await self._close_client(client, conversation_id)
                raise translate_error(exc, "start")

            self._client = client
            self._chat = chat
            self._model = model
            self._conversation_id = conversation_id
            logger.info("Chat started", extra={"conversation_id": conversation_id, "model": model})

    async def stop(self) -> None:
        self._stopping = True
        try:
            for stream in list(self._streams):
                await stream.aclose()

            async with self._turn_lock:
                client, self._client, self._chat = self._client, None, None
                if client is None:
                    return
                await self._close_client(client, self._conversation_id)
                logger.info("Chat stopped", extra={"conversation_id": self._conversation_id})
        finally:
            self._stopping = False

    # ── Turns ──────────────────────────────────────────────────────────────────

    async def send_message(self, text: str, images: Sequence[str] = ()) -> str:
        self._ensure_running("send_message")
        parts = await self._build_parts(text, images, "send_message")

        async with self._turn_lock:
            self._ensure_running("send_message")
            turn_id = new_turn_id()
            latency = TurnLatency(conversation_id=self._conversation_id, turn_id=turn_id)
            logger.info(
                "Sending message",
                extra={"conversation_id": self._conversation_id, "turn_id": turn_id, "parts": len(parts)},
            )

            try:
                async with measure(latency, "send_message"):
                    response = await self._chat.send_message(to_genai_parts(parts))
            except Exception as exc:
                raise translate_error(exc, "send_message")

            answer = response_to_answer(response)
            latency.log()
            logger.info(
                "Reply received",
                extra={"conversation_id": self._conversation_id, "turn_id": turn_id, "chars": len(answer)},
            )
            return answer

    async def send_message_stream(self, text: str, images: Sequence[str] = ()) -> ResponseStream:
        self._ensure_running("send_message_stream")
        parts = await self._build_parts(text, images, "send_message_stream")

        await self._turn_lock.acquire()
        try:
            self._ensure_running("send_message_stream")
            chat = self._chat
            contents = to_genai_parts(parts)
            turn_id = new_turn_id()
            logger.info(
                "Sending message (stream)",
                extra={"conversation_id": self._conversation_id, "turn_id": turn_id, "parts": len(parts)},
            )
            stream = ResponseStream(
                lambda: chat.send_message_stream(contents),
                conversation_id=self._conversation_id,
                turn_id=turn_id,
            )
        except BaseException:
            self._turn_lock.release()
            raise

        self._streams.add(stream)

        async def release_turn() -> None:
            self._streams.discard(stream)
            self._turn_lock.release()

        stream.add_close_callback(release_turn)
        return stream

    def get_history(self) -> Tuple[HistoryEntry, ...]:
        if self._chat is None:
            return ()
        return to_history(self._chat.get_history(curated=True))

    # ── Private helpers ────────────────────────────────────────────────────────

    def _ensure_running(self, operation: str) -> None:
        if not self.running:
            logger.warning("Chat is not running", extra={"operation": operation})
            raise NotRunningError(operation)

    async def _build_parts(self, text: str, images: Optional[Sequence[str]], operation: str) -> list[ContentPart]:
        # File reads run off the event loop so open streams keep flowing
        parts = await asyncio.to_thread(build_parts, text, list(images or ()))
        if not parts:
            raise EmptyMessageError(operation)
        return parts

    def _generation_config(self) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            system_instruction=self._system_prompt or None,
            temperature=self._temperature,
            max_output_tokens=self._max_output_tokens,
        )

    async def _close_client(self, client: genai.Client, conversation_id: str) -> None:
        try:
            await client.aio.aclose()
        except Exception as exc:
            logger.warning(
                "Client close failed",
                extra={"conversation_id": conversation_id, "error": str(exc)},
            )
