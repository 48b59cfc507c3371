"""Multi-turn Gemini chat with synchronous and streaming replies."""

import logging

from gemini_chat.adapters import ChatAdapter, GeminiChat, build_chat
from gemini_chat.content.decoder import HistoryEntry
from gemini_chat.content.parts import ImagePart, TextPart, build_parts
from gemini_chat.core.logging import configure_logging
from gemini_chat.errors import (
    AlreadyRunningError,
    AuthError,
    ChatError,
    EmptyMessageError,
    ImageFormatError,
    ImageReadError,
    ModelError,
    ModelNotFoundError,
    NotRunningError,
    StreamError,
    TransportError,
)
from gemini_chat.query import query, query_stream
from gemini_chat.streaming import ResponseStream, StreamChunk

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "AlreadyRunningError",
    "AuthError",
    "ChatAdapter",
    "ChatError",
    "EmptyMessageError",
    "GeminiChat",
    "HistoryEntry",
    "ImageFormatError",
    "ImagePart",
    "ImageReadError",
    "ModelError",
    "ModelNotFoundError",
    "NotRunningError",
    "ResponseStream",
    "StreamChunk",
    "StreamError",
    "TextPart",
    "TransportError",
    "build_chat",
    "build_parts",
    "configure_logging",
    "query",
    "query_stream",
]
