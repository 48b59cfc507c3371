"""
One-shot queries: a private GeminiChat is started for a single turn and
stopped again on every exit path.
"""

from typing import Optional, Sequence

from gemini_chat.adapters.gemini import ClientFactory, GeminiChat
from gemini_chat.core.logging import get_logger
from gemini_chat.streaming import ResponseStream

logger = get_logger(__name__)


async def query(
    model: Optional[str],
    credential: Optional[str],
    text: str,
    images: Sequence[str] = (),
    *,
    client_factory: Optional[ClientFactory] = None,
) -> str:
    """Start → send_message → stop."""
    chat = GeminiChat(client_factory=client_factory)
    await chat.start(model, credential)
    async with chat:
        return await chat.send_message(text, images)


async def query_stream(
    model: Optional[str],
    credential: Optional[str],
    text: str,
    images: Sequence[str] = (),
    *,
    client_factory: Optional[ClientFactory] = None,
) -> ResponseStream:
    """
    Start → send_message_stream.  The chat is stopped once the returned
    stream closes, so the client outlives every chunk it delivers.
    """
    chat = GeminiChat(client_factory=client_factory)
    await chat.start(model, credential)
    try:
        stream = await chat.send_message_stream(text, images)
    except BaseException:
        await chat.stop()
        raise

    stream.add_close_callback(chat.stop)
    logger.debug("One-shot stream handed out", extra={"conversation_id": chat.conversation_id})
    return stream
