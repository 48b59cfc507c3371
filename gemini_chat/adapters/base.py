"""
Abstract base class for chat provider adapters.
A concrete adapter owns one remote client and one conversation, making
providers replaceable without changing calling code.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence, Tuple

from gemini_chat.content.decoder import HistoryEntry
from gemini_chat.streaming import ResponseStream


class ChatAdapter(ABC):
    """Stateful multi-turn conversation: Stopped ⇄ Running."""

    @property
    @abstractmethod
    def running(self) -> bool:
        ...

    @abstractmethod
    async def start(self, model: Optional[str] = None, credential: Optional[str] = None) -> None:
        """
        Open the client and a fresh conversation.

        Parameters
        ----------
        model      : model name understood by the remote service
        credential : API key; both default to configuration
        """
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Release the client and discard the conversation.  Never raises."""
        ...

    @abstractmethod
    async def send_message(self, text: str, images: Sequence[str] = ()) -> str:
        """
        Send one turn and wait for the whole reply.

        Parameters
        ----------
        text   : message text (may be empty when images are given)
        images : local image paths, sent after the text in this order

        Returns
        -------
        Reply text, every candidate and part concatenated.
        """
        ...

    @abstractmethod
    async def send_message_stream(self, text: str, images: Sequence[str] = ()) -> ResponseStream:
        """Send one turn and return the reply as a stream of chunks."""
        ...

    @abstractmethod
    def get_history(self) -> Tuple[HistoryEntry, ...]:
        """Snapshot of the completed turns, images stripped; empty when stopped."""
        ...

    async def __aenter__(self) -> "ChatAdapter":
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.stop()
