"""
Adapter factory.
Change the concrete class here to swap chat providers globally.
"""

from gemini_chat.adapters.base import ChatAdapter
from gemini_chat.adapters.gemini import GeminiChat


def build_chat() -> ChatAdapter:
    return GeminiChat()


__all__ = ["ChatAdapter", "GeminiChat", "build_chat"]
