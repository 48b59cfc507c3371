"""
Error taxonomy
==============
Every failure surfaced by the chat façade is a ChatError subclass, so callers
get a typed exception rather than a raw exception from the SDK or from httpx.

Local errors (not running, image problems) are raised directly by the call
that caused them.  Remote errors are translated by `translate_error`, which
keeps the original exception as `cause` and as `__cause__`.
"""

from typing import Optional

import httpx
from google.genai import errors as genai_errors

from gemini_chat.core.logging import get_logger

logger = get_logger(__name__)

NOT_RUNNING_MESSAGE = "Please call the Start method first."


class ChatError(Exception):
    """Base class for all errors raised by gemini_chat."""

    def __init__(self, message: str, operation: str = "", cause: Optional[BaseException] = None) -> None:
        self.operation = operation
        self.cause = cause
        super().__init__(message)


class NotRunningError(ChatError):
    def __init__(self, operation: str = "") -> None:
        super().__init__(NOT_RUNNING_MESSAGE, operation)


class AlreadyRunningError(ChatError):
    def __init__(self, operation: str = "start") -> None:
        super().__init__("Chat is already running; call the Stop method first.", operation)


class EmptyMessageError(ChatError):
    def __init__(self, operation: str = "") -> None:
        super().__init__("Message has no text and no images.", operation)


class ImageReadError(ChatError):
    """An image file could not be read from the local filesystem."""

    def __init__(self, path: str, cause: OSError) -> None:
        self.path = path
        super().__init__(f"Cannot read image '{path}': {cause}", "build_parts", cause)


class ImageFormatError(ChatError):
    """An image path carries no extension to derive the format from."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Cannot derive image format from '{path}': no file extension", "build_parts")


class AuthError(ChatError):
    pass


class ModelNotFoundError(ChatError):
    pass


class TransportError(ChatError):
    pass


class ModelError(ChatError):
    """The service rejected a turn (safety filtering, quota, invalid prompt…)."""


class StreamError(ChatError):
    """A streaming response terminated abnormally."""


# ── SDK error translation ──────────────────────────────────────────────────────

_AUTH_CODES = {401, 403}


def _is_invalid_key(exc: genai_errors.APIError) -> bool:
    # Gemini answers a bad key with 400 INVALID_ARGUMENT rather than 401
    message = (exc.message or "").lower()
    return exc.code == 400 and "api key" in message


def translate_error(exc: BaseException, operation: str) -> ChatError:
    """
    Map an exception raised by the SDK to the ChatError taxonomy.

    `operation` is "start" for session setup and the façade method name for
    turns; it decides whether a generic API error is a TransportError
    (setup) or a ModelError (turn).
    """
    if isinstance(exc, ChatError):
        return exc

    error: ChatError
    if isinstance(exc, genai_errors.APIError):
        if exc.code in _AUTH_CODES or _is_invalid_key(exc):
            error = AuthError(f"Authentication failed: {exc.message}", operation, exc)
        elif exc.code == 404 and operation == "start":
            error = ModelNotFoundError(f"Unknown model: {exc.message}", operation, exc)
        elif operation == "start":
            error = TransportError(f"Cannot open chat session: {exc}", operation, exc)
        else:
            error = ModelError(f"Model rejected the request: {exc}", operation, exc)
    elif isinstance(exc, httpx.HTTPError):
        error = TransportError(f"Transport failure: {exc}", operation, exc)
    elif isinstance(exc, ValueError) and operation == "start":
        # genai.Client raises ValueError when no API key is available
        error = AuthError(f"Invalid credential: {exc}", operation, exc)
    elif operation == "start":
        error = TransportError(f"Cannot open chat session: {exc}", operation, exc)
    else:
        error = ModelError(f"Request failed: {exc}", operation, exc)

    error.__cause__ = exc
    logger.error(
        "SDK error translated",
        extra={
            "operation": operation,
            "error_type": type(error).__name__,
            "cause_type": type(exc).__name__,
            "error": str(exc),
        },
    )
    return error
