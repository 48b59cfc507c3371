"""
Structured JSON logging with:
  - Console output
  - Optional rotating file output (configurable size / backup count)
  - Conversation / turn IDs injected into every record
"""

import json
import logging
import logging.handlers
import sys
import time
import uuid
from contextvars import ContextVar
from typing import IO, Any, Optional

from gemini_chat.config import get_settings

# ── Context variables so per-turn metadata travels through async calls ───────
_conversation_id_var: ContextVar[str] = ContextVar("conversation_id", default="")
_turn_id_var: ContextVar[str] = ContextVar("turn_id", default="")

_RESERVED_ATTRS = {
    "name", "msg", "args", "levelname", "levelno", "pathname",
    "filename", "module", "exc_info", "exc_text", "stack_info",
    "lineno", "funcName", "created", "msecs", "relativeCreated",
    "thread", "threadName", "processName", "process", "message",
    "taskName",
}


def set_logging_context(conversation_id: str = "", turn_id: str = "") -> None:
    _conversation_id_var.set(conversation_id)
    _turn_id_var.set(turn_id)


def new_turn_id() -> str:
    tid = str(uuid.uuid4())[:8]
    _turn_id_var.set(tid)
    return tid


# ── JSON formatter ─────────────────────────────────────────────────────────────
class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "conversation_id": record.__dict__.get("conversation_id") or _conversation_id_var.get(),
            "turn_id": record.__dict__.get("turn_id") or _turn_id_var.get(),
            "msg": record.getMessage(),
        }
        # Carry any extra keys set via `logger.info("...", extra={...})`
        for key, val in record.__dict__.items():
            if key not in _RESERVED_ATTRS and key not in payload and not key.startswith("_"):
                payload[key] = val

        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


PACKAGE_LOGGER = "gemini_chat"


def configure_logging(level: Optional[str] = None, stream: Optional[IO[str]] = None) -> logging.Logger:
    """
    Opt-in JSON logging for the gemini_chat logger tree.

    The library only installs a NullHandler on import; applications call this
    once to get JSON records on `stream` (stdout by default) and, when
    `log_file` is configured, in a rotating file.  Records stop propagating to
    the root logger so the application's own handlers do not duplicate them.
    Calling it again replaces the previously installed handlers.
    """
    settings = get_settings()
    level_name = (level or settings.log_level).upper()

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(getattr(logging, level_name, logging.INFO))
    package_logger.propagate = False
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    formatter = JsonFormatter()

    console_handler = logging.StreamHandler(stream or sys.stdout)
    console_handler.setFormatter(formatter)
    package_logger.addHandler(console_handler)

    if settings.log_file:
        file_handler = logging.handlers.RotatingFileHandler(
            filename=settings.log_file,
            maxBytes=settings.log_rotation_bytes,
            backupCount=settings.log_backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        package_logger.addHandler(file_handler)

    return package_logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
