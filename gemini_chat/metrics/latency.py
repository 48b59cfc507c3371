"""
Per-turn latency reporting.

A TurnLatency collects named stage timings for one turn and is logged once
the turn ends: "send_message" for a synchronous turn, "first_chunk" and
"stream" for a streaming one.
"""

import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict

from gemini_chat.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class TurnLatency:
    conversation_id: str
    turn_id: str
    mode: str = "sync"
    chunks: int = 0
    started_at: float = field(default_factory=time.perf_counter)
    stages: Dict[str, float] = field(default_factory=dict)

    def record(self, stage: str, elapsed_ms: float) -> None:
        self.stages[stage] = round(elapsed_ms, 2)

    def mark(self, stage: str) -> None:
        """Record the time elapsed since the turn started under `stage`."""
        self.record(stage, (time.perf_counter() - self.started_at) * 1000)

    def count_chunk(self) -> None:
        if self.chunks == 0:
            self.mark("first_chunk")
        self.chunks += 1

    @property
    def total_ms(self) -> float:
        return max(self.stages.values(), default=0.0)

    def log(self) -> None:
        logger.info(
            "Turn latency report",
            extra={
                "conversation_id": self.conversation_id,
                "turn_id": self.turn_id,
                "mode": self.mode,
                "chunks": self.chunks,
                **{f"latency_{k}_ms": v for k, v in self.stages.items()},
                "latency_total_ms": self.total_ms,
            },
        )


@asynccontextmanager
async def measure(latency: TurnLatency, stage: str) -> AsyncIterator[None]:
    """Time the body as `stage`, even when it raises."""
    t0 = time.perf_counter()
    try:
        yield
    finally:
        latency.record(stage, (time.perf_counter() - t0) * 1000)
