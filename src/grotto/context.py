"""Runtime context shared by the agent's tasks."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from .config import AgentConfig

LOGGER = logging.getLogger(__name__)

ErrorObserver = Callable[[Exception], None]


@dataclass
class PipelineStats:
    """Counters updated by the sampler, the batcher and delivery workers."""

    cycles: int = 0
    failed_cycles: int = 0
    metrics_emitted: int = 0
    payloads_flushed: int = 0
    deliveries_succeeded: int = 0
    deliveries_failed: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def increment(self, name: str, amount: int = 1) -> None:
        with self._lock:
            setattr(self, name, getattr(self, name) + amount)

    def as_dict(self) -> Dict[str, int]:
        with self._lock:
            return {
                "cycles": self.cycles,
                "failed_cycles": self.failed_cycles,
                "metrics_emitted": self.metrics_emitted,
                "payloads_flushed": self.payloads_flushed,
                "deliveries_succeeded": self.deliveries_succeeded,
                "deliveries_failed": self.deliveries_failed,
            }


@dataclass
class AgentContext:
    """Explicit state handed to each task at construction."""

    config: AgentConfig
    hostname: str
    stats: PipelineStats = field(default_factory=PipelineStats)
    on_error: Optional[ErrorObserver] = None

    def report_error(self, error: Exception) -> None:
        """Forward a transient error to the observer, if one is registered."""
        if self.on_error is None:
            return
        try:
            self.on_error(error)
        except Exception:  # pragma: no cover - observer bugs must not stop the pipeline
            LOGGER.exception("Error observer failed while handling %r", error)
