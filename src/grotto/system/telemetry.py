"""Telemetry about the agent process itself."""
from __future__ import annotations

import logging
import os
from typing import Dict

import psutil

LOGGER = logging.getLogger(__name__)


class ProcessFootprint:
    """Collects the agent's own resource usage."""

    def __init__(self, pid: int | None = None) -> None:
        self._process = psutil.Process(pid or os.getpid())

    def snapshot(self) -> Dict[str, float]:
        with self._process.oneshot():
            metrics = {
                "memory_mb": self._process.memory_info().rss / (1024 * 1024),
                "threads": float(self._process.num_threads()),
            }
        LOGGER.debug("Agent footprint: %s", metrics)
        return metrics
