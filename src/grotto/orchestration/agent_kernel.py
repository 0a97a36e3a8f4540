"""Core orchestration logic for the grotto agent."""
from __future__ import annotations

import logging
import queue
import threading
from typing import Optional

from ..config import AgentConfig
from ..context import AgentContext, ErrorObserver
from ..librato.batcher import Batcher, PayloadSender
from ..librato.metrics import Metric
from ..librato.sender import LibratoSender
from ..system.cpu import CpuSampler
from ..system.telemetry import ProcessFootprint

LOGGER = logging.getLogger(__name__)

_JOIN_TIMEOUT_SECONDS = 5.0


class AgentKernel:
    """Run the sampler and the batcher until told to stop."""

    def __init__(
        self,
        config: AgentConfig,
        hostname: str,
        *,
        sender: Optional[PayloadSender] = None,
        on_error: Optional[ErrorObserver] = None,
    ) -> None:
        self.context = AgentContext(config=config, hostname=hostname, on_error=on_error)
        self.channel: "queue.Queue[Metric]" = queue.Queue()
        self.sampler = CpuSampler(self.context, self.channel)
        self.sender = sender or LibratoSender(config.librato)
        self.batcher = Batcher(self.context, self.channel, self.sender)
        self.footprint = ProcessFootprint()

        self._stop_event = threading.Event()
        self._threads: list[threading.Thread] = []
        self._is_shutdown = False

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()

    def start(self) -> None:
        if self._threads:
            return
        LOGGER.info("Starting grotto agent on %s", self.context.hostname)
        self._threads = [
            threading.Thread(
                target=self.sampler.run, args=(self._stop_event,), name="grotto-sampler", daemon=True
            ),
            threading.Thread(
                target=self.batcher.run, args=(self._stop_event,), name="grotto-batcher", daemon=True
            ),
        ]
        for thread in self._threads:
            thread.start()

    def stop(self) -> None:
        """Ask every task to stop. Safe to call from a signal handler."""
        self._stop_event.set()

    def run_forever(self) -> None:
        self.start()
        try:
            while not self._stop_event.wait(timeout=1.0):
                pass
        except KeyboardInterrupt:
            LOGGER.info("Agent stopped by user")
        finally:
            self.shutdown()

    def shutdown(self) -> None:
        """Stop the tasks, deliver what was collected and log final stats."""

        if self._is_shutdown:
            return

        self._is_shutdown = True
        LOGGER.info("Shutting down agent kernel")
        self.stop()
        stuck = []
        for thread in self._threads:
            thread.join(timeout=_JOIN_TIMEOUT_SECONDS)
            if thread.is_alive():
                LOGGER.warning("Thread %s did not stop within %.0f seconds", thread.name, _JOIN_TIMEOUT_SECONDS)
                stuck.append(thread.name)

        # The open payload still belongs to a batcher thread that has not exited.
        if "grotto-batcher" in stuck:
            LOGGER.warning("Skipping final flush; batcher is still running")
        else:
            self.batcher.close()

        stats = self.context.stats.as_dict()
        LOGGER.info(
            "Final pipeline stats: cycles=%s failed_cycles=%s metrics=%s payloads=%s delivered=%s failed=%s",
            stats["cycles"],
            stats["failed_cycles"],
            stats["metrics_emitted"],
            stats["payloads_flushed"],
            stats["deliveries_succeeded"],
            stats["deliveries_failed"],
        )
        footprint = self.footprint.snapshot()
        LOGGER.info(
            "Agent footprint: memory=%.1fMB threads=%d",
            footprint["memory_mb"],
            footprint["threads"],
        )
