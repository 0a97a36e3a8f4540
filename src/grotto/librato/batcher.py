"""Time-windowed batching of metric events."""
from __future__ import annotations

import logging
import queue
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional, Protocol

from ..config import DEFAULT_LIBRATO_PERIOD_SECONDS
from ..context import AgentContext
from .metrics import Metric, Payload, UnsupportedMetricError

LOGGER = logging.getLogger(__name__)

_STOP_POLL_SECONDS = 0.25


class PayloadSender(Protocol):
    def send(self, payload: Payload) -> None:
        ...


class Batcher:
    """Accumulate metrics into payloads and hand each one off for delivery.

    Exactly one payload is open at a time. When the window deadline passes the
    open payload is detached, a fresh payload and deadline start immediately
    and the detached payload is submitted to a bounded pool of delivery
    workers. The batcher never waits for a delivery to finish.
    """

    def __init__(
        self,
        context: AgentContext,
        channel: "queue.Queue[Metric]",
        sender: PayloadSender,
        *,
        window_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        librato = context.config.librato
        window = librato.period_seconds if window_seconds is None else window_seconds
        if window is None or window <= 0:
            window = DEFAULT_LIBRATO_PERIOD_SECONDS

        self._context = context
        self._channel = channel
        self._sender = sender
        self._window = float(window)
        self._clock = clock
        self._executor = ThreadPoolExecutor(
            max_workers=librato.max_inflight,
            thread_name_prefix="grotto-sender",
        )
        self._payload = Payload()
        self._deadline = self._clock() + self._window
        self._closed = False

    @property
    def window_seconds(self) -> float:
        return self._window

    @property
    def open_payload(self) -> Payload:
        return self._payload

    # ------------------------------------------------------------------
    def run(self, stop_event: threading.Event) -> None:
        LOGGER.info("Batching metrics every %.1f seconds", self._window)
        self._deadline = self._clock() + self._window
        while not stop_event.is_set():
            remaining = self._deadline - self._clock()
            if remaining <= 0:
                self.flush()
                continue

            try:
                metric = self._channel.get(timeout=min(remaining, _STOP_POLL_SECONDS))
            except queue.Empty:
                continue
            self.add(metric)

    def add(self, metric: Metric) -> None:
        try:
            self._payload.add(metric)
        except UnsupportedMetricError as exc:
            LOGGER.warning("Could not add metric: %s", exc)
            self._context.report_error(exc)

    def flush(self) -> Payload:
        """Detach the open payload and submit it for delivery."""
        payload = self._payload
        self._payload = Payload()
        self._deadline = self._clock() + self._window

        LOGGER.info("Sending %d metrics to librato", payload.size())
        self._context.stats.increment("payloads_flushed")
        future = self._executor.submit(self._sender.send, payload)
        future.add_done_callback(self._delivery_done)
        return payload

    def close(self) -> None:
        """Flush what is already queued and wait for outstanding deliveries."""
        if self._closed:
            return
        self._closed = True

        while True:
            try:
                self.add(self._channel.get_nowait())
            except queue.Empty:
                break

        if self._payload.size():
            self.flush()
        self._executor.shutdown(wait=True)

    # ------------------------------------------------------------------
    def _delivery_done(self, future: Future) -> None:
        error = future.exception()
        if error is None:
            self._context.stats.increment("deliveries_succeeded")
            return

        self._context.stats.increment("deliveries_failed")
        LOGGER.error("Could not send payload: %s", error)
        if isinstance(error, Exception):
            self._context.report_error(error)
