"""Per-CPU usage sampling from cumulative kernel counters."""
from __future__ import annotations

import logging
import queue
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from ..context import AgentContext
from ..errors import ParseError, SampleReadError
from ..librato.metrics import GaugeMetric, Metric

LOGGER = logging.getLogger(__name__)

CPU_PREFIX = "cpu"


@dataclass(frozen=True)
class CpuSample:
    """Cumulative counters read from one ``cpu*`` line."""

    name: str
    user: int
    nice: int
    system: int
    idle: int
    total: int
    epoch: int

    def difference(self, previous: "CpuSample") -> "CpuDelta":
        """Subtract ``previous`` from this sample, keeping this sample's name and time."""
        return CpuDelta(
            name=self.name,
            epoch=self.epoch,
            user=self.user - previous.user,
            nice=self.nice - previous.nice,
            system=self.system - previous.system,
            idle=self.idle - previous.idle,
            total=self.total - previous.total,
        )


@dataclass(frozen=True)
class CpuDelta:
    """Counter increments between two consecutive samples of one CPU."""

    name: str
    user: int
    nice: int
    system: int
    idle: int
    total: int
    epoch: int

    def percentage(self, of: int) -> float:
        return of / self.total

    @property
    def user_percentage(self) -> float:
        return self.percentage(self.user)

    @property
    def nice_percentage(self) -> float:
        return self.percentage(self.nice)

    @property
    def system_percentage(self) -> float:
        return self.percentage(self.system)

    @property
    def idle_percentage(self) -> float:
        return self.percentage(self.idle)

    @property
    def usage_percentage(self) -> float:
        return self.percentage(self.user + self.nice + self.system)

    def metrics(self, source: str) -> List[GaugeMetric]:
        """Return the user, nice, system, idle and usage gauges, in that order."""
        values = [
            ("user", self.user_percentage),
            ("nice", self.nice_percentage),
            ("system", self.system_percentage),
            ("idle", self.idle_percentage),
            ("usage", self.usage_percentage),
        ]
        return [
            GaugeMetric(name=f"{self.name}-{field}", measure_time=self.epoch, value=value, source=source)
            for field, value in values
        ]


def parse_cpu_line(line: str, epoch: int) -> Optional[CpuSample]:
    """Parse one line of the counter file.

    Returns ``None`` for lines that do not describe a CPU. The first four
    counters are user, nice, system and idle; every counter on the line is
    summed into the total.

    Raises:
        ParseError: If a counter is not a non-negative integer.
    """

    tokens = line.split()
    if not tokens or not tokens[0].startswith(CPU_PREFIX):
        return None

    counters = []
    for token in tokens[1:]:
        if not (token.isascii() and token.isdigit()):
            raise ParseError(f"Could not parse {token!r} to int on line {tokens[0]!r}")
        counters.append(int(token))

    named = counters[:4] + [0] * (4 - len(counters[:4]))
    return CpuSample(
        name=tokens[0],
        user=named[0],
        nice=named[1],
        system=named[2],
        idle=named[3],
        total=sum(counters),
        epoch=epoch,
    )


def parse_cpu_stats(lines: Iterable[str], clock: Callable[[], float] = time.time) -> List[CpuSample]:
    """Parse every CPU line, failing on the first malformed counter."""
    samples: List[CpuSample] = []
    for line in lines:
        sample = parse_cpu_line(line, int(clock()))
        if sample is not None:
            samples.append(sample)
    return samples


def read_cpu_stats(path: Path, clock: Callable[[], float] = time.time) -> List[CpuSample]:
    """Read and parse the counter file at ``path``."""
    try:
        with Path(path).open("r", encoding="ascii") as handle:
            lines = handle.readlines()
    except (OSError, UnicodeDecodeError) as exc:
        raise SampleReadError(f"Could not read {path}: {exc}") from exc
    return parse_cpu_stats(lines, clock)


class CpuSampler:
    """Emit usage-rate gauges for every CPU on a fixed period.

    The baseline table belongs to this sampler alone. The first observation
    of a CPU only seeds its baseline.
    """

    def __init__(
        self,
        context: AgentContext,
        channel: "queue.Queue[Metric]",
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._context = context
        self._channel = channel
        self._clock = clock
        self._path = context.config.cpu.stat_path
        self._period = context.config.cpu.period_seconds
        self._baselines: Dict[str, CpuSample] = {}

    @property
    def tracked_cpus(self) -> List[str]:
        return sorted(self._baselines)

    def run(self, stop_event: threading.Event) -> None:
        LOGGER.info("Sampling %s every %s seconds", self._path, self._period)
        while not stop_event.is_set():
            self.sample_once()
            stop_event.wait(self._period)

    def sample_once(self) -> int:
        """Run one sampling cycle and return the number of gauges emitted."""
        stats = self._context.stats
        stats.increment("cycles")
        try:
            samples = read_cpu_stats(self._path, self._clock)
        except (SampleReadError, ParseError) as exc:
            stats.increment("failed_cycles")
            LOGGER.warning("Could not get cpu stats: %s", exc)
            self._context.report_error(exc)
            return 0

        emitted = 0
        for sample in samples:
            previous = self._baselines.get(sample.name)
            self._baselines[sample.name] = sample
            if previous is None:
                LOGGER.debug("Baseline recorded for %s", sample.name)
                continue

            delta = sample.difference(previous)
            if delta.total <= 0:
                LOGGER.debug("Skipping %s: no counter progress (total delta %d)", sample.name, delta.total)
                continue

            for metric in delta.metrics(self._context.hostname):
                self._channel.put(metric)
                emitted += 1

        if emitted:
            stats.increment("metrics_emitted", emitted)
        return emitted
