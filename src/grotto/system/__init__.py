"""System sampling utilities for the grotto agent."""
from .cpu import CpuDelta, CpuSample, CpuSampler, parse_cpu_line, parse_cpu_stats, read_cpu_stats
from .telemetry import ProcessFootprint

__all__ = [
    "CpuDelta",
    "CpuSample",
    "CpuSampler",
    "ProcessFootprint",
    "parse_cpu_line",
    "parse_cpu_stats",
    "read_cpu_stats",
]
