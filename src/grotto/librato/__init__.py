"""Batching and delivery of metrics to Librato."""
from .metrics import GaugeMetric, Metric, Payload, UnsupportedMetricError
from .batcher import Batcher
from .sender import LibratoSender

__all__ = [
    "Batcher",
    "GaugeMetric",
    "LibratoSender",
    "Metric",
    "Payload",
    "UnsupportedMetricError",
]
