"""Metric events and the payload sent to Librato."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Union


class UnsupportedMetricError(ValueError):
    """Raised when a payload receives a metric kind it cannot carry."""


@dataclass(frozen=True)
class GaugeMetric:
    """A one-off reading sent to Librato."""

    name: str
    measure_time: int
    value: float
    source: Optional[str] = None
    description: Optional[str] = None
    display_name: Optional[str] = None
    kind: Literal["gauge"] = field(default="gauge", init=False)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"name": self.name}
        if self.description:
            data["description"] = self.description
        if self.display_name:
            data["display_name"] = self.display_name
        data["measure_time"] = self.measure_time
        data["value"] = self.value
        if self.source:
            data["source"] = self.source
        return data


# New metric kinds join this union and get a section in Payload.
Metric = Union[GaugeMetric]


@dataclass
class Payload:
    """Metrics accumulated during one batching window."""

    gauges: List[GaugeMetric] = field(default_factory=list)

    def add(self, metric: Metric) -> None:
        kind = getattr(metric, "kind", None)
        if kind == "gauge":
            self.gauges.append(metric)
            return
        raise UnsupportedMetricError(f"Unsupported metric: {kind or type(metric).__name__}")

    def size(self) -> int:
        return len(self.gauges)

    def to_wire(self) -> Dict[str, List[Dict[str, Any]]]:
        return {"gauges": [gauge.to_dict() for gauge in self.gauges]}

    def serialize(self) -> bytes:
        """Encode the payload as JSON.

        Raises:
            ValueError: If a value is NaN or infinite.
            TypeError: If a field is not JSON serializable.
        """
        return json.dumps(self.to_wire(), allow_nan=False).encode("utf-8")
