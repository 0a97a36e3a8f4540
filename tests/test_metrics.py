from pathlib import Path
import json
import sys

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from grotto.librato.metrics import GaugeMetric, Payload, UnsupportedMetricError


def test_gauge_omits_empty_optional_fields() -> None:
    gauge = GaugeMetric(name="cpu-idle", measure_time=1_700_000_000, value=0.75)

    assert gauge.kind == "gauge"
    assert gauge.to_dict() == {"name": "cpu-idle", "measure_time": 1_700_000_000, "value": 0.75}


def test_gauge_keeps_descriptive_fields() -> None:
    gauge = GaugeMetric(
        name="cpu-idle",
        measure_time=1,
        value=0.1,
        source="web-1",
        description="Idle share",
        display_name="CPU idle",
    )

    assert gauge.to_dict()["description"] == "Idle share"
    assert gauge.to_dict()["display_name"] == "CPU idle"
    assert gauge.to_dict()["source"] == "web-1"


def test_payload_preserves_insertion_order() -> None:
    payload = Payload()
    for field in ("user", "nice", "system", "idle", "usage"):
        payload.add(GaugeMetric(name=f"cpu-{field}", measure_time=1, value=0.0))

    wire = json.loads(payload.serialize().decode("utf-8"))

    assert payload.size() == 5
    assert [g["name"] for g in wire["gauges"]] == ["cpu-user", "cpu-nice", "cpu-system", "cpu-idle", "cpu-usage"]


def test_empty_payload_serializes_to_empty_gauge_list() -> None:
    assert json.loads(Payload().serialize()) == {"gauges": []}


def test_payload_rejects_unknown_metric_kind() -> None:
    class Annotation:
        kind = "annotation"

    with pytest.raises(UnsupportedMetricError):
        Payload().add(Annotation())  # type: ignore[arg-type]


def test_serialize_rejects_infinite_values() -> None:
    payload = Payload()
    payload.add(GaugeMetric(name="cpu-user", measure_time=1, value=float("inf")))

    with pytest.raises(ValueError):
        payload.serialize()
