from pathlib import Path
import sys
import threading
import time

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from grotto.config import AgentConfig, CpuConfig, LibratoConfig
from grotto.librato.metrics import Payload
from grotto.orchestration import agent_kernel
from grotto.orchestration.agent_kernel import AgentKernel


class RecordingSender:
    def __init__(self) -> None:
        self.payloads: list[Payload] = []
        self._lock = threading.Lock()

    def send(self, payload: Payload) -> None:
        with self._lock:
            self.payloads.append(payload)


def _config(stat_path: Path) -> AgentConfig:
    return AgentConfig(
        librato=LibratoConfig(email="ops@example.com", token="secret", url="http://127.0.0.1/metrics"),
        cpu=CpuConfig(stat_path=stat_path),
    )


def test_sampled_metrics_reach_the_sender_on_shutdown(tmp_path) -> None:
    stat = tmp_path / "stat"
    stat.write_text("cpu 100 10 50 300\ncpu0 50 5 25 150\n", encoding="ascii")
    sender = RecordingSender()
    agent = AgentKernel(_config(stat), "web-1", sender=sender)

    agent.sampler.sample_once()
    stat.write_text("cpu 200 20 80 500\ncpu0 100 10 40 250\n", encoding="ascii")
    agent.sampler.sample_once()
    agent.shutdown()

    assert len(sender.payloads) == 1
    names = [gauge.name for gauge in sender.payloads[0].gauges]
    assert names[:5] == ["cpu-user", "cpu-nice", "cpu-system", "cpu-idle", "cpu-usage"]
    assert names[5:] == ["cpu0-user", "cpu0-nice", "cpu0-system", "cpu0-idle", "cpu0-usage"]
    assert {gauge.source for gauge in sender.payloads[0].gauges} == {"web-1"}

    stats = agent.context.stats.as_dict()
    assert stats["metrics_emitted"] == 10
    assert stats["deliveries_succeeded"] == 1


def test_start_and_shutdown_stop_all_tasks(tmp_path) -> None:
    stat = tmp_path / "stat"
    stat.write_text("cpu 1 1 1 1\n", encoding="ascii")
    agent = AgentKernel(_config(stat), "web-1", sender=RecordingSender())

    agent.start()
    time.sleep(0.2)
    started = time.monotonic()
    agent.shutdown()

    assert agent.stopping
    assert time.monotonic() - started < 3
    assert not any(thread.is_alive() for thread in agent._threads)
    assert agent.context.stats.cycles >= 1


def test_run_forever_returns_after_stop(tmp_path) -> None:
    stat = tmp_path / "stat"
    stat.write_text("cpu 1 1 1 1\n", encoding="ascii")
    agent = AgentKernel(_config(stat), "web-1", sender=RecordingSender())

    timer = threading.Timer(0.3, agent.stop)
    timer.start()
    agent.run_forever()
    timer.join()

    assert agent.stopping
    agent.shutdown()


def test_errors_are_forwarded_to_observer(tmp_path) -> None:
    errors: list = []
    agent = AgentKernel(_config(tmp_path / "missing"), "web-1", sender=RecordingSender(), on_error=errors.append)

    agent.sampler.sample_once()
    agent.shutdown()

    assert len(errors) == 1
    assert agent.context.stats.failed_cycles == 1


def test_shutdown_skips_flush_while_batcher_is_still_running(tmp_path, monkeypatch) -> None:
    stat = tmp_path / "stat"
    stat.write_text("cpu 1 1 1 1\n", encoding="ascii")
    agent = AgentKernel(_config(stat), "web-1", sender=RecordingSender())
    release = threading.Event()
    closed: list = []

    monkeypatch.setattr(agent_kernel, "_JOIN_TIMEOUT_SECONDS", 0.1)
    monkeypatch.setattr(agent.batcher, "run", lambda stop_event: release.wait(timeout=5))
    monkeypatch.setattr(agent.batcher, "close", lambda: closed.append(True))

    agent.start()
    agent.shutdown()
    release.set()

    assert closed == []
