"""CLI entrypoint for the grotto agent."""
from __future__ import annotations

import argparse
import signal
import socket
import sys
from types import FrameType
from typing import Optional, Sequence

from .config import DEFAULT_CONFIG_PATH, load_config
from .errors import ConfigError
from .logging_config import configure_logging
from .orchestration.agent_kernel import AgentKernel


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Grotto host telemetry agent")
    parser.add_argument(
        "--conf",
        type=str,
        default=DEFAULT_CONFIG_PATH,
        help="Path to the config file",
    )
    args = parser.parse_args(argv)

    try:
        config = load_config(args.conf)
    except ConfigError as exc:
        print(f"Could not read config file: {exc}", file=sys.stderr)
        return 1

    try:
        hostname = socket.gethostname()
    except OSError as exc:
        print(f"Could not read hostname: {exc}", file=sys.stderr)
        return 1
    if not hostname:
        print("Could not read hostname: empty hostname", file=sys.stderr)
        return 1

    configure_logging(config)
    agent = AgentKernel(config, hostname)

    def _handle_signal(signum: int, frame: Optional[FrameType]) -> None:
        agent.stop()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    agent.run_forever()
    return 0


if __name__ == "__main__":
    sys.exit(main())
