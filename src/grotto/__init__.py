"""Host telemetry agent forwarding per-core CPU usage to Librato."""

__all__ = ["__version__"]

__version__ = "0.1.0"
