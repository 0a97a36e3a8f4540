"""Wiring of the sampling and delivery tasks."""
from .agent_kernel import AgentKernel

__all__ = ["AgentKernel"]
