"""Agents that connect the runner to a live world."""

from flintmc.agent.base import AgentSession, probe_state_property
from flintmc.agent.client import AsyncAgentClient

__all__ = ["AgentSession", "AsyncAgentClient", "probe_state_property"]
