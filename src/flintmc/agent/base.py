"""Boundary between the runner and the agent that talks to the backend."""

from __future__ import annotations

from typing import Optional, Protocol

from flintmc.core.test_spec import Position


class AgentSession(Protocol):
    """Protocol implemented by agents the scheduler can drive.

    Every method either succeeds or raises ``CommandError``; ``connect``
    raises ``SetupError`` instead. Positions are world coordinates.
    """

    async def connect(self, address: str) -> None:
        ...

    async def send_command(self, command: str) -> None:
        ...

    async def get_block(self, pos: Position) -> Optional[str]:
        ...

    async def get_block_state_property(
        self, pos: Position, property_name: str
    ) -> Optional[str]:
        ...

    async def close(self) -> None:
        ...


def probe_state_property(state: Optional[str], property_name: str) -> Optional[str]:
    """Coarse property lookup over a debug-formatted block state.

    Returns the whole state string when it mentions ``"<property>: "`` and
    None otherwise. Callers compare expected values by substring.
    """
    if state is None:
        return None
    if f"{property_name}: " in state:
        return state
    return None


__all__ = ["AgentSession", "probe_state_property"]
