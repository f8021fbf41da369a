"""Shared fixtures for FlintMC tests."""

from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional

import pytest
import pytest_asyncio
from websockets.asyncio.server import serve

from flintmc.agent.base import probe_state_property
from flintmc.core.commands import with_prefix
from flintmc.core.errors import CommandError
from flintmc.core.settings import Settings
from flintmc.core.test_spec import Position
from flintmc.sandbox.server import SandboxSession
from flintmc.sandbox.world import SandboxWorld

TESTS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = TESTS_DIR.parents[2]
EXAMPLE_TESTS_DIR = PROJECT_ROOT / "flint-tests"


class RecordingAgent:
    """Agent stand-in that records traffic and applies it to a sandbox world."""

    def __init__(
        self,
        world: Optional[SandboxWorld] = None,
        *,
        fail_on: Optional[str] = None,
    ) -> None:
        self.world = world if world is not None else SandboxWorld()
        self.fail_on = fail_on
        self.commands: List[str] = []
        self.queries: List[Position] = []
        self.connected_to: Optional[str] = None
        self.closed = False

    async def connect(self, address: str) -> None:
        self.connected_to = address

    async def send_command(self, command: str) -> None:
        text = with_prefix(command)
        self.commands.append(text)
        if self.fail_on and self.fail_on in text:
            raise CommandError(text, "connection lost")
        self.world.execute(text)

    async def get_block(self, pos: Position) -> Optional[str]:
        self.queries.append(pos)
        return self.world.block_state(pos)

    async def get_block_state_property(self, pos: Position, property_name: str) -> Optional[str]:
        return probe_state_property(await self.get_block(pos), property_name)

    async def close(self) -> None:
        self.closed = True

    def count(self, command: str) -> int:
        return sum(1 for sent in self.commands if sent == with_prefix(command))


@pytest.fixture
def fast_settings() -> Settings:
    """Settings with every settle delay removed."""
    return Settings(
        cleanup_settle=0.0,
        freeze_settle=0.0,
        step_settle=0.0,
        assert_settle=0.0,
        place_each_pacing=0.0,
        handle_attempts=20,
        ready_attempts=20,
        poll_interval=0.05,
        post_connect_sync=0.0,
    )


@pytest.fixture
def world() -> SandboxWorld:
    return SandboxWorld()


@pytest.fixture
def agent(world) -> RecordingAgent:
    return RecordingAgent(world)


@pytest_asyncio.fixture
async def sandbox_server(world):
    """Serve ``world`` over a real websocket on an ephemeral port."""

    async def handler(ws) -> None:
        session = SandboxSession(world)
        async for raw in ws:
            for reply in session.handle_text(raw):
                await ws.send(json.dumps(reply))

    async with serve(handler, "127.0.0.1", 0) as server:
        port = next(iter(server.sockets)).getsockname()[1]
        yield f"ws://127.0.0.1:{port}/ws"
