"""Websocket agent that issues commands and reads world state for the runner."""

from __future__ import annotations

import asyncio
import json
import uuid
from typing import Any, Dict, Optional

import websockets
from loguru import logger
from websockets.exceptions import ConnectionClosed, WebSocketException

from flintmc.agent.base import probe_state_property
from flintmc.core.commands import with_prefix
from flintmc.core.errors import CommandError, SetupError
from flintmc.core.settings import DEFAULT_USERNAME, Settings
from flintmc.core.test_spec import Position

READY_EVENT = "session.ready"


def websocket_url(address: str) -> str:
    """Normalize ``host:port``, ``http(s)://`` or ``ws(s)://`` into a ws URL."""

    address = address.strip().rstrip("/")
    if address.startswith(("ws://", "wss://")):
        return address
    if address.startswith(("http://", "https://")):
        return address.replace("http://", "ws://", 1).replace("https://", "wss://", 1) + "/ws"
    return f"ws://{address}/ws"


class AsyncAgentClient:
    """Agent session over a JSON websocket.

    ``connect`` starts the socket loop in a background task. That task
    resolves two one-shot gates: one when the socket is open, one when the
    server reports the session ready. The caller waits on each gate with its
    own deadline and never polls shared flags.
    """

    def __init__(
        self,
        username: str = DEFAULT_USERNAME,
        *,
        settings: Optional[Settings] = None,
    ) -> None:
        if not username:
            raise ValueError("AsyncAgentClient requires a non-empty username")
        self.username = username
        self.settings = settings or Settings()
        self.address: Optional[str] = None
        self._ws = None
        self._client_task: Optional[asyncio.Task] = None
        self._handle_ready: Optional[asyncio.Future] = None
        self._session_ready: Optional[asyncio.Future] = None
        self._pending: Dict[str, asyncio.Future] = {}
        self._login_id: Optional[str] = None

    @property
    def connected(self) -> bool:
        return (
            self._ws is not None
            and self._session_ready is not None
            and self._session_ready.done()
            and not self._session_ready.cancelled()
            and self._session_ready.exception() is None
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def connect(self, address: str) -> None:
        """Open the session and wait until the server reports it ready.

        Raises:
            SetupError: The socket was not opened within the handle window,
                or the session was not ready within the readiness window.
        """
        if self._client_task is not None:
            raise SetupError("agent is already connected")

        url = websocket_url(address)
        self.address = url
        loop = asyncio.get_running_loop()
        self._handle_ready = loop.create_future()
        self._session_ready = loop.create_future()

        logger.info("CONNECT server={} username={}", url, self.username)
        self._client_task = asyncio.create_task(self._run_client(url))

        await self._await_gate(
            self._handle_ready,
            self.settings.handle_timeout,
            "Failed to initialize agent connection",
        )
        logger.info("Waiting for agent session to become ready...")
        await self._await_gate(
            self._session_ready,
            self.settings.ready_timeout,
            "Agent failed to enter ready state within timeout",
        )
        logger.info("CONNECTED server={}", url)

        # World data keeps streaming in right after login.
        await asyncio.sleep(self.settings.post_connect_sync)

    async def _await_gate(self, gate: asyncio.Future, timeout: float, message: str) -> None:
        try:
            await asyncio.wait_for(asyncio.shield(gate), timeout=timeout)
        except asyncio.TimeoutError:
            await self._abort_startup()
            raise SetupError(f"{message} ({timeout:.1f}s)") from None
        except SetupError:
            await self._abort_startup()
            raise
        except (OSError, WebSocketException) as exc:
            await self._abort_startup()
            raise SetupError(f"{message}: {exc}") from exc

    async def _abort_startup(self) -> None:
        for gate in (self._handle_ready, self._session_ready):
            if gate is None:
                continue
            if not gate.done():
                gate.cancel()
            elif not gate.cancelled():
                gate.exception()  # mark retrieved
        await self.close()

    async def _run_client(self, url: str) -> None:
        failure: Optional[BaseException] = None
        try:
            async with websockets.connect(url) as ws:
                self._ws = ws
                self._resolve(self._handle_ready)
                logger.info("Agent initialized")
                await self._send_login(ws)
                async for raw in ws:
                    self._handle_message(raw)
        except asyncio.CancelledError:
            raise
        except (OSError, WebSocketException) as exc:
            logger.error("Agent connection error: {}", exc)
            failure = exc
        finally:
            self._ws = None
            reason = failure or ConnectionError("connection closed")
            for gate in (self._handle_ready, self._session_ready):
                if gate is not None and not gate.done():
                    gate.set_exception(reason)
            self._fail_pending(str(reason))

    async def _send_login(self, ws) -> None:
        self._login_id = str(uuid.uuid4())
        frame = {
            "id": self._login_id,
            "type": "rpc",
            "endpoint": "login",
            "payload": {"username": self.username},
        }
        await ws.send(json.dumps(frame))

    def _handle_message(self, raw: Any) -> None:
        try:
            msg = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Ignoring malformed frame: {!r}", raw)
            return
        if not isinstance(msg, dict):
            logger.warning("Ignoring malformed frame: {!r}", raw)
            return

        frame_type = msg.get("frame_type")
        if frame_type == "event":
            event_name = msg.get("event")
            if event_name == READY_EVENT:
                logger.info("Agent session ready")
                self._resolve(self._session_ready)
            else:
                logger.debug("EVENT {} {}", event_name, msg.get("payload"))
            return

        req_id = msg.get("id")
        if req_id is not None and req_id == self._login_id:
            if not msg.get("ok") and self._session_ready and not self._session_ready.done():
                detail = (msg.get("error") or {}).get("detail", "login rejected")
                self._session_ready.set_exception(SetupError(f"login failed: {detail}"))
            return

        if not isinstance(req_id, str):
            logger.warning("Ignoring frame without a request id: {!r}", raw)
            return
        fut = self._pending.pop(req_id, None)
        if fut and not fut.done():
            fut.set_result(msg)

    @staticmethod
    def _resolve(gate: Optional[asyncio.Future]) -> None:
        if gate is not None and not gate.done():
            gate.set_result(True)

    def _fail_pending(self, detail: str) -> None:
        pending, self._pending = self._pending, {}
        for fut in pending.values():
            if not fut.done():
                fut.set_exception(CommandError("request", detail))

    async def _request(self, endpoint: str, payload: Dict[str, Any], *, label: str) -> Dict[str, Any]:
        ws = self._ws
        if ws is None:
            raise CommandError(label, "agent not connected")

        req_id = str(uuid.uuid4())
        fut: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending[req_id] = fut
        frame = {"id": req_id, "type": "rpc", "endpoint": endpoint, "payload": payload}
        try:
            await ws.send(json.dumps(frame))
        except (ConnectionClosed, OSError) as exc:
            self._pending.pop(req_id, None)
            raise CommandError(label, f"send failed: {exc}") from exc

        try:
            msg = await fut
        except CommandError as exc:
            raise CommandError(label, exc.detail) from exc

        if not msg.get("ok"):
            err = msg.get("error") or {}
            raise CommandError(
                label,
                str(err.get("detail", "Unknown error")),
                int(err.get("status", 500)),
            )
        return msg.get("result") or {}

    async def send_command(self, command: str) -> None:
        text = with_prefix(command)
        logger.debug("Sending command: {}", text)
        await self._request("command", {"command": text}, label=text)

    async def get_block(self, pos: Position) -> Optional[str]:
        result = await self._request(
            "block.get", {"pos": list(pos)}, label=f"block.get {list(pos)}"
        )
        state = result.get("state")
        return str(state) if state is not None else None

    async def get_block_state_property(
        self, pos: Position, property_name: str
    ) -> Optional[str]:
        return probe_state_property(await self.get_block(pos), property_name)

    async def close(self) -> None:
        task, self._client_task = self._client_task, None
        ws, self._ws = self._ws, None
        if ws is not None:
            try:
                await ws.close()
            except (ConnectionClosed, OSError):
                pass
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as exc:
                logger.error("Agent reader task failed: {!r}", exc)
        self._fail_pending("connection closed")


__all__ = ["AsyncAgentClient", "READY_EVENT", "websocket_url"]
