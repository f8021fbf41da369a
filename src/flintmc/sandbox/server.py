"""Websocket server exposing a ``SandboxWorld`` to agents.

Frames follow the runner's agent protocol: clients send
``{"id", "type": "rpc", "endpoint", "payload"}`` and receive RPC responses
plus ``{"frame_type": "event", ...}`` notifications. A session must call
``login`` before issuing commands; the server then emits ``session.ready``.
"""

from __future__ import annotations

import json
import uuid
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from loguru import logger

from flintmc.agent.client import READY_EVENT
from flintmc.sandbox.rpc import event_frame, rpc_error, rpc_success
from flintmc.sandbox.world import SandboxCommandError, SandboxWorld

VERSION = "0.1.0"


class SandboxSession:
    """Protocol state for one connected agent."""

    def __init__(self, world: SandboxWorld) -> None:
        self.world = world
        self.session_id = str(uuid.uuid4())
        self.username: Optional[str] = None

    def handle_text(self, raw: str) -> List[Dict[str, Any]]:
        """Handle one raw frame and return the frames to send back."""
        try:
            frame = json.loads(raw)
        except json.JSONDecodeError:
            return [
                rpc_error(
                    str(uuid.uuid4()),
                    "unknown",
                    HTTPException(status_code=400, detail="Invalid JSON"),
                )
            ]
        if not isinstance(frame, dict):
            return [
                rpc_error(
                    str(uuid.uuid4()),
                    "unknown",
                    HTTPException(status_code=400, detail="Frame must be an object"),
                )
            ]
        return self.handle_frame(frame)

    def handle_frame(self, frame: Dict[str, Any]) -> List[Dict[str, Any]]:
        frame_id = str(frame.get("id") or uuid.uuid4())
        endpoint = frame.get("endpoint") or "unknown"

        if frame.get("type", "rpc") != "rpc":
            return [
                rpc_error(
                    frame_id,
                    endpoint,
                    HTTPException(status_code=400, detail=f"Unknown frame type: {frame.get('type')}"),
                )
            ]

        payload = frame.get("payload") or {}
        if not isinstance(payload, dict):
            return [
                rpc_error(
                    frame_id,
                    endpoint,
                    HTTPException(status_code=400, detail="Invalid payload type; expected object"),
                )
            ]

        try:
            if endpoint == "login":
                return self._login(frame_id, payload)
            if self.username is None:
                raise HTTPException(status_code=401, detail="Login required")
            if endpoint == "command":
                result = self._command(payload)
            elif endpoint == "block.get":
                result = self._block_get(payload)
            else:
                raise HTTPException(status_code=404, detail=f"Unknown endpoint: {endpoint}")
        except HTTPException as exc:
            return [rpc_error(frame_id, endpoint, exc)]
        return [rpc_success(frame_id, endpoint, result)]

    def _login(self, frame_id: str, payload: Dict[str, Any]) -> List[Dict[str, Any]]:
        username = payload.get("username")
        if not isinstance(username, str) or not username:
            raise HTTPException(status_code=400, detail="Missing username")
        self.username = username
        logger.info("LOGIN session={} username={}", self.session_id, username)
        return [
            rpc_success(frame_id, "login", {"username": username}),
            event_frame(READY_EVENT, {"username": username, "tick": self.world.tick}),
        ]

    def _command(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        command = payload.get("command")
        if not isinstance(command, str) or not command.strip():
            raise HTTPException(status_code=400, detail="Missing command")
        try:
            result = self.world.execute(command)
        except SandboxCommandError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        logger.debug("COMMAND username={} {}", self.username, command)
        return result

    def _block_get(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        pos = payload.get("pos")
        if (
            not isinstance(pos, list)
            or len(pos) != 3
            or not all(isinstance(v, int) and not isinstance(v, bool) for v in pos)
        ):
            raise HTTPException(status_code=400, detail="pos must be three integers")
        return {"pos": pos, "state": self.world.block_state((pos[0], pos[1], pos[2]))}


def create_app(world: Optional[SandboxWorld] = None) -> FastAPI:
    """Build the sandbox app around a shared world."""
    app = FastAPI(title="FlintMC Sandbox", version=VERSION)
    app.state.world = world if world is not None else SandboxWorld()

    @app.get("/")
    async def root() -> Dict[str, Any]:
        shared: SandboxWorld = app.state.world
        return {
            "name": "FlintMC Sandbox",
            "version": VERSION,
            "status": "running",
            "tick": shared.tick,
            "frozen": shared.frozen,
            "blocks": len(shared),
        }

    @app.get("/health")
    async def health() -> Dict[str, str]:
        return {"status": "ok"}

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket) -> None:
        await websocket.accept()
        session = SandboxSession(app.state.world)
        logger.info("WebSocket connected id={}", session.session_id)
        try:
            while True:
                raw = await websocket.receive_text()
                for reply in session.handle_text(raw):
                    await websocket.send_json(reply)
        except WebSocketDisconnect:
            logger.info("WebSocket disconnected id={}", session.session_id)

    return app


__all__ = ["SandboxSession", "create_app"]
