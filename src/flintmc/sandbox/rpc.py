"""Frame helpers for the sandbox websocket protocol."""

from typing import Any, Dict

from fastapi import HTTPException


def rpc_success(frame_id: str, endpoint: str, result: Dict[str, Any]) -> Dict[str, Any]:
    """Format a successful RPC response.

    Args:
        frame_id: Identifier echoed back to the caller
        endpoint: The endpoint that was called
        result: The result data to return

    Returns:
        Formatted RPC success response
    """
    return {
        "frame_type": "rpc",
        "id": frame_id,
        "endpoint": endpoint,
        "ok": True,
        "result": result,
    }


def rpc_error(frame_id: str, endpoint: str, exc: HTTPException | Exception) -> Dict[str, Any]:
    """Format an RPC error response.

    ``HTTPException`` keeps its status code; anything else is reported as 500.
    """
    status = exc.status_code if isinstance(exc, HTTPException) else 500
    detail = exc.detail if isinstance(exc, HTTPException) else str(exc)
    return {
        "frame_type": "rpc",
        "id": frame_id,
        "endpoint": endpoint,
        "ok": False,
        "error": {"status": status, "detail": detail},
    }


def event_frame(event: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    return {"frame_type": "event", "event": event, "payload": payload}
