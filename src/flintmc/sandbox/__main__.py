#!/usr/bin/env python3
"""Entry point for running the sandbox world server.

Run with: uv run python -m flintmc.sandbox
"""

import os

import uvicorn

from flintmc.sandbox.server import create_app

if __name__ == "__main__":
    port = int(os.environ.get("PORT", "8765"))
    uvicorn.run(create_app(), host="127.0.0.1", port=port)
