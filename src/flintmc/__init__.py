"""FlintMC: tick-stepped world-state tests for a live game server."""
