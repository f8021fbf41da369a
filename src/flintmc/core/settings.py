"""Runtime settings for the runner.

Settle delays are fixed real-time pauses between issuing a command and
relying on its effect. They are tuned by hand for a local server and can be
overridden through ``FLINT_*`` environment variables (milliseconds).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from typing import Mapping, Optional

DEFAULT_SERVER = "ws://localhost:8765/ws"
DEFAULT_USERNAME = "FlintMC_TestBot"


@dataclass(frozen=True)
class Settings:
    server: str = DEFAULT_SERVER
    username: str = DEFAULT_USERNAME

    # Settle delays (seconds)
    cleanup_settle: float = 0.2
    freeze_settle: float = 0.1
    step_settle: float = 0.05
    assert_settle: float = 0.1
    place_each_pacing: float = 0.01

    # Connection windows: attempts x interval each
    handle_attempts: int = 50
    ready_attempts: int = 100
    poll_interval: float = 0.1
    post_connect_sync: float = 0.5

    # Blocks left empty between neighbouring tests
    layout_gap: int = 4

    @property
    def handle_timeout(self) -> float:
        return self.handle_attempts * self.poll_interval

    @property
    def ready_timeout(self) -> float:
        return self.ready_attempts * self.poll_interval

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from ``FLINT_*`` variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        overrides: dict[str, object] = {}

        for spec in fields(cls):
            if spec.type == "float":
                raw = env.get(f"FLINT_{spec.name.upper()}_MS")
                if raw is not None:
                    overrides[spec.name] = _parse_number(raw, spec.name) / 1000.0
            elif spec.type == "int":
                raw = env.get(f"FLINT_{spec.name.upper()}")
                if raw is not None:
                    overrides[spec.name] = int(_parse_number(raw, spec.name))
            else:
                raw = env.get(f"FLINT_{spec.name.upper()}")
                if raw:
                    overrides[spec.name] = raw

        return cls(**overrides)

    def with_overrides(self, **changes: object) -> "Settings":
        """Return a copy with every non-None keyword applied."""
        applied = {key: value for key, value in changes.items() if value is not None}
        return replace(self, **applied)


def _parse_number(raw: str, name: str) -> float:
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid value for {name}: {raw!r}") from exc
    if value < 0:
        raise ValueError(f"{name} must be nonnegative, got {raw!r}")
    return value


__all__ = ["DEFAULT_SERVER", "DEFAULT_USERNAME", "Settings"]
