"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass

ORDERING_SYNC = "sync"
ORDERING_DETACHED = "detached"


@dataclass(frozen=True)
class DispatchConfig:
    """Fan-out settings for the dispatch engine.

    - enabled: write notifications at all (commands keep working when off)
    - ordering: "sync" blocks the message pipeline until the fan-out is done,
      "detached" runs it as a background task
    """

    enabled: bool = True
    ordering: str = ORDERING_SYNC

    def __post_init__(self) -> None:
        if self.ordering not in {ORDERING_SYNC, ORDERING_DETACHED}:
            raise ValueError(f"Unsupported dispatch ordering: {self.ordering}")
