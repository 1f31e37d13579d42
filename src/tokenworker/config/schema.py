"""Configuration schema dataclasses for tokenworker.

Defines the structure of configuration at all levels (system, user, env).
All fields have defaults so partial configs merge together.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class SupervisorStrategy(Enum):
    """How the liveness supervisor watches the parent process."""

    AUTO = "auto"  # Blocking wait where the platform supports it, else poll
    WAIT = "wait"
    POLL = "poll"


@dataclass
class SchedulerConfig:
    """Work scheduler configuration.

    Example config.yaml:
        scheduler:
          interval_ms: 5
          lines_per_quantum: 100
    """

    interval_ms: float = 5.0  # Timer period while armed
    lines_per_quantum: int = 100  # Max lines tokenized per tick

    @property
    def interval(self) -> float:
        """Timer period in seconds."""
        return self.interval_ms / 1000.0


@dataclass
class SupervisorConfig:
    """Liveness supervisor configuration."""

    strategy: SupervisorStrategy = SupervisorStrategy.AUTO
    poll_interval: float = 2.0  # Seconds between liveness probes


@dataclass
class TransportConfig:
    """Transport channel configuration."""

    max_message_size: int = 16 * 1024 * 1024
    drain_timeout: float = 1.0  # Seconds to flush writes before exiting


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str | None = None  # DEBUG, INFO, WARNING, ERROR
    verbose: int | None = None  # 0-4, overrides level
    file: str | None = None  # Log file path


@dataclass
class Config:
    """Root configuration object."""

    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    supervisor: SupervisorConfig = field(default_factory=SupervisorConfig)
    transport: TransportConfig = field(default_factory=TransportConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
