"""Configuration management for tokenworker.

Provides hierarchical YAML-based configuration with:
- System-level config (/etc/tokenworker/ or %PROGRAMDATA%)
- User-level config (~/.config/tokenworker/ or %APPDATA%)
- Environment variable overrides (highest priority)

Example usage:
    from tokenworker.config import load_config

    config = load_config()
    print(config.scheduler.interval_ms)
"""

from tokenworker.config.loader import (
    get_config,
    load_config,
    reset_config,
)
from tokenworker.config.paths import (
    get_config_paths,
    get_system_config_path,
    get_user_config_path,
)
from tokenworker.config.schema import (
    Config,
    LoggingConfig,
    SchedulerConfig,
    SupervisorConfig,
    SupervisorStrategy,
    TransportConfig,
)

__all__ = [
    # Main API
    "Config",
    "load_config",
    "get_config",
    "reset_config",
    # Schema types
    "LoggingConfig",
    "SchedulerConfig",
    "SupervisorConfig",
    "SupervisorStrategy",
    "TransportConfig",
    # Path utilities
    "get_config_paths",
    "get_system_config_path",
    "get_user_config_path",
]
