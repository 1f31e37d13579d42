"""Configuration file loading and caching.

Handles:
- YAML file parsing
- Environment variable overrides
- Config caching with reset support
- Conversion from dict to typed Config dataclass
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from tokenworker.config.merge import merge_configs
from tokenworker.config.paths import get_config_paths
from tokenworker.config.schema import (
    Config,
    LoggingConfig,
    SchedulerConfig,
    SupervisorConfig,
    SupervisorStrategy,
    TransportConfig,
)

# Module logger (may not be configured yet at import time)
_log = logging.getLogger("tokenworker.config")

LOG_ENV_VAR = "TOKENWORKER_LOG"
TICK_ENV_VAR = "TOKENWORKER_TICK_MS"

_cached_config: Config | None = None


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file, returning empty dict if not found or invalid.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed YAML as dict, or empty dict on error.
    """
    if not path.exists():
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
            return data if isinstance(data, dict) else {}
    except yaml.YAMLError as e:
        _log.warning("Invalid YAML in %s: %s", path, e)
        return {}
    except PermissionError:
        _log.debug("Permission denied reading %s", path)
        return {}
    except OSError as e:
        _log.warning("Error reading %s: %s", path, e)
        return {}


def env_overrides() -> dict[str, Any]:
    """Build config dict from environment variables.

    Returns:
        Config dict with values from environment.
    """
    overrides: dict[str, Any] = {}

    log_path = os.environ.get(LOG_ENV_VAR)
    if log_path:
        overrides.setdefault("logging", {})["file"] = log_path

    tick_ms = os.environ.get(TICK_ENV_VAR)
    if tick_ms:
        try:
            overrides.setdefault("scheduler", {})["interval_ms"] = float(tick_ms)
        except ValueError:
            _log.warning("Ignoring invalid %s=%r", TICK_ENV_VAR, tick_ms)

    return overrides


def _number(value: Any, default: float, *, minimum: float = 0.0) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return value if value > minimum else default


def _strategy(value: Any) -> SupervisorStrategy:
    if value is None:
        return SupervisorStrategy.AUTO
    try:
        return SupervisorStrategy(str(value).lower())
    except ValueError:
        _log.warning("Unknown supervisor strategy %r, using auto", value)
        return SupervisorStrategy.AUTO


def dict_to_config(data: dict[str, Any]) -> Config:
    """Convert merged dict to typed Config dataclass.

    Out-of-range numbers fall back to the schema defaults.

    Args:
        data: Merged configuration dictionary.

    Returns:
        Typed Config object.
    """
    sched_data = data.get("scheduler") or {}
    sched_defaults = SchedulerConfig()
    scheduler = SchedulerConfig(
        interval_ms=_number(sched_data.get("interval_ms"), sched_defaults.interval_ms),
        lines_per_quantum=int(
            _number(sched_data.get("lines_per_quantum"), sched_defaults.lines_per_quantum)
        ),
    )

    sup_data = data.get("supervisor") or {}
    supervisor = SupervisorConfig(
        strategy=_strategy(sup_data.get("strategy")),
        poll_interval=_number(
            sup_data.get("poll_interval"), SupervisorConfig().poll_interval
        ),
    )

    transport_data = data.get("transport") or {}
    transport_defaults = TransportConfig()
    transport = TransportConfig(
        max_message_size=int(
            _number(transport_data.get("max_message_size"), transport_defaults.max_message_size)
        ),
        drain_timeout=_number(
            transport_data.get("drain_timeout"), transport_defaults.drain_timeout
        ),
    )

    log_data = data.get("logging") or {}
    logging_config = LoggingConfig(
        level=log_data.get("level"),
        verbose=log_data.get("verbose"),
        file=log_data.get("file"),
    )

    return Config(
        scheduler=scheduler,
        supervisor=supervisor,
        transport=transport,
        logging=logging_config,
    )


def load_config(reload: bool = False) -> Config:
    """Load and merge config from all sources.

    Priority order (highest to lowest):
    1. Environment variables
    2. User config (~/.config/tokenworker/config.yaml or %APPDATA%)
    3. System config (/etc/tokenworker/ or %PROGRAMDATA%)

    Args:
        reload: Force reload even if cached.

    Returns:
        Merged Config object.
    """
    global _cached_config

    if _cached_config is not None and not reload:
        return _cached_config

    configs: list[dict[str, Any]] = []

    for path in get_config_paths():
        config_data = load_yaml_file(path)
        if config_data:
            _log.debug("Loaded config from %s", path)
            configs.append(config_data)

    env_config = env_overrides()
    if env_config:
        configs.append(env_config)

    _cached_config = dict_to_config(merge_configs(*configs))
    return _cached_config


def get_config() -> Config:
    """Get the cached global config, loading it on first use."""
    if _cached_config is None:
        return load_config()
    return _cached_config


def reset_config() -> None:
    """Reset cached config.

    Useful for testing or forcing a reload.
    """
    global _cached_config
    _cached_config = None
