"""Layering of the worker's config sources.

The system file, the user file and the environment overrides are each read
into a plain dict and folded together here before any validation happens.
"""

from __future__ import annotations

from typing import Any


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Overlay ``override`` onto a copy of ``base``.

    Sections present on both sides (``scheduler:``, ``supervisor:`` and so on)
    are combined key by key, so a user file can change ``interval_ms`` without
    restating ``lines_per_quantum``. A key left empty in YAML loads as ``None``
    and keeps the lower layer's value. Scalars and lists from ``override``
    replace whatever ``base`` had. Neither argument is modified.
    """
    merged = dict(base)
    for key, value in override.items():
        if value is None:
            continue
        below = merged.get(key)
        merged[key] = (
            deep_merge(below, value)
            if isinstance(below, dict) and isinstance(value, dict)
            else value
        )
    return merged


def merge_configs(*layers: dict[str, Any]) -> dict[str, Any]:
    """Fold config layers lowest-priority first; empty layers are skipped."""
    result: dict[str, Any] = {}
    for layer in layers:
        if layer:
            result = deep_merge(result, layer)
    return result
