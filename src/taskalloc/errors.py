"""Error kinds raised at construction time."""

from __future__ import annotations


class ConfigError(ValueError):
    """Invalid configuration: rejected at construction, never clamped."""
