"""Running estimates of task phase durations."""

from __future__ import annotations

from .time_estimate import TimeEstimate

__all__ = ["TimeEstimate"]
