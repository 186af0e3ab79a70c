"""Fire-and-forget diagnostic reporting."""

from __future__ import annotations

import logging


class Reporter:
    """Thin ``report(level, message)`` channel over a logger.

    Allocation decisions never depend on whether a report succeeded.
    """

    def __init__(self, logger: logging.Logger | None = None, prefix: str = "") -> None:
        self.logger = logger or logging.getLogger("taskalloc")
        self.prefix = prefix

    def report(self, level: int, message: str) -> None:
        try:
            if self.prefix:
                message = f"[{self.prefix}] {message}"
            self.logger.log(level, message)
        except Exception:
            pass  # Never block allocation on logging failure

    def child(self, prefix: str) -> Reporter:
        """Reporter sharing this logger with a nested prefix."""
        return Reporter(self.logger, f"{self.prefix}.{prefix}" if self.prefix else prefix)
