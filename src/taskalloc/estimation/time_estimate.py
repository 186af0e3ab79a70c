"""Exponentially weighted running estimate of a task phase duration."""

from __future__ import annotations

import math

from taskalloc.errors import ConfigError


class TimeEstimate:
    """EWMA over completed phase durations.

    The first sample seeds the estimate; later samples are blended in as
    ``alpha * sample + (1 - alpha) * previous``. With ``alpha == 1`` the
    estimate tracks the latest sample exactly.
    """

    def __init__(self, alpha: float) -> None:
        if not math.isfinite(alpha) or not 0.0 < alpha <= 1.0:
            raise ConfigError(f"alpha must be in (0.0, 1.0], got {alpha}")
        self._alpha = alpha
        self._last_result = 0.0
        self._initialized = False

    @property
    def alpha(self) -> float:
        return self._alpha

    @property
    def initialized(self) -> bool:
        """True once at least one sample has been folded in."""
        return self._initialized

    def last_result(self) -> float:
        return self._last_result

    def update(self, sample: float) -> float:
        """Fold ``sample`` into the estimate and return the new value."""
        if not math.isfinite(sample):
            raise ValueError(f"sample must be finite, got {sample}")
        if self._initialized:
            self._last_result = self._alpha * sample + (1.0 - self._alpha) * self._last_result
        else:
            self._last_result = sample
            self._initialized = True
        return self._last_result

    def reset(self) -> None:
        """Forget all samples."""
        self._last_result = 0.0
        self._initialized = False

    def copy(self) -> TimeEstimate:
        other = TimeEstimate(self._alpha)
        other._last_result = self._last_result
        other._initialized = self._initialized
        return other

    def __repr__(self) -> str:
        return (
            f"TimeEstimate(alpha={self._alpha}, last_result={self._last_result}, "
            f"initialized={self._initialized})"
        )
