"""Shared plumbing for probability functions."""

from __future__ import annotations

import math

# Bounds that keep logistic results strictly inside (0, 1).
_BELOW_ONE = math.nextafter(1.0, 0.0)
_ABOVE_ZERO = math.nextafter(0.0, 1.0)


class ProbabilityExpression:
    """A stateless function object that remembers its most recent result."""

    def __init__(self) -> None:
        self._last_result = 0.0

    @property
    def last_result(self) -> float:
        return self._last_result

    def _set_result(self, value: float) -> float:
        self._last_result = value
        return value


def logistic(omega: float) -> float:
    """``1 / (1 + exp(omega))``, saturated to the open interval (0, 1).

    A large ``omega`` drives the curve towards 0; once ``exp`` overflows the
    smallest positive float is returned so the curve stays monotone.
    """
    try:
        value = 1.0 / (1.0 + math.exp(omega))
    except OverflowError:
        return _ABOVE_ZERO
    return min(max(value, _ABOVE_ZERO), _BELOW_ONE)
