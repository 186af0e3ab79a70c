"""Stochastic decision functions fed by running time estimates."""

from __future__ import annotations

from .abort import NO_EST_ABORT_PROB, AbortProbability
from .base import ProbabilityExpression
from .partition import NO_EST_PARTITION_PROB, PartitionProbability

__all__ = [
    "NO_EST_ABORT_PROB",
    "NO_EST_PARTITION_PROB",
    "AbortProbability",
    "PartitionProbability",
    "ProbabilityExpression",
]
