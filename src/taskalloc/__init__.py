"""Stochastic task allocation and hierarchical execution for autonomous agents."""

__version__ = "0.1.0"
