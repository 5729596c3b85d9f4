"""
Baseline Reaction Agent Package

A heuristic agent that stops the block when it is close to perfect
alignment, with a random reaction delay. Serves as a benchmark and example.
"""

from .agent import BloxAgent, create_agent

__all__ = ["BloxAgent", "create_agent"]
