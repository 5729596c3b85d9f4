"""
Evaluation Package
==================

Offline payout simulation: plays an agent through seeded rounds and
reports return to player and hit frequency.
"""

from fundora_blox.evaluation.run_rtp import evaluate_agent, load_agent

__all__ = ["evaluate_agent", "load_agent"]
