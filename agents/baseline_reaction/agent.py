"""
Baseline Reaction Agent - Stops the block near perfect alignment.

The moving block inherits the mask of the block below it, so it lines up
perfectly when its offset rounds to 0. This agent watches the offset and
stops once it is inside a tolerance window, after a random number of frames
of "reaction time".

This serves as:
1. A working example of how to read observations and return actions
2. A baseline for payout simulation with the evaluation harness

Strategy:
- Read position (offset of the moving block) and row
- On a new row, draw a reaction delay in frames
- While |position| is inside the tolerance window, count frames
- Stop once the delay has elapsed; reset the count if the block leaves
  the window first
"""

import numpy as np
from typing import Any, Dict, Optional


WAIT = 0
STOP = 1


class BloxAgent:
    """
    Reaction-time agent for the stacking game.
    """

    def __init__(
        self,
        tolerance: float = 0.35,
        max_delay_frames: int = 3,
        debug: bool = False
    ):
        """
        Initialize the agent.

        Args:
            tolerance: Stop window half-width in columns (perfect is < 0.5).
            max_delay_frames: Largest reaction delay drawn per block.
            debug: If True, print decisions to stdout.
        """
        self.tolerance = tolerance
        self.max_delay_frames = max_delay_frames
        self.debug = debug
        self._rng = np.random.default_rng()
        self._row = -1
        self._delay = 0
        self._waited = 0

    def reset(self, seed: Optional[int] = None) -> None:
        """
        Reset agent state for a new episode.

        Args:
            seed: Optional random seed for reproducibility.
        """
        if seed is not None:
            self._rng = np.random.default_rng(seed)
        self._row = -1
        self._delay = 0
        self._waited = 0

    def act(self, observation: Dict[str, Any]) -> int:
        """
        Decide whether to stop the block this frame.

        Args:
            observation: Dict of numpy arrays from the environment.

        Returns:
            1 to stop, 0 to wait.
        """
        if not observation["moving_mask"].any():
            return WAIT

        row = int(observation["row"])
        position = float(observation["position"])

        if row != self._row:
            self._row = row
            self._delay = int(self._rng.integers(0, self.max_delay_frames + 1))
            self._waited = 0

        if abs(position) > self.tolerance:
            self._waited = 0
            return WAIT

        if self._waited < self._delay:
            self._waited += 1
            return WAIT

        if self.debug:
            print(f"[Reaction Agent] Row={row}, Position={position:+.3f}, "
                  f"Speed={float(observation['speed']):.2f}, Delay={self._delay}")
        return STOP


# Convenience function to create agent (used by evaluation harness)
def create_agent(**kwargs) -> BloxAgent:
    """Factory function to create an agent instance."""
    return BloxAgent(**kwargs)
