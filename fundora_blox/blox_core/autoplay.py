"""
Autoplay
========

Demo-mode auto-stop. On every demo spawn a target offset near perfect
alignment is drawn and the stop is timed for when the block would get
there, plus a human-looking reaction delay. The timer lives in the shared
TimerRegistry under TimerKind.AUTOPLAY, so a new spawn or any stop replaces
or cancels it and it can never fire twice.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from fundora_blox.blox_core.config_loader import GameConfig, get_config
from fundora_blox.blox_core.rng import RandomSource
from fundora_blox.blox_core.scheduler import TimerKind, TimerRegistry

logger = logging.getLogger(__name__)


class AutoplayScheduler:
    """Arms and cancels the demo auto-stop timer."""

    def __init__(
        self,
        timers: TimerRegistry,
        rng: RandomSource,
        config: Optional[GameConfig] = None
    ):
        if config is None:
            config = get_config()

        self._timers = timers
        self._rng = rng
        self._autoplay = config.autoplay

    @property
    def armed(self) -> bool:
        return self._timers.is_armed(TimerKind.AUTOPLAY)

    def stop_delay(self, position: float, speed: float) -> float:
        """
        Seconds until the demo should stop a block starting at `position`.

        Draws the target offset first, then the reaction jitter.
        """
        target = (self._rng.random() - 0.5) * self._autoplay.target_spread
        travel = abs(target - position)
        reaction = self._autoplay.reaction_min + self._rng.random() * self._autoplay.reaction_jitter
        return travel / speed + reaction

    def arm(self, position: float, speed: float, on_fire: Callable[[], None]) -> float:
        """
        Schedule on_fire for this block, replacing any earlier auto-stop.

        Returns:
            The delay used, in seconds.
        """
        delay = self.stop_delay(position, speed)
        self._timers.arm(TimerKind.AUTOPLAY, delay, on_fire)
        logger.debug("Autoplay stop armed in %.2fs", delay)
        return delay

    def cancel(self) -> bool:
        return self._timers.cancel(TimerKind.AUTOPLAY)

    def draw_end_row(self) -> int:
        """Row at which a demo run wraps up, uniform over the configured band."""
        low, high = self._autoplay.end_row_min, self._autoplay.end_row_max
        return low + self._rng.randrange(high - low + 1)
