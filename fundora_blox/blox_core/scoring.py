"""
Scoring System
==============

Combo streaks and run counters.

A placement is perfect when it keeps every column of the block below it.
Each consecutive perfect placement raises the combo multiplier by
combo_step, capped at combo_cap:

- streak 0: 1.0x
- streak 1: 1.5x
- streak 2: 2.0x
- streak n: min(1 + 0.5*n, 5)x

Any other placement resets the streak to 0 and the multiplier to 1.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from fundora_blox.blox_core.config_loader import GameConfig, get_config
from fundora_blox.blox_core.placement import round_half_away_from_zero

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ComboUpdate:
    """Combo state after a placement."""
    is_perfect: bool
    streak: int
    multiplier: float
    broken_streak: int = 0


@dataclass
class ScoreEvent:
    """Record of a scoring event."""
    row: int
    active_count: int
    base_points: int
    awarded_points: int
    bonus_points: int
    multiplier: float
    counted: bool

    def __repr__(self) -> str:
        if not self.counted:
            return f"ScoreEvent(row={self.row}, below_threshold, bonus={self.bonus_points})"
        return (
            f"ScoreEvent(row={self.row}, points={self.awarded_points}, "
            f"multiplier={self.multiplier}x, bonus={self.bonus_points})"
        )


class ComboEngine:
    """Tracks perfect-alignment streaks and the resulting multiplier."""

    def __init__(self, config: Optional[GameConfig] = None):
        """
        Initialize combo engine.

        Args:
            config: Game configuration. Uses default if None.
        """
        if config is None:
            config = get_config()

        self._step = config.scoring.combo_step
        self._cap = config.scoring.combo_cap
        self._streak: int = 0
        self._multiplier: float = 1.0
        self._perfect_alignments: int = 0

    @property
    def streak(self) -> int:
        """Consecutive perfect placements."""
        return self._streak

    @property
    def multiplier(self) -> float:
        """Current score multiplier."""
        return self._multiplier

    @property
    def perfect_alignments(self) -> int:
        """Total perfect placements this run."""
        return self._perfect_alignments

    def multiplier_for(self, streak: int) -> float:
        """Multiplier for a given streak length."""
        return min(1.0 + streak * self._step, self._cap)

    @staticmethod
    def is_perfect(active_count: int, previous_active_count: int) -> bool:
        return active_count == previous_active_count and active_count > 0

    def register(self, active_count: int, previous_active_count: int) -> ComboUpdate:
        """
        Update the streak for a placement.

        Args:
            active_count: Columns kept by the placement.
            previous_active_count: Columns in the block it landed on.
        """
        if self.is_perfect(active_count, previous_active_count):
            self._streak += 1
            self._multiplier = self.multiplier_for(self._streak)
            self._perfect_alignments += 1
            logger.debug("Perfect alignment: streak %d, multiplier %.1fx", self._streak, self._multiplier)
            return ComboUpdate(True, self._streak, self._multiplier)

        broken = self._streak
        if broken > 0:
            logger.debug("Combo broken after streak %d", broken)
        self._streak = 0
        self._multiplier = 1.0
        return ComboUpdate(False, 0, 1.0, broken_streak=broken)

    def reset(self) -> None:
        self._streak = 0
        self._multiplier = 1.0
        self._perfect_alignments = 0


class ScoreTracker:
    """
    Run counters: score, bonus pool, highest row, blocks stacked.

    Score only counts from score_row_threshold upwards. The bonus pool
    counts every placement unless bonus_requires_threshold is set.
    """

    def __init__(self, config: Optional[GameConfig] = None):
        """
        Initialize score tracker.

        Args:
            config: Game configuration. Uses default if None.
        """
        if config is None:
            config = get_config()

        self._scoring = config.scoring
        self._score: int = 0
        self._bonus_points: int = 0
        self._highest_row: int = 0
        self._blocks_stacked: int = 0

    @property
    def score(self) -> int:
        """Current total score."""
        return self._score

    @property
    def bonus_points(self) -> int:
        return self._bonus_points

    @property
    def highest_row(self) -> int:
        return self._highest_row

    @property
    def blocks_stacked(self) -> int:
        return self._blocks_stacked

    def apply_placement(self, row: int, active_count: int, multiplier: float) -> ScoreEvent:
        """
        Apply score for a successful placement and return the event.

        Args:
            row: Row of the placed block.
            active_count: Columns kept.
            multiplier: Combo multiplier after this placement.
        """
        scoring = self._scoring
        base_points = active_count * scoring.points_per_column
        awarded = round_half_away_from_zero(base_points * multiplier)
        counted = row >= scoring.score_row_threshold
        bonus = active_count * scoring.bonus_per_column
        if scoring.bonus_requires_threshold and not counted:
            bonus = 0

        if counted:
            self._score += awarded
        self._bonus_points += bonus
        self._highest_row = max(self._highest_row, row)
        self._blocks_stacked += 1

        return ScoreEvent(
            row=row,
            active_count=active_count,
            base_points=base_points,
            awarded_points=awarded if counted else 0,
            bonus_points=bonus,
            multiplier=multiplier,
            counted=counted
        )

    def reset(self) -> None:
        """Reset all counters to zero."""
        self._score = 0
        self._bonus_points = 0
        self._highest_row = 0
        self._blocks_stacked = 0
