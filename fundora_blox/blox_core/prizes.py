"""
Prize Calculator
================

Maps the highest row reached and the stake to a payout.

The ladder is a monotone step table: the entry with the largest row not
above highest_row applies. Cash entries multiply the stake; point entries
pay points, either a flat table scaled by the stake's point multiplier
(points_mode 'scaled') or a per-stake table (points_mode 'stake_tiered').
Free play never pays cash; on cash rows it pays from free_play_points.

Amounts are Decimal. Cash is truncated to cents, points to whole points.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal
from enum import Enum
from typing import List, Optional, Tuple

from fundora_blox.blox_core.config_loader import GameConfig, get_config
from fundora_blox.blox_core.stakes import CENT, Stake, StakeLadder

WHOLE = Decimal("1")


class PrizeKind(str, Enum):
    CASH = "cash"
    POINTS = "points"


@dataclass(frozen=True)
class Prize:
    """A payout."""
    amount: Decimal
    kind: PrizeKind

    @classmethod
    def nothing(cls) -> "Prize":
        return cls(Decimal("0"), PrizeKind.POINTS)

    @property
    def is_zero(self) -> bool:
        return self.amount == 0

    def __str__(self) -> str:
        if self.kind == PrizeKind.CASH:
            return f"${self.amount}"
        return f"{self.amount}P"


@dataclass(frozen=True)
class PrizeTier:
    """The table entry that applies at a row."""
    row: int
    kind: PrizeKind
    multiplier: Decimal


class PrizeCalculator:
    """
    Prize ladder lookups.
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        ladder: Optional[StakeLadder] = None
    ):
        """
        Initialize prize calculator.

        Args:
            config: Game configuration. Uses default if None.
            ladder: Stake ladder. Built from config if None.
        """
        if config is None:
            config = get_config()

        self._prizes = config.prizes
        self._ladder = ladder if ladder is not None else StakeLadder(config)
        self._lowest_row = config.prizes.lowest_prize_row

    @property
    def lowest_prize_row(self) -> int:
        """Rows below this always pay nothing."""
        return self._lowest_row

    def tier_for(self, row: int, stake: Stake) -> Optional[PrizeTier]:
        """
        Table entry in force at `row`, or None below the ladder.

        For points entries, multiplier is the number of points before any
        stake scaling.
        """
        if row < self._lowest_row:
            return None

        entries: List[Tuple[int, PrizeKind, Decimal]] = [
            (t.row, PrizeKind.CASH, t.multiplier) for t in self._prizes.cash
        ]
        if self._prizes.points_mode == "stake_tiered":
            for t in self._prizes.stake_tiered_points:
                entries.append((t.row, PrizeKind.POINTS, Decimal(self._stake_tiered_points(t.by_stake, stake))))
        else:
            for t in self._prizes.points:
                entries.append((t.row, PrizeKind.POINTS, Decimal(t.points)))

        applicable = [e for e in entries if e[0] <= row]
        if not applicable:
            return None
        best = max(applicable, key=lambda e: e[0])
        return PrizeTier(row=best[0], kind=best[1], multiplier=best[2])

    def calculate(self, highest_row: int, stake: Stake) -> Prize:
        """
        Payout for a run.

        Args:
            highest_row: Highest row reached.
            stake: Stake the run was played at.

        Returns:
            Prize; zero points below the ladder.
        """
        tier = self.tier_for(highest_row, stake)
        if tier is None:
            return Prize.nothing()

        if tier.kind == PrizeKind.CASH:
            if stake.is_free:
                return self._free_play_prize(highest_row)
            amount = (stake.amount * tier.multiplier).quantize(CENT, rounding=ROUND_DOWN)
            return Prize(amount, PrizeKind.CASH)

        points = tier.multiplier
        if self._prizes.points_mode == "scaled":
            points = points * self._ladder.point_multiplier(stake)
        return Prize(points.quantize(WHOLE, rounding=ROUND_DOWN), PrizeKind.POINTS)

    def ladder(self, stake: Stake, top_row: int) -> List[Tuple[int, Prize]]:
        """Prize at every row from the lowest prize row to top_row (prize indicators)."""
        return [(row, self.calculate(row, stake)) for row in range(self._lowest_row, top_row + 1)]

    def _free_play_prize(self, highest_row: int) -> Prize:
        applicable = [t for t in self._prizes.free_play_points if t.row <= highest_row]
        if not applicable:
            return Prize.nothing()
        return Prize(Decimal(applicable[-1].points), PrizeKind.POINTS)

    @staticmethod
    def _stake_tiered_points(by_stake: Tuple[Tuple[Decimal, int], ...], stake: Stake) -> int:
        value = stake.cash_value
        points = 0
        for threshold, amount in by_stake:
            if value >= threshold:
                points = amount
        return points
