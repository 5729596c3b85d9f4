"""
Stakes
======

The stake ladder: which stakes can be played, how much faster each one makes
the block, and how point prizes scale with it.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Optional, Tuple, Union

from fundora_blox.blox_core.config_loader import (
    FREE_PLAY_LABEL,
    GameConfig,
    StakeTierConfig,
    get_config,
    parse_stake_amount,
)
from fundora_blox.blox_core.errors import StakeError

CENT = Decimal("0.01")


@dataclass(frozen=True)
class Stake:
    """A stake selection. amount None is free play."""
    amount: Optional[Decimal] = None

    @classmethod
    def free(cls) -> "Stake":
        return cls(None)

    @classmethod
    def parse(cls, raw: Union["Stake", str, int, float, Decimal, None]) -> "Stake":
        """Accept a Stake, "FREE", or anything Decimal() understands."""
        if isinstance(raw, Stake):
            return raw
        if isinstance(raw, float):
            raw = repr(raw)
        try:
            return cls(parse_stake_amount(raw if raw is not None else FREE_PLAY_LABEL))
        except ValueError as exc:
            raise StakeError(str(exc)) from exc

    @property
    def is_free(self) -> bool:
        return self.amount is None

    @property
    def cash_value(self) -> Decimal:
        """Amount at risk; zero for free play."""
        return Decimal("0") if self.amount is None else self.amount

    @property
    def label(self) -> str:
        if self.amount is None:
            return FREE_PLAY_LABEL
        return f"${self.amount.quantize(CENT)}"

    def __str__(self) -> str:
        return self.label


class StakeLadder:
    """
    Allowed stakes in display order with their per-stake multipliers.
    """

    def __init__(self, config: Optional[GameConfig] = None):
        """
        Initialize stake ladder.

        Args:
            config: Game configuration. Uses default if None.
        """
        if config is None:
            config = get_config()

        self._tiers: Dict[Stake, StakeTierConfig] = {}
        order = []
        for tier in config.stakes.tiers:
            stake = Stake(tier.amount)
            self._tiers[stake] = tier
            order.append(stake)
        self._order: Tuple[Stake, ...] = tuple(order)
        self._default = Stake(config.stakes.default)

    @property
    def stakes(self) -> Tuple[Stake, ...]:
        return self._order

    @property
    def default(self) -> Stake:
        return self._default

    def __contains__(self, stake: Stake) -> bool:
        return stake in self._tiers

    def validate(self, stake) -> Stake:
        """Parse and check a stake. Raises StakeError if it is not on the ladder."""
        stake = Stake.parse(stake)
        if stake not in self._tiers:
            allowed = ", ".join(s.label for s in self._order)
            raise StakeError(f"Stake {stake.label} is not allowed (choose from {allowed})")
        return stake

    def speed_multiplier(self, stake: Stake) -> float:
        """Block speed scale for a stake."""
        tier = self._tiers.get(stake)
        return tier.speed_multiplier if tier is not None else 1.0

    def point_multiplier(self, stake: Stake) -> Decimal:
        """Scale applied to point prizes in 'scaled' points mode."""
        tier = self._tiers.get(stake)
        return tier.point_multiplier if tier is not None else Decimal("1")

    def cycle(self, stake: Stake, direction: str) -> Stake:
        """
        Next stake up or down the ladder, wrapping at both ends.

        Args:
            stake: Current stake.
            direction: "up" or "down".
        """
        if direction not in ("up", "down"):
            raise ValueError(f"direction must be 'up' or 'down', got {direction!r}")
        try:
            index = self._order.index(stake)
        except ValueError:
            index = 0
        step = 1 if direction == "up" else -1
        return self._order[(index + step) % len(self._order)]
