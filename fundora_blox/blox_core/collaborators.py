"""
Collaborators
=============

Contracts for the services the engine talks to but does not own, plus
in-memory implementations used by the environment, the evaluation harness
and tests.

- Wallet: debits the stake on start, credits the prize on settlement.
- ScoreSink: receives (score, blocks_stacked, highest_row) when a run ends.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Protocol, Tuple

from fundora_blox.blox_core.prizes import Prize, PrizeKind
from fundora_blox.blox_core.stakes import CENT, Stake

logger = logging.getLogger(__name__)


class DebitResult(str, Enum):
    OK = "ok"
    INSUFFICIENT_FUNDS = "insufficient_funds"


class Wallet(Protocol):
    @property
    def balance(self) -> Decimal: ...

    def debit(self, amount: Decimal) -> DebitResult: ...

    def credit(self, amount: Decimal, kind: PrizeKind) -> None: ...


class ScoreSink(Protocol):
    def submit_score(self, score: int, blocks_stacked: int, highest_row: int) -> None: ...


class InMemoryWallet:
    """
    Cash balance plus a separate points balance.

    Cash is kept in Decimal cents; points are whole numbers.
    """

    def __init__(self, balance="100.00", points=0):
        self._balance = Decimal(str(balance)).quantize(CENT)
        self._points = Decimal(str(points))
        self._ledger: List[Tuple[str, Decimal, str]] = []

    @property
    def balance(self) -> Decimal:
        """Available cash."""
        return self._balance

    @property
    def points(self) -> Decimal:
        return self._points

    @property
    def ledger(self) -> List[Tuple[str, Decimal, str]]:
        """(entry type, amount, currency) entries in order."""
        return list(self._ledger)

    def debit(self, amount: Decimal) -> DebitResult:
        amount = Decimal(amount)
        if amount < 0:
            raise ValueError(f"Debit must be non-negative, got {amount}")
        if amount > self._balance:
            return DebitResult.INSUFFICIENT_FUNDS
        self._balance -= amount
        self._ledger.append(("bet", -amount, "cash"))
        return DebitResult.OK

    def credit(self, amount: Decimal, kind: PrizeKind) -> None:
        amount = Decimal(amount)
        if amount < 0:
            raise ValueError(f"Credit must be non-negative, got {amount}")
        if kind == PrizeKind.CASH:
            self._balance += amount
            self._ledger.append(("payout", amount, "cash"))
        else:
            self._points += amount
            self._ledger.append(("payout", amount, "points"))


@dataclass(frozen=True)
class ScoreEntry:
    score: int
    blocks_stacked: int
    highest_row: int


class ScoreBoard:
    """In-memory leaderboard keeping the best `size` runs by score."""

    def __init__(self, size: int = 10):
        self._size = size
        self._entries: List[ScoreEntry] = []

    def submit_score(self, score: int, blocks_stacked: int, highest_row: int) -> None:
        self._entries.append(ScoreEntry(score, blocks_stacked, highest_row))
        self._entries.sort(key=lambda e: (e.score, e.highest_row), reverse=True)
        del self._entries[self._size:]

    @property
    def entries(self) -> List[ScoreEntry]:
        return list(self._entries)


class EndReason(str, Enum):
    NO_OVERLAP = "no_overlap"
    TOP_REACHED = "top_reached"
    RNG_UNAVAILABLE = "rng_unavailable"


@dataclass(frozen=True)
class Settlement:
    """Everything reported when a run ends."""
    stake: Stake
    prize: Prize
    score: int
    bonus_points: int
    highest_row: int
    blocks_stacked: int
    perfect_alignments: int
    reason: EndReason

    @property
    def cash_prize(self) -> Decimal:
        return self.prize.amount if self.prize.kind == PrizeKind.CASH else Decimal("0")

    @property
    def profit(self) -> Decimal:
        """Cash prize minus stake; free play risks nothing."""
        return self.cash_prize - self.stake.cash_value

    @property
    def outcome(self) -> str:
        return "win" if self.profit > 0 else "lose"

    def to_dict(self) -> dict:
        return {
            "stake": self.stake.label,
            "prize": str(self.prize.amount) if not self.prize.is_zero else None,
            "prize_type": self.prize.kind.value if not self.prize.is_zero else None,
            "score": self.score,
            "bonus_points": self.bonus_points,
            "highest_row": self.highest_row,
            "blocks_stacked": self.blocks_stacked,
            "perfect_alignments": self.perfect_alignments,
            "reason": self.reason.value,
            "outcome": self.outcome,
            "profit": str(self.profit),
        }


def submit_quietly(sink: Optional[ScoreSink], settlement: Settlement) -> None:
    """Fire-and-forget score submission; failures are logged, never raised."""
    if sink is None:
        return
    try:
        sink.submit_score(settlement.score, settlement.blocks_stacked, settlement.highest_row)
    except Exception:
        logger.warning("Score submission failed", exc_info=True)
