"""
Tests for stakes, the in-memory wallet and settlement records.
"""

from decimal import Decimal

import pytest

from fundora_blox.blox_core.collaborators import (
    DebitResult,
    EndReason,
    InMemoryWallet,
    ScoreBoard,
    Settlement,
    submit_quietly,
)
from fundora_blox.blox_core.config_loader import load_config
from fundora_blox.blox_core.errors import StakeError
from fundora_blox.blox_core.prizes import Prize, PrizeKind
from fundora_blox.blox_core.stakes import Stake, StakeLadder


@pytest.fixture
def ladder():
    return StakeLadder(load_config())


def settlement(stake, prize, reason=EndReason.NO_OVERLAP):
    return Settlement(
        stake=stake,
        prize=prize,
        score=120,
        bonus_points=900,
        highest_row=9,
        blocks_stacked=9,
        perfect_alignments=4,
        reason=reason
    )


class TestStake:
    """Test stake parsing and labels."""

    def test_parse_free(self):
        assert Stake.parse("FREE").is_free
        assert Stake.parse(None).is_free

    def test_parse_amounts_compare_by_value(self):
        assert Stake.parse("5") == Stake.parse("5.00")
        assert Stake.parse(0.5) == Stake.parse("0.50")

    def test_parse_invalid(self):
        with pytest.raises(StakeError):
            Stake.parse("-1")

    def test_labels(self):
        assert Stake.free().label == "FREE"
        assert Stake.parse("5").label == "$5.00"
        assert Stake.parse("0.5").label == "$0.50"

    def test_cash_value(self):
        assert Stake.free().cash_value == Decimal("0")
        assert Stake.parse("2").cash_value == Decimal("2")


class TestStakeLadder:
    """Test the allowed stakes and their multipliers."""

    def test_order_and_default(self, ladder):
        assert [s.label for s in ladder.stakes] == [
            "FREE", "$0.50", "$1.00", "$2.00", "$5.00", "$10.00", "$20.00"
        ]
        assert ladder.default == Stake.parse("1")

    def test_validate(self, ladder):
        assert ladder.validate("10") == Stake.parse("10")
        with pytest.raises(StakeError, match="not allowed"):
            ladder.validate("3")

    def test_multipliers(self, ladder):
        assert ladder.speed_multiplier(Stake.free()) == 0.8
        assert ladder.speed_multiplier(Stake.parse("20")) == 2.0
        assert ladder.point_multiplier(Stake.parse("10")) == Decimal("20")

    def test_cycle_wraps(self, ladder):
        assert ladder.cycle(Stake.parse("20"), "up") == Stake.free()
        assert ladder.cycle(Stake.free(), "down") == Stake.parse("20")
        assert ladder.cycle(Stake.parse("1"), "up") == Stake.parse("2")

    def test_cycle_rejects_bad_direction(self, ladder):
        with pytest.raises(ValueError):
            ladder.cycle(Stake.free(), "sideways")


class TestInMemoryWallet:
    """Test balances and the ledger."""

    def test_debit(self):
        wallet = InMemoryWallet("10.00")
        assert wallet.debit(Decimal("5")) == DebitResult.OK
        assert wallet.balance == Decimal("5.00")

    def test_insufficient_funds_untouched(self):
        wallet = InMemoryWallet("4.99")
        assert wallet.debit(Decimal("5")) == DebitResult.INSUFFICIENT_FUNDS
        assert wallet.balance == Decimal("4.99")
        assert wallet.ledger == []

    def test_credit_by_kind(self):
        wallet = InMemoryWallet("0")
        wallet.credit(Decimal("2.50"), PrizeKind.CASH)
        wallet.credit(Decimal("400"), PrizeKind.POINTS)
        assert wallet.balance == Decimal("2.50")
        assert wallet.points == Decimal("400")
        assert [entry[2] for entry in wallet.ledger] == ["cash", "points"]

    def test_negative_amounts_rejected(self):
        wallet = InMemoryWallet()
        with pytest.raises(ValueError):
            wallet.debit(Decimal("-1"))
        with pytest.raises(ValueError):
            wallet.credit(Decimal("-1"), PrizeKind.CASH)


class TestSettlement:
    """Test settlement outcome and profit."""

    def test_win(self):
        record = settlement(Stake.parse("5"), Prize(Decimal("10"), PrizeKind.CASH))
        assert record.profit == Decimal("5")
        assert record.outcome == "win"

    def test_stake_returned_is_not_a_win(self):
        record = settlement(Stake.parse("5"), Prize(Decimal("5"), PrizeKind.CASH))
        assert record.profit == Decimal("0")
        assert record.outcome == "lose"

    def test_points_prize_loses_stake(self):
        record = settlement(Stake.parse("1"), Prize(Decimal("1000"), PrizeKind.POINTS))
        assert record.cash_prize == Decimal("0")
        assert record.profit == Decimal("-1")

    def test_to_dict(self):
        data = settlement(Stake.parse("2"), Prize.nothing(), EndReason.TOP_REACHED).to_dict()
        assert data["stake"] == "$2.00"
        assert data["prize"] is None
        assert data["reason"] == "top_reached"
        assert data["outcome"] == "lose"


class TestScoreSinks:
    """Test score submission."""

    def test_scoreboard_keeps_best(self):
        board = ScoreBoard(size=2)
        board.submit_score(100, 7, 7)
        board.submit_score(300, 9, 9)
        board.submit_score(200, 8, 8)
        assert [e.score for e in board.entries] == [300, 200]

    def test_submit_quietly_swallows_failures(self, caplog):
        class BrokenSink:
            def submit_score(self, score, blocks_stacked, highest_row):
                raise ConnectionError("leaderboard down")

        submit_quietly(BrokenSink(), settlement(Stake.free(), Prize.nothing()))
        assert "Score submission failed" in caplog.text

    def test_submit_quietly_without_sink(self):
        submit_quietly(None, settlement(Stake.free(), Prize.nothing()))
