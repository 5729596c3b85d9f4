"""
Tests for the round history store.
"""

from dataclasses import replace
from decimal import Decimal

import pytest

from fundora_blox.blox_core.collaborators import EndReason, InMemoryWallet, Settlement
from fundora_blox.blox_core.config_loader import RulesConfig, load_config
from fundora_blox.blox_core.game import BloxGame
from fundora_blox.blox_core.history import JsonlScoreStore, compute_config_hash, load_history
from fundora_blox.blox_core.prizes import Prize, PrizeKind
from fundora_blox.blox_core.rng import RandomSource
from fundora_blox.blox_core.scheduler import ManualScheduler
from fundora_blox.blox_core.stakes import Stake


@pytest.fixture
def config():
    return load_config()


@pytest.fixture
def store(tmp_path, config):
    return JsonlScoreStore(tmp_path / "history" / "rounds.jsonl", config)


class TestConfigHash:
    """Test the paytable hash."""

    def test_stable(self, config):
        assert compute_config_hash(config) == compute_config_hash(load_config())
        assert len(compute_config_hash(config)) == 8

    def test_changes_with_payout_rules(self, config):
        changed = replace(config, rules=RulesConfig(terminal_row=12))
        assert compute_config_hash(changed) != compute_config_hash(config)

    def test_ignores_presentation_timing(self, config):
        changed = replace(config, timing=replace(config.timing, demo_restart_delay=3.0))
        assert compute_config_hash(changed) == compute_config_hash(config)


class TestJsonlScoreStore:
    """Test appending and reading records."""

    def test_missing_file_is_empty(self, tmp_path):
        assert load_history(tmp_path / "none.jsonl") == []

    def test_record_settlement(self, store):
        settlement = Settlement(
            stake=Stake.parse("5"),
            prize=Prize(Decimal("500"), PrizeKind.CASH),
            score=1155,
            bonus_points=1950,
            highest_row=13,
            blocks_stacked=13,
            perfect_alignments=13,
            reason=EndReason.TOP_REACHED
        )
        store.record(settlement)
        records = load_history(store.path)
        assert len(records) == 1
        record = records[0]
        assert record["stake"] == "$5.00"
        assert record["prize"] == "500"
        assert record["prize_type"] == "cash"
        assert record["reason"] == "top_reached"
        assert record["config_hash"] == store.config_hash
        assert "timestamp" in record

    def test_submit_score_appends(self, store):
        store.submit_score(100, 7, 7)
        store.submit_score(200, 8, 8)
        assert [r["score"] for r in load_history(store.path)] == [100, 200]

    def test_wired_into_game(self, store, config):
        game = BloxGame(
            config=config,
            rng=RandomSource(generator=lambda: 0.5),
            scheduler=ManualScheduler(),
            wallet=InMemoryWallet("10.00")
        )
        game.start("1", on_settled=store.record)
        game.scheduler.run_until_idle()
        game.update_block_position(1.0)
        game.stop_block()
        game.scheduler.run_until_idle()
        game.stop_block()

        records = load_history(store.path)
        assert len(records) == 1
        assert records[0]["reason"] == "no_overlap"
        assert records[0]["highest_row"] == 1
        assert records[0]["profit"] == "-1"
