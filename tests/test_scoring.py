"""
Tests for combo streaks and run counters.
"""

from dataclasses import replace

import pytest

from fundora_blox.blox_core.config_loader import load_config
from fundora_blox.blox_core.scoring import ComboEngine, ScoreTracker


@pytest.fixture
def config():
    return load_config()


@pytest.fixture
def combo(config):
    return ComboEngine(config)


@pytest.fixture
def tracker(config):
    return ScoreTracker(config)


class TestComboEngine:
    """Test perfect-alignment streaks."""

    def test_initial_state(self, combo):
        assert combo.streak == 0
        assert combo.multiplier == 1.0

    def test_is_perfect(self):
        assert ComboEngine.is_perfect(3, 3)
        assert not ComboEngine.is_perfect(2, 3)
        assert not ComboEngine.is_perfect(0, 0)

    def test_first_perfect(self, combo):
        """Scenario: 3 of 3 columns kept -> streak 1, multiplier 1.5."""
        update = combo.register(3, 3)
        assert update.is_perfect
        assert update.streak == 1
        assert update.multiplier == 1.5

    def test_streak_increments_by_one(self, combo):
        for expected in range(1, 6):
            assert combo.register(2, 2).streak == expected

    def test_break_resets(self, combo):
        combo.register(3, 3)
        combo.register(3, 3)
        update = combo.register(2, 3)
        assert not update.is_perfect
        assert update.streak == 0
        assert update.multiplier == 1.0
        assert update.broken_streak == 2
        assert combo.streak == 0

    def test_multiplier_capped(self, combo):
        multipliers = [combo.register(3, 3).multiplier for _ in range(12)]
        assert max(multipliers) == 5.0
        assert multipliers[7:] == [5.0] * 5

    def test_multiplier_monotone(self, combo):
        values = [combo.multiplier_for(n) for n in range(20)]
        assert values == sorted(values)
        assert values[0] == 1.0

    def test_perfect_alignments_survive_breaks(self, combo):
        combo.register(3, 3)
        combo.register(2, 3)
        combo.register(2, 2)
        assert combo.perfect_alignments == 2

    def test_reset(self, combo):
        combo.register(3, 3)
        combo.reset()
        assert combo.streak == 0
        assert combo.multiplier == 1.0
        assert combo.perfect_alignments == 0


class TestScoreTracker:
    """Test score, bonus and progress counters."""

    def test_below_threshold_not_scored(self, tracker):
        event = tracker.apply_placement(row=5, active_count=3, multiplier=3.5)
        assert not event.counted
        assert event.awarded_points == 0
        assert tracker.score == 0

    def test_bonus_accrues_below_threshold(self, tracker):
        tracker.apply_placement(row=1, active_count=3, multiplier=1.5)
        assert tracker.bonus_points == 150

    def test_at_threshold_scored(self, tracker):
        event = tracker.apply_placement(row=6, active_count=3, multiplier=4.0)
        assert event.counted
        assert event.base_points == 30
        assert event.awarded_points == 120
        assert tracker.score == 120

    def test_progress_counters(self, tracker):
        tracker.apply_placement(row=1, active_count=3, multiplier=1.0)
        tracker.apply_placement(row=2, active_count=2, multiplier=1.0)
        assert tracker.highest_row == 2
        assert tracker.blocks_stacked == 2
        assert tracker.bonus_points == 250

    def test_bonus_requires_threshold_variant(self, config):
        strict = replace(config, scoring=replace(config.scoring, bonus_requires_threshold=True))
        tracker = ScoreTracker(strict)
        tracker.apply_placement(row=1, active_count=3, multiplier=1.0)
        assert tracker.bonus_points == 0
        tracker.apply_placement(row=6, active_count=3, multiplier=1.0)
        assert tracker.bonus_points == 150

    def test_reset(self, tracker):
        tracker.apply_placement(row=7, active_count=3, multiplier=2.0)
        tracker.reset()
        assert tracker.score == 0
        assert tracker.bonus_points == 0
        assert tracker.highest_row == 0
        assert tracker.blocks_stacked == 0
