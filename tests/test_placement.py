"""
Tests for placement resolution and grid snapping.
"""

import random
from dataclasses import replace

import pytest

from fundora_blox.blox_core.blocks import Block
from fundora_blox.blox_core.config_loader import load_config
from fundora_blox.blox_core.placement import (
    PlacementResolver,
    round_half_away_from_zero,
    round_half_even,
)


@pytest.fixture
def config():
    return load_config()


@pytest.fixture
def resolver(config):
    return PlacementResolver(config)


@pytest.fixture
def half_even_resolver(config):
    return PlacementResolver(replace(config, grid=replace(config.grid, rounding="half_even")))


def block(row, columns):
    return Block.from_columns(row, columns, 7)


class TestRounding:
    """Test the two snapping rules."""

    @pytest.mark.parametrize("x, expected", [
        (0.4, 0), (0.5, 1), (1.5, 2), (2.5, 3), (3.5, 4), (-0.5, -1), (-1.5, -2), (2.49, 2),
    ])
    def test_half_away_from_zero(self, x, expected):
        assert round_half_away_from_zero(x) == expected

    @pytest.mark.parametrize("x, expected", [
        (0.5, 0), (1.5, 2), (2.5, 2), (3.5, 4), (-0.5, 0), (-1.5, -2), (2.51, 3),
    ])
    def test_half_even(self, x, expected):
        assert round_half_even(x) == expected


class TestResolve:
    """Test intersection against the block beneath."""

    def test_perfect_stop(self, resolver):
        """Same mask stopped at 0 keeps every column."""
        result = resolver.resolve(block(1, [2, 3, 4]), 0.0, block(0, [2, 3, 4]))
        assert result.has_overlap
        assert result.active_count == 3
        assert result.columns == (2, 3, 4)
        assert result.block.row == 1

    def test_shift_off_grid_misses(self, resolver):
        """Position 3 puts {2,3,4} on {5,6,7}; 7 is off-grid and {5,6} miss."""
        result = resolver.resolve(block(1, [2, 3, 4]), 3.0, block(0, [2, 3, 4]))
        assert not result.has_overlap
        assert result.active_count == 0
        assert result.columns == ()

    def test_partial_overlap(self, resolver):
        result = resolver.resolve(block(2, [2, 3, 4]), 1.2, block(1, [2, 3, 4]))
        assert result.columns == (3, 4)
        assert result.active_count == 2

    def test_left_edge(self, resolver):
        result = resolver.resolve(block(1, [2, 3, 4]), -2.0, block(0, [2, 3, 4]))
        assert result.columns == (2,)

    def test_single_column(self, resolver):
        hit = resolver.resolve(block(5, [4]), 0.3, block(4, [4]))
        miss = resolver.resolve(block(5, [4]), -0.6, block(4, [4]))
        assert hit.active_count == 1
        assert not miss.has_overlap

    def test_result_is_subset_of_previous(self, resolver):
        r = random.Random(99)
        for _ in range(500):
            previous = block(3, [c for c in range(7) if r.random() < 0.5])
            moving = block(4, [c for c in range(7) if r.random() < 0.5])
            position = r.uniform(-7.0, 7.0)
            result = resolver.resolve(moving, position, previous)
            assert result.block.is_subset_of(previous)
            assert result.has_overlap == (result.active_count > 0)


class TestHalfIntegerBoundaries:
    """The snapping rule decides these positions."""

    def test_plus_half_away_from_zero(self, resolver):
        """2.5, 3.5, 4.5 -> 3, 4, 5: keeps {3, 4}."""
        result = resolver.resolve(block(1, [2, 3, 4]), 0.5, block(0, [2, 3, 4]))
        assert result.columns == (3, 4)

    def test_plus_half_even(self, half_even_resolver):
        """2.5, 3.5, 4.5 -> 2, 4, 4: keeps {2, 4}."""
        result = half_even_resolver.resolve(block(1, [2, 3, 4]), 0.5, block(0, [2, 3, 4]))
        assert result.columns == (2, 4)

    def test_minus_half_away_from_zero(self, resolver):
        """1.5, 2.5, 3.5 -> 2, 3, 4: still a perfect stop."""
        result = resolver.resolve(block(1, [2, 3, 4]), -0.5, block(0, [2, 3, 4]))
        assert result.columns == (2, 3, 4)

    def test_minus_half_even(self, half_even_resolver):
        """1.5, 2.5, 3.5 -> 2, 2, 4: keeps {2, 4}."""
        result = half_even_resolver.resolve(block(1, [2, 3, 4]), -0.5, block(0, [2, 3, 4]))
        assert result.columns == (2, 4)
        assert result.active_count == 2

    def test_rounding_name(self, resolver, half_even_resolver):
        assert resolver.rounding == "half_away_from_zero"
        assert half_even_resolver.rounding == "half_even"
