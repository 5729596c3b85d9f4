"""
Configuration Loader
====================

Loads and validates game_config.yaml, providing typed access to all parameters.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import List, Optional, Tuple

import yaml


FREE_PLAY_LABEL = "FREE"

ROUNDING_MODES = ("half_away_from_zero", "half_even")
POINTS_MODES = ("scaled", "stake_tiered")


@dataclass(frozen=True)
class GridConfig:
    """Grid geometry and base-block policy."""
    width: int
    base_width: int
    randomize_base: bool
    rounding: str


@dataclass(frozen=True)
class MotionConfig:
    """Block speed progression."""
    base_speed: float
    min_increment: float
    max_increment: float
    money_line_row: int
    spike_min: float
    spike_max: float
    flip_probability: float


@dataclass(frozen=True)
class TimingConfig:
    """Deferred task delays, in seconds."""
    first_spawn_delay: float
    next_spawn_delay: float
    settle_delay: float
    demo_restart_delay: float
    frame_dt: float


@dataclass(frozen=True)
class AutoplayConfig:
    """Demo mode auto-stop parameters."""
    target_spread: float
    reaction_min: float
    reaction_jitter: float
    end_row_min: int
    end_row_max: int


@dataclass(frozen=True)
class ScoringConfig:
    """Score, bonus and combo parameters."""
    points_per_column: int
    bonus_per_column: int
    combo_step: float
    combo_cap: float
    score_row_threshold: int
    bonus_requires_threshold: bool


@dataclass(frozen=True)
class RulesConfig:
    """Run termination."""
    terminal_row: int


@dataclass(frozen=True)
class StakeTierConfig:
    """One selectable stake. amount is None for free play."""
    amount: Optional[Decimal]
    speed_multiplier: float
    point_multiplier: Decimal


@dataclass(frozen=True)
class StakesConfig:
    default: Optional[Decimal]
    tiers: Tuple[StakeTierConfig, ...]


@dataclass(frozen=True)
class CashTier:
    row: int
    multiplier: Decimal


@dataclass(frozen=True)
class PointsTier:
    row: int
    points: int


@dataclass(frozen=True)
class StakeTieredPointsTier:
    """Points for a row, keyed by minimum stake amount (free play counts as 0)."""
    row: int
    by_stake: Tuple[Tuple[Decimal, int], ...]


@dataclass(frozen=True)
class PrizesConfig:
    """Prize ladder."""
    points_mode: str
    cash: Tuple[CashTier, ...]
    points: Tuple[PointsTier, ...]
    stake_tiered_points: Tuple[StakeTieredPointsTier, ...]
    free_play_points: Tuple[PointsTier, ...]

    def active_points_rows(self) -> Tuple[int, ...]:
        """Rows of the points table selected by points_mode."""
        if self.points_mode == "stake_tiered":
            return tuple(t.row for t in self.stake_tiered_points)
        return tuple(t.row for t in self.points)

    @property
    def lowest_prize_row(self) -> int:
        """First row that pays anything."""
        rows = list(self.active_points_rows()) + [t.row for t in self.cash]
        return min(rows)


@dataclass(frozen=True)
class WalletConfig:
    starting_balance: Decimal


@dataclass(frozen=True)
class GameConfig:
    """
    Complete game configuration loaded from YAML.

    All values are immutable to prevent accidental modification during runtime.
    """
    grid: GridConfig
    motion: MotionConfig
    timing: TimingConfig
    autoplay: AutoplayConfig
    scoring: ScoringConfig
    rules: RulesConfig
    stakes: StakesConfig
    prizes: PrizesConfig
    wallet: WalletConfig

    @property
    def width(self) -> int:
        """Number of grid columns."""
        return self.grid.width


def parse_stake_amount(raw) -> Optional[Decimal]:
    """Parse a stake from YAML/CLI text. "FREE" (any case) is free play."""
    if raw is None:
        return None
    text = str(raw).strip()
    if text.upper() == FREE_PLAY_LABEL:
        return None
    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise ValueError(f"Invalid stake: {raw!r}") from None
    if not amount.is_finite() or amount <= 0:
        raise ValueError(f"Stake must be positive or FREE, got {raw!r}")
    return amount


def _parse_decimal(raw, what: str) -> Decimal:
    try:
        return Decimal(str(raw))
    except InvalidOperation:
        raise ValueError(f"Invalid {what}: {raw!r}") from None


def _parse_stake_tier(tier_data: dict) -> StakeTierConfig:
    """Parse a single stake tier from YAML."""
    return StakeTierConfig(
        amount=parse_stake_amount(tier_data["stake"]),
        speed_multiplier=float(tier_data["speed_multiplier"]),
        point_multiplier=_parse_decimal(tier_data.get("point_multiplier", 1), "point multiplier")
    )


def _parse_points_tiers(data: List) -> Tuple[PointsTier, ...]:
    return tuple(
        PointsTier(row=int(t["row"]), points=int(t["points"]))
        for t in data
    )


def _parse_stake_tiered(data: List) -> Tuple[StakeTieredPointsTier, ...]:
    tiers = []
    for t in data:
        pairs = sorted(
            (_parse_decimal(k, "stake threshold"), int(v))
            for k, v in t["by_stake"].items()
        )
        tiers.append(StakeTieredPointsTier(row=int(t["row"]), by_stake=tuple(pairs)))
    return tuple(tiers)


def _check_increasing(rows: List[int], what: str) -> None:
    for a, b in zip(rows, rows[1:]):
        if b <= a:
            raise ValueError(f"{what} rows must be strictly increasing, got {rows}")


def _validate_config(config: GameConfig) -> None:
    """Validate configuration consistency."""
    grid = config.grid
    if grid.base_width < 1 or grid.base_width > grid.width:
        raise ValueError(
            f"grid.base_width ({grid.base_width}) must be between 1 and "
            f"grid.width ({grid.width})"
        )
    if grid.rounding not in ROUNDING_MODES:
        raise ValueError(f"grid.rounding must be one of {ROUNDING_MODES}, got '{grid.rounding}'")

    motion = config.motion
    if motion.base_speed <= 0:
        raise ValueError(f"motion.base_speed must be positive, got {motion.base_speed}")
    if motion.min_increment > motion.max_increment:
        raise ValueError("motion.min_increment must not exceed motion.max_increment")
    if motion.spike_min < 1.0 or motion.spike_min > motion.spike_max:
        raise ValueError("motion spike band must satisfy 1 <= spike_min <= spike_max")
    if not 0.0 <= motion.flip_probability <= 1.0:
        raise ValueError(f"motion.flip_probability must be in [0, 1], got {motion.flip_probability}")

    if config.scoring.combo_cap < 1.0:
        raise ValueError(f"scoring.combo_cap must be >= 1, got {config.scoring.combo_cap}")

    autoplay = config.autoplay
    if autoplay.end_row_min < 1 or autoplay.end_row_min > autoplay.end_row_max:
        raise ValueError("autoplay end row band must satisfy 1 <= end_row_min <= end_row_max")

    if config.rules.terminal_row < 1:
        raise ValueError(f"rules.terminal_row must be >= 1, got {config.rules.terminal_row}")

    # Stakes: unique, and harder (faster) as the stake grows with free play slowest
    tiers = config.stakes.tiers
    if not tiers:
        raise ValueError("stakes.tiers must not be empty")
    amounts = [t.amount for t in tiers]
    if len(set(amounts)) != len(amounts):
        raise ValueError("stakes.tiers contains duplicate stakes")
    numeric = sorted((t for t in tiers if t.amount is not None), key=lambda t: t.amount)
    for a, b in zip(numeric, numeric[1:]):
        if b.speed_multiplier <= a.speed_multiplier:
            raise ValueError(
                f"Stake speed multipliers must increase with stake "
                f"({a.amount} -> {b.amount})"
            )
    free = [t for t in tiers if t.amount is None]
    if free and numeric and free[0].speed_multiplier >= numeric[0].speed_multiplier:
        raise ValueError("Free play must be the slowest stake tier")
    if config.stakes.default not in amounts:
        raise ValueError(f"stakes.default ({config.stakes.default}) is not an allowed stake")

    # Prize ladder
    prizes = config.prizes
    if prizes.points_mode not in POINTS_MODES:
        raise ValueError(f"prizes.points_mode must be one of {POINTS_MODES}, got '{prizes.points_mode}'")
    _check_increasing([t.row for t in prizes.cash], "prizes.cash")
    _check_increasing([t.row for t in prizes.points], "prizes.points")
    _check_increasing([t.row for t in prizes.stake_tiered_points], "prizes.stake_tiered_points")
    _check_increasing([t.row for t in prizes.free_play_points], "prizes.free_play_points")
    active_rows = set(prizes.active_points_rows())
    cash_rows = set(t.row for t in prizes.cash)
    if active_rows & cash_rows:
        raise ValueError(
            f"Rows {sorted(active_rows & cash_rows)} appear in both the cash ladder "
            f"and the '{prizes.points_mode}' points ladder"
        )
    if not active_rows and not cash_rows:
        raise ValueError("Prize ladder is empty")


def load_config(config_path: Optional[str] = None) -> GameConfig:
    """
    Load and validate game configuration from YAML.

    Args:
        config_path: Path to game_config.yaml. If None, uses default location.

    Returns:
        Validated GameConfig instance.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValueError: If config validation fails.
    """
    if config_path is None:
        config_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)),
            "game_config.yaml"
        )

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r") as f:
        raw = yaml.safe_load(f)

    grid_data = raw["grid"]
    grid = GridConfig(
        width=int(grid_data["width"]),
        base_width=int(grid_data.get("base_width", 3)),
        randomize_base=bool(grid_data.get("randomize_base", False)),
        rounding=str(grid_data.get("rounding", "half_away_from_zero"))
    )

    motion_data = raw["motion"]
    motion = MotionConfig(
        base_speed=float(motion_data["base_speed"]),
        min_increment=float(motion_data["min_increment"]),
        max_increment=float(motion_data["max_increment"]),
        money_line_row=int(motion_data["money_line_row"]),
        spike_min=float(motion_data.get("spike_min", 1.0)),
        spike_max=float(motion_data.get("spike_max", 1.0)),
        flip_probability=float(motion_data.get("flip_probability", 0.5))
    )

    timing_data = raw["timing"]
    timing = TimingConfig(
        first_spawn_delay=float(timing_data["first_spawn_delay"]),
        next_spawn_delay=float(timing_data["next_spawn_delay"]),
        settle_delay=float(timing_data["settle_delay"]),
        demo_restart_delay=float(timing_data["demo_restart_delay"]),
        frame_dt=float(timing_data.get("frame_dt", 1.0 / 60.0))
    )

    autoplay_data = raw["autoplay"]
    autoplay = AutoplayConfig(
        target_spread=float(autoplay_data["target_spread"]),
        reaction_min=float(autoplay_data["reaction_min"]),
        reaction_jitter=float(autoplay_data["reaction_jitter"]),
        end_row_min=int(autoplay_data["end_row_min"]),
        end_row_max=int(autoplay_data["end_row_max"])
    )

    scoring_data = raw["scoring"]
    scoring = ScoringConfig(
        points_per_column=int(scoring_data["points_per_column"]),
        bonus_per_column=int(scoring_data["bonus_per_column"]),
        combo_step=float(scoring_data["combo_step"]),
        combo_cap=float(scoring_data["combo_cap"]),
        score_row_threshold=int(scoring_data["score_row_threshold"]),
        bonus_requires_threshold=bool(scoring_data.get("bonus_requires_threshold", False))
    )

    rules = RulesConfig(terminal_row=int(raw["rules"]["terminal_row"]))

    stakes_data = raw["stakes"]
    stakes = StakesConfig(
        default=parse_stake_amount(stakes_data.get("default", FREE_PLAY_LABEL)),
        tiers=tuple(_parse_stake_tier(t) for t in stakes_data["tiers"])
    )

    prizes_data = raw["prizes"]
    prizes = PrizesConfig(
        points_mode=str(prizes_data.get("points_mode", "scaled")),
        cash=tuple(
            CashTier(row=int(t["row"]), multiplier=_parse_decimal(t["multiplier"], "cash multiplier"))
            for t in prizes_data.get("cash", [])
        ),
        points=_parse_points_tiers(prizes_data.get("points", [])),
        stake_tiered_points=_parse_stake_tiered(prizes_data.get("stake_tiered_points", [])),
        free_play_points=_parse_points_tiers(prizes_data.get("free_play_points", []))
    )

    wallet_data = raw.get("wallet", {})
    wallet = WalletConfig(
        starting_balance=_parse_decimal(wallet_data.get("starting_balance", "100.00"), "starting balance")
    )

    config = GameConfig(
        grid=grid,
        motion=motion,
        timing=timing,
        autoplay=autoplay,
        scoring=scoring,
        rules=rules,
        stakes=stakes,
        prizes=prizes,
        wallet=wallet
    )

    _validate_config(config)
    return config


# Module-level singleton for convenience
_cached_config: Optional[GameConfig] = None


def get_config() -> GameConfig:
    """Get the cached game configuration, loading if necessary."""
    global _cached_config
    if _cached_config is None:
        _cached_config = load_config()
    return _cached_config


def reload_config(config_path: Optional[str] = None) -> GameConfig:
    """Reload the configuration (useful for testing)."""
    global _cached_config
    _cached_config = load_config(config_path)
    return _cached_config
