"""
Blox Core - The stacking engine.

This module provides the phase controller, the Gymnasium environment wrapper,
and all supporting systems (spawning, motion, placement, scoring, prizes,
demo autoplay, deferred tasks).

Main exports:
- BloxGame: Phase controller driving a round
- BloxEnv: Gymnasium environment for agents and payout simulation
- GameSnapshot / Phase: Read-only state record
- Stake / StakeLadder: Stake selection and multipliers
- PrizeCalculator: Highest row and stake to payout
- ManualScheduler / AsyncioScheduler: Deferred-task backends
- JsonlScoreStore: Settled-round history
- GameConfig: Configuration loaded from game_config.yaml
"""

from fundora_blox.blox_core.config_loader import GameConfig, load_config, get_config
from fundora_blox.blox_core.errors import (
    EngineError,
    StateError,
    StakeError,
    InsufficientFundsError,
    RngUnavailableError,
)
from fundora_blox.blox_core.blocks import Block, MotionState, PlacedBlockInfo
from fundora_blox.blox_core.rng import RandomSource, SequenceSource
from fundora_blox.blox_core.stakes import Stake, StakeLadder
from fundora_blox.blox_core.prizes import Prize, PrizeKind, PrizeCalculator
from fundora_blox.blox_core.scheduler import (
    TimerKind,
    ManualScheduler,
    AsyncioScheduler,
    TimerRegistry,
)
from fundora_blox.blox_core.collaborators import (
    DebitResult,
    EndReason,
    InMemoryWallet,
    ScoreBoard,
    Settlement,
)
from fundora_blox.blox_core.state_snapshot import GameSnapshot, Phase
from fundora_blox.blox_core.game import BloxGame
from fundora_blox.blox_core.env_gym import BloxEnv
from fundora_blox.blox_core.history import JsonlScoreStore, load_history, compute_config_hash

__all__ = [
    "GameConfig",
    "load_config",
    "get_config",
    "EngineError",
    "StateError",
    "StakeError",
    "InsufficientFundsError",
    "RngUnavailableError",
    "Block",
    "MotionState",
    "PlacedBlockInfo",
    "RandomSource",
    "SequenceSource",
    "Stake",
    "StakeLadder",
    "Prize",
    "PrizeKind",
    "PrizeCalculator",
    "TimerKind",
    "ManualScheduler",
    "AsyncioScheduler",
    "TimerRegistry",
    "DebitResult",
    "EndReason",
    "InMemoryWallet",
    "ScoreBoard",
    "Settlement",
    "GameSnapshot",
    "Phase",
    "BloxGame",
    "BloxEnv",
    "JsonlScoreStore",
    "load_history",
    "compute_config_hash",
]
