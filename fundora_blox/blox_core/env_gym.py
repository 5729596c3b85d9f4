"""
Gymnasium Environment Wrapper
=============================

Provides a standard Gymnasium interface to one stacking round.
Reward is always 0.0 - agents compute their own from info.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple, Union

import numpy as np

import gymnasium as gym
from gymnasium import spaces

from fundora_blox.blox_core.collaborators import InMemoryWallet
from fundora_blox.blox_core.config_loader import GameConfig, load_config
from fundora_blox.blox_core.game import BloxGame
from fundora_blox.blox_core.rng import RandomSource
from fundora_blox.blox_core.scheduler import ManualScheduler
from fundora_blox.blox_core.state_snapshot import PHASE_IDS, GameSnapshot, Phase


class BloxEnv(gym.Env):
    """
    Stack-the-block round as a Gymnasium environment.

    Action Space:
        Discrete(2). 0 lets the block keep moving, 1 stops it.

    Observation Space:
        Dict with the moving block, the stacked grid and run counters
        (see GameSnapshot.to_obs_dict).

    Reward:
        Always 0.0. Compute your own from the info dict.

    Info:
        Contains score, delta_score, highest_row, prize, prize_type,
        end_reason, etc.

    One step is one frame of timing.frame_dt seconds. An episode is one
    round, starting when the first block is in flight and terminating when
    the round has been settled.
    """

    metadata = {
        "render_modes": ["ansi"],
        "render_fps": 60,
    }

    def __init__(
        self,
        config_path: Optional[str] = None,
        render_mode: Optional[str] = None,
        stake: Any = None,
        max_frames: int = 20000,
        debug: bool = False,
    ):
        """
        Initialize the environment.

        Args:
            config_path: Path to game_config.yaml. Uses default if None.
            render_mode: "ansi" for a text grid, None for headless.
            stake: Default stake for each round. Config default if None.
            max_frames: Frames before an episode is truncated.
            debug: If True, prints a line per stop and at episode end.
        """
        super().__init__()

        self._config = load_config(config_path)
        self.render_mode = render_mode
        self._stake = stake
        self._max_frames = max_frames
        self._debug = debug

        self._rng = RandomSource()
        self._game = self._new_game()
        self._frames = 0
        self._last_score = 0

        self.action_space = spaces.Discrete(2)
        self.observation_space = self._build_observation_space()

    def _build_observation_space(self) -> spaces.Dict:
        """Build the observation space definition."""
        width = self._config.grid.width
        rows = self._config.rules.terminal_row + 1
        max_speed = 100.0

        return spaces.Dict({
            "phase": spaces.Box(low=0, high=len(PHASE_IDS) - 1, shape=(), dtype=np.int32),
            "position": spaces.Box(low=-width, high=width, shape=(), dtype=np.float32),
            "direction": spaces.Box(low=-1, high=1, shape=(), dtype=np.int32),
            "speed": spaces.Box(low=0, high=max_speed, shape=(), dtype=np.float32),
            "row": spaces.Box(low=0, high=rows, shape=(), dtype=np.int32),
            "moving_mask": spaces.MultiBinary(width),
            "top_mask": spaces.MultiBinary(width),
            "grid": spaces.MultiBinary([rows, width]),
            "score": spaces.Box(low=0, high=np.iinfo(np.int64).max, shape=(), dtype=np.int64),
            "highest_row": spaces.Box(low=0, high=rows, shape=(), dtype=np.int32),
            "combo_streak": spaces.Box(low=0, high=rows, shape=(), dtype=np.int32),
            "combo_multiplier": spaces.Box(
                low=1.0, high=self._config.scoring.combo_cap, shape=(), dtype=np.float32
            ),
        })

    def _new_game(self) -> BloxGame:
        return BloxGame(
            config=self._config,
            rng=self._rng,
            scheduler=ManualScheduler(),
            wallet=InMemoryWallet(self._config.wallet.starting_balance)
        )

    def reset(
        self,
        *,
        seed: Optional[int] = None,
        options: Optional[Dict[str, Any]] = None
    ) -> Tuple[Dict[str, np.ndarray], Dict[str, Any]]:
        """
        Start a new round against a fresh in-memory wallet.

        Args:
            seed: Random seed for reproducibility.
            options: {"stake": "5"} overrides the stake for this round.

        Returns:
            (observation, info) tuple. The first block is already moving.
        """
        super().reset(seed=seed)
        if seed is not None:
            self._rng.reset(seed)

        stake = (options or {}).get("stake", self._stake)

        self._game = self._new_game()
        self._frames = 0
        self._last_score = 0
        self._game.start(stake)

        # Fast-forward the first-spawn delay
        dt = self._config.timing.frame_dt
        while self._game.current_block is None and self._game.phase.is_active:
            self._game.tick(dt)

        snapshot = self._game.get_state()
        info = self._build_info(snapshot, stopped=False)
        return self._snapshot_to_obs(snapshot), info

    def step(
        self,
        action: Union[int, np.ndarray]
    ) -> Tuple[Dict[str, np.ndarray], float, bool, bool, Dict[str, Any]]:
        """
        Execute one frame.

        Args:
            action: 1 to stop the moving block, 0 to wait.

        Returns:
            (observation, reward, terminated, truncated, info) tuple.
            Reward is always 0.0.
        """
        if isinstance(action, np.ndarray):
            action = int(action.item())

        stopped = False
        if action == 1:
            stopped = self._game.stop_block()

        self._game.tick(self._config.timing.frame_dt)
        self._frames += 1

        snapshot = self._game.get_state()
        terminated = snapshot.phase == Phase.ENDED
        truncated = not terminated and self._frames >= self._max_frames

        reward = 0.0
        info = self._build_info(snapshot, stopped)

        if self._debug:
            if stopped:
                print(f"[DEBUG] Stop: row={snapshot.highest_row}, score={snapshot.score}, "
                      f"combo={snapshot.combo_multiplier:.1f}x")
            if terminated:
                print(f"[DEBUG] ENDED: {info['end_reason']}, prize={info['prize']} {info['prize_type']}")

        return self._snapshot_to_obs(snapshot), reward, terminated, truncated, info

    def _build_info(self, snapshot: GameSnapshot, stopped: bool) -> Dict[str, Any]:
        settlement = self._game.settlement
        prize = settlement.prize if settlement is not None else snapshot.potential_prize
        delta = snapshot.score - self._last_score
        self._last_score = snapshot.score

        return {
            "phase": snapshot.phase.value,
            "score": snapshot.score,
            "delta_score": delta,
            "bonus_points": snapshot.bonus_points,
            "highest_row": snapshot.highest_row,
            "blocks_stacked": snapshot.blocks_stacked,
            "combo_streak": snapshot.combo_streak,
            "perfect_alignments": snapshot.perfect_alignments,
            "stake": snapshot.stake.label,
            "credits": float(snapshot.credits),
            "prize": float(prize.amount),
            "prize_type": prize.kind.value,
            "end_reason": self._game.end_reason.value if self._game.end_reason is not None else "",
            "stopped": stopped,
            "frames": self._frames,
        }

    def _snapshot_to_obs(self, snapshot: GameSnapshot) -> Dict[str, np.ndarray]:
        return snapshot.to_obs_dict(self._config.rules.terminal_row, self._config.grid.width)

    def render(self) -> Optional[str]:
        """
        Render the stack as text, top row first.

        Returns:
            The text if render_mode is "ansi", None otherwise.
        """
        if self.render_mode != "ansi":
            return None

        snapshot = self._game.get_state()
        width = self._config.grid.width
        rows = {b.row: b for b in snapshot.blocks}
        lines = []
        for row in range(self._config.rules.terminal_row, -1, -1):
            if snapshot.current_block is not None and row == snapshot.current_block.row:
                cells = ["."] * width
                offset = self._game.motion.position
                for column in snapshot.current_block.columns:
                    target = int(np.floor(column + offset + 0.5))
                    if 0 <= target < width:
                        cells[target] = "o"
                lines.append(f"{row:2d} |{''.join(cells)}|")
            elif row in rows:
                lines.append(f"{row:2d} |{''.join('#' if c else '.' for c in rows[row].occupied)}|")
            else:
                lines.append(f"{row:2d} |{'.' * width}|")
        lines.append(f"score {snapshot.score}  prize {snapshot.potential_prize}  [{snapshot.phase.value}]")
        return "\n".join(lines)

    def close(self) -> None:
        """Nothing to release."""

    @property
    def game(self) -> BloxGame:
        """Access to the underlying game (for debugging/tools)."""
        return self._game

    @property
    def config(self) -> GameConfig:
        """Game configuration."""
        return self._config
