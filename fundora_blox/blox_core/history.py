"""
Round History
=============

Append-only JSON Lines record of settled rounds.

Usage:
    from fundora_blox.blox_core import BloxGame, JsonlScoreStore

    store = JsonlScoreStore("history/rounds.jsonl")
    game = BloxGame(score_sink=store)
    game.start("5", on_settled=store.record)

record() writes the full settlement; submit_score() makes the store usable
as a plain ScoreSink and writes only the leaderboard fields. Every line
carries the paytable hash so audited rounds can be tied to the exact prize
and stake tables they were paid under.
"""

from __future__ import annotations

import hashlib
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from fundora_blox.blox_core.collaborators import Settlement
from fundora_blox.blox_core.config_loader import GameConfig, get_config


def compute_config_hash(config: Optional[GameConfig] = None) -> str:
    """Short hash of every config value that affects speed or payouts."""
    if config is None:
        config = get_config()

    hash_data = {
        "grid": {
            "width": config.grid.width,
            "base_width": config.grid.base_width,
            "randomize_base": config.grid.randomize_base,
            "rounding": config.grid.rounding,
        },
        "motion": {
            "base_speed": config.motion.base_speed,
            "min_increment": config.motion.min_increment,
            "max_increment": config.motion.max_increment,
            "money_line_row": config.motion.money_line_row,
            "spike_min": config.motion.spike_min,
            "spike_max": config.motion.spike_max,
            "flip_probability": config.motion.flip_probability,
        },
        "rules": {
            "terminal_row": config.rules.terminal_row,
        },
        "stakes": [
            {
                "amount": None if t.amount is None else str(t.amount),
                "speed_multiplier": t.speed_multiplier,
                "point_multiplier": str(t.point_multiplier),
            }
            for t in config.stakes.tiers
        ],
        "prizes": {
            "points_mode": config.prizes.points_mode,
            "cash": [[t.row, str(t.multiplier)] for t in config.prizes.cash],
            "points": [[t.row, t.points] for t in config.prizes.points],
            "stake_tiered_points": [
                [t.row, [[str(s), p] for s, p in t.by_stake]]
                for t in config.prizes.stake_tiered_points
            ],
            "free_play_points": [[t.row, t.points] for t in config.prizes.free_play_points],
        },
    }
    return hashlib.md5(json.dumps(hash_data, sort_keys=True).encode()).hexdigest()[:8]


class JsonlScoreStore:
    """
    Writes one JSON object per line to `path`.

    Parent directories are created on first write.
    """

    def __init__(self, path: Union[str, Path], config: Optional[GameConfig] = None):
        self._path = Path(path)
        self._config_hash = compute_config_hash(config)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def config_hash(self) -> str:
        return self._config_hash

    def record(self, settlement: Settlement) -> Dict[str, Any]:
        """Append a settled round. Returns the record written."""
        entry = {"timestamp": _timestamp()}
        entry.update(settlement.to_dict())
        entry["config_hash"] = self._config_hash
        self._append(entry)
        return entry

    def submit_score(self, score: int, blocks_stacked: int, highest_row: int) -> None:
        self._append({
            "timestamp": _timestamp(),
            "score": score,
            "blocks_stacked": blocks_stacked,
            "highest_row": highest_row,
            "config_hash": self._config_hash,
        })

    def _append(self, entry: Dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry, sort_keys=True) + "\n")


def load_history(path: Union[str, Path]) -> List[Dict[str, Any]]:
    """
    Read every record from a history file.

    Returns:
        Records in file order; empty list if the file does not exist.
    """
    path = Path(path)
    if not path.exists():
        return []
    records = []
    with open(path, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line:
                records.append(json.loads(line))
    return records


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")
