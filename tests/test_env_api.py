"""
Tests for the Gymnasium environment API and the state snapshot.
"""

import json

import numpy as np
import pytest

from fundora_blox.blox_core.config_loader import load_config
from fundora_blox.blox_core.env_gym import BloxEnv
from fundora_blox.blox_core.state_snapshot import PHASE_IDS, Phase


@pytest.fixture
def config():
    return load_config()


@pytest.fixture
def env():
    env = BloxEnv()
    yield env
    env.close()


def play_always_stop(env, seed, stake="1"):
    """Stop every block as soon as it appears; returns the info trail."""
    env.reset(seed=seed, options={"stake": stake})
    trail = []
    done = False
    while not done:
        _, _, terminated, truncated, info = env.step(1)
        trail.append((info["highest_row"], info["score"], info["phase"]))
        done = terminated or truncated
    return trail, info


class TestBloxEnv:
    """Test single environment API."""

    def test_reset_returns_obs_and_info(self, env):
        result = env.reset(seed=42)
        assert isinstance(result, tuple)
        assert len(result) == 2
        obs, info = result
        assert isinstance(obs, dict)
        assert isinstance(info, dict)

    def test_first_block_is_moving_after_reset(self, env):
        obs, info = env.reset(seed=42)
        assert obs["moving_mask"].sum() == 3
        assert int(obs["row"]) == 1
        assert int(obs["phase"]) == PHASE_IDS[Phase.PLAYING]
        assert info["phase"] == "playing"

    def test_observation_structure(self, env, config):
        obs, _ = env.reset(seed=42)
        width = config.grid.width
        assert obs["grid"].shape == (config.rules.terminal_row + 1, width)
        assert obs["moving_mask"].shape == (width,)
        assert obs["top_mask"].shape == (width,)
        assert obs["grid"][0].tolist() == [0, 0, 1, 1, 1, 0, 0]
        for key in ("phase", "position", "direction", "speed", "row", "score"):
            assert obs[key].shape == ()
        assert set(obs) == set(env.observation_space.spaces)

    def test_action_space(self, env):
        assert env.action_space.n == 2

    def test_step_returns_five_tuple(self, env):
        env.reset(seed=42)
        result = env.step(0)
        assert len(result) == 5
        obs, reward, terminated, truncated, info = result
        assert reward == 0.0
        assert not terminated
        assert not truncated
        assert not info["stopped"]

    def test_waiting_moves_block(self, env):
        obs, _ = env.reset(seed=42)
        start = float(obs["position"])
        obs, *_ = env.step(0)
        assert float(obs["position"]) != start

    def test_stop_places_block(self, env):
        env.reset(seed=42)
        obs, _, _, _, info = env.step(1)
        assert info["stopped"]
        assert info["blocks_stacked"] == 1
        assert obs["moving_mask"].sum() == 0

    def test_numpy_action(self, env):
        env.reset(seed=42)
        _, _, _, _, info = env.step(np.array(1))
        assert info["stopped"]

    def test_episode_terminates(self, env):
        trail, info = play_always_stop(env, seed=3)
        assert trail[-1][2] == "ended"
        assert info["end_reason"] in ("no_overlap", "top_reached")
        assert info["highest_row"] >= 1

    def test_same_seed_same_episode(self):
        a, b = BloxEnv(), BloxEnv()
        assert play_always_stop(a, seed=11)[0] == play_always_stop(b, seed=11)[0]

    def test_stake_option(self, env):
        env.reset(seed=1, options={"stake": "5"})
        _, _, _, _, info = env.step(0)
        assert info["stake"] == "$5.00"
        assert info["credits"] == pytest.approx(95.0)

    def test_truncation(self):
        env = BloxEnv(max_frames=5)
        env.reset(seed=1)
        for _ in range(4):
            _, _, terminated, truncated, _ = env.step(0)
            assert not truncated
        _, _, terminated, truncated, _ = env.step(0)
        assert truncated
        assert not terminated

    def test_ansi_render(self):
        env = BloxEnv(render_mode="ansi")
        env.reset(seed=1)
        text = env.render()
        assert " 0 |..###..|" in text
        assert "playing" in text

    def test_no_render_when_headless(self, env):
        env.reset(seed=1)
        assert env.render() is None


class TestGameSnapshot:
    """Test snapshot conversions."""

    def test_to_dict_is_json_serializable(self, env):
        env.reset(seed=5)
        env.step(1)
        data = env.game.get_state().to_dict()
        text = json.dumps(data)
        assert json.loads(text)["blocks"][0]["columns"] == [2, 3, 4]
        assert data["last_placed"]["row"] == 1
        assert data["potential_prize"]["type"] == "points"

    def test_obs_grid_tracks_stack(self, env):
        env.reset(seed=5)
        obs, *_ = env.step(1)
        assert obs["grid"][1].sum() >= 1
        assert obs["top_mask"].tolist() == obs["grid"][1].tolist()
