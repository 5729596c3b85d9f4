"""
Payout Evaluation Harness
=========================

Plays an agent through many seeded rounds at one stake and reports the
return to player, hit frequency and how high the agent gets.

Usage:
    python -m fundora_blox.evaluation.run_rtp --agent agents/baseline_reaction --stake 5 --rounds 200
"""

from __future__ import annotations

import argparse
import importlib.util
import json
import sys
import time
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Callable, Dict, List, Optional

import numpy as np

from fundora_blox.blox_core.env_gym import BloxEnv
from fundora_blox.blox_core.stakes import Stake


@dataclass
class EvalResult:
    """Result for a single seed."""
    seed: int
    highest_row: int
    score: int
    prize: Decimal
    prize_type: str
    profit: Decimal
    end_reason: str
    frames: int
    elapsed_time: float


@dataclass
class EvalSummary:
    """Summary of evaluation across all seeds."""
    stake: str
    rounds: int
    total_staked: Decimal
    total_cash_prize: Decimal
    rtp: Optional[float]
    hit_frequency: float
    mean_points: float
    mean_highest_row: float
    std_highest_row: float
    row_histogram: Dict[int, int]
    total_time: float
    results: List[EvalResult]


def load_seeds(path: str) -> List[int]:
    """
    Load seeds from a JSON file of the form {"seeds": [...]}.
    """
    with open(path, "r") as f:
        data = json.load(f)
    return data["seeds"]


def load_agent(agent_path: str) -> Callable:
    """
    Load an agent from a path.

    Args:
        agent_path: Path to agent directory or agent.py file.

    Returns:
        Agent's act function.
    """
    agent_path = Path(agent_path)

    if agent_path.is_dir():
        agent_file = agent_path / "agent.py"
    else:
        agent_file = agent_path

    if not agent_file.exists():
        raise FileNotFoundError(f"Agent file not found: {agent_file}")

    spec = importlib.util.spec_from_file_location("agent_module", agent_file)
    if spec is None or spec.loader is None:
        raise ImportError(f"Failed to load agent module from {agent_file}")

    module = importlib.util.module_from_spec(spec)
    sys.modules["agent_module"] = module
    spec.loader.exec_module(module)

    # BloxAgent class or act function
    if hasattr(module, "BloxAgent"):
        agent_instance = getattr(module, "BloxAgent")()
        if hasattr(agent_instance, "act"):
            return agent_instance.act
        raise AttributeError("BloxAgent class must have an 'act' method")

    elif hasattr(module, "act"):
        return getattr(module, "act")

    else:
        raise AttributeError(
            "Agent module must have either 'BloxAgent' class with 'act' method "
            "or standalone 'act' function"
        )


def evaluate_single_seed(
    agent_fn: Callable,
    seed: int,
    stake: str,
    env: Optional[BloxEnv] = None,
    verbose: bool = False
) -> EvalResult:
    """
    Play one round.

    Args:
        agent_fn: Agent's act function (obs) -> 0 or 1.
        seed: Random seed.
        stake: Stake label, e.g. "5" or "FREE".
        env: Environment to reuse. A new one is made if None.
        verbose: If True, print the outcome.
    """
    env = env if env is not None else BloxEnv()
    obs, info = env.reset(seed=seed, options={"stake": stake})
    start_time = time.time()

    done = False
    while not done:
        action = agent_fn(obs)
        obs, _, terminated, truncated, info = env.step(action)
        done = terminated or truncated

    elapsed = time.time() - start_time
    settlement = env.game.settlement

    if settlement is not None:
        prize = settlement.prize.amount
        prize_type = settlement.prize.kind.value
        profit = settlement.profit
    else:
        # Truncated before settling: the stake is lost
        prize = Decimal("0")
        prize_type = "points"
        profit = -Stake.parse(stake).cash_value

    result = EvalResult(
        seed=seed,
        highest_row=info["highest_row"],
        score=info["score"],
        prize=prize,
        prize_type=prize_type,
        profit=profit,
        end_reason=info["end_reason"] or "truncated",
        frames=info["frames"],
        elapsed_time=elapsed
    )

    if verbose:
        print(f"  Seed {seed}: row={result.highest_row}, prize={result.prize} {result.prize_type}, "
              f"profit={result.profit}, reason={result.end_reason}")

    return result


def evaluate_agent(
    agent_fn: Callable,
    stake: str = "1",
    seeds: Optional[List[int]] = None,
    rounds: int = 100,
    verbose: bool = True
) -> EvalSummary:
    """
    Evaluate an agent over many rounds at one stake.

    Args:
        agent_fn: Agent's act function (obs) -> 0 or 1.
        stake: Stake label.
        seeds: Seeds to play. range(rounds) if None.
        rounds: Number of rounds when seeds is None.
        verbose: If True, print progress and the summary.

    Returns:
        EvalSummary with aggregate statistics.
    """
    if seeds is None:
        seeds = list(range(rounds))

    stake_value = Stake.parse(stake)
    env = BloxEnv()

    if verbose:
        print(f"Evaluating {len(seeds)} rounds at stake {stake_value.label}...")

    results: List[EvalResult] = []
    total_start = time.time()
    for seed in seeds:
        results.append(evaluate_single_seed(agent_fn, seed, stake, env=env, verbose=verbose))
    total_time = time.time() - total_start
    env.close()

    rows = np.array([r.highest_row for r in results])
    cash = [r.prize for r in results if r.prize_type == "cash"]
    points = np.array([float(r.prize) if r.prize_type == "points" else 0.0 for r in results])
    hits = np.array([r.prize != 0 for r in results])

    total_staked = stake_value.cash_value * len(results)
    total_cash = sum(cash, Decimal("0"))
    rtp = float(total_cash / total_staked) if total_staked > 0 else None

    values, counts = np.unique(rows, return_counts=True)

    summary = EvalSummary(
        stake=stake_value.label,
        rounds=len(results),
        total_staked=total_staked,
        total_cash_prize=total_cash,
        rtp=rtp,
        hit_frequency=float(np.mean(hits)),
        mean_points=float(np.mean(points)),
        mean_highest_row=float(np.mean(rows)),
        std_highest_row=float(np.std(rows)),
        row_histogram={int(v): int(c) for v, c in zip(values, counts)},
        total_time=total_time,
        results=results
    )

    if verbose:
        print()
        print("=" * 50)
        print("PAYOUT SUMMARY")
        print("=" * 50)
        print(f"Stake:            {summary.stake}")
        print(f"Rounds:           {summary.rounds}")
        print(f"Total staked:     {summary.total_staked}")
        print(f"Total cash prize: {summary.total_cash_prize}")
        print(f"RTP:              {'n/a' if rtp is None else f'{rtp:.2%}'}")
        print(f"Hit frequency:    {summary.hit_frequency:.2%}")
        print(f"Mean points:      {summary.mean_points:.1f}")
        print(f"Mean top row:     {summary.mean_highest_row:.2f} (std {summary.std_highest_row:.2f})")
        print("Top row histogram:")
        for row, count in summary.row_histogram.items():
            print(f"  {row:2d}: {count}")
        print(f"Total time:       {total_time:.2f}s")
        print("=" * 50)

    return summary


def save_results(summary: EvalSummary, agent_name: str, output_path: str) -> None:
    """Save evaluation results to JSON."""
    data = {
        "agent": agent_name,
        "timestamp": time.strftime("%Y-%m-%d %H:%M:%S"),
        "stake": summary.stake,
        "rounds": summary.rounds,
        "total_staked": str(summary.total_staked),
        "total_cash_prize": str(summary.total_cash_prize),
        "rtp": summary.rtp,
        "hit_frequency": summary.hit_frequency,
        "mean_points": summary.mean_points,
        "mean_highest_row": summary.mean_highest_row,
        "std_highest_row": summary.std_highest_row,
        "row_histogram": {str(k): v for k, v in summary.row_histogram.items()},
        "total_time": summary.total_time,
        "results": [
            {
                "seed": r.seed,
                "highest_row": r.highest_row,
                "score": r.score,
                "prize": str(r.prize),
                "prize_type": r.prize_type,
                "profit": str(r.profit),
                "end_reason": r.end_reason,
                "frames": r.frames,
            }
            for r in summary.results
        ]
    }

    with open(output_path, "w") as f:
        json.dump(data, f, indent=2)

    print(f"Results saved to {output_path}")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Estimate the payout of a stacking agent")
    parser.add_argument(
        "--agent",
        type=str,
        required=True,
        help="Path to agent directory or agent.py file"
    )
    parser.add_argument(
        "--stake",
        type=str,
        default="1",
        help="Stake to play, e.g. 5 or FREE"
    )
    parser.add_argument(
        "--rounds",
        type=int,
        default=100,
        help="Number of rounds (seeds 0..rounds-1)"
    )
    parser.add_argument(
        "--seeds",
        type=str,
        default=None,
        help="Path to seed JSON, overrides --rounds"
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Path to save results JSON"
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Only print the summary"
    )

    args = parser.parse_args(argv)

    print(f"Loading agent from {args.agent}...")
    try:
        agent_fn = load_agent(args.agent)
    except (OSError, ImportError, AttributeError) as e:
        print(f"Error loading agent: {e}")
        return 1

    seeds = load_seeds(args.seeds) if args.seeds else None

    summary = evaluate_agent(
        agent_fn,
        stake=args.stake,
        seeds=seeds,
        rounds=args.rounds,
        verbose=not args.quiet
    )
    if args.quiet:
        print(f"{summary.stake}: RTP {summary.rtp}, hit frequency {summary.hit_frequency:.2%}")

    if args.output:
        save_results(summary, Path(args.agent).name, args.output)

    return 0


if __name__ == "__main__":
    sys.exit(main())
