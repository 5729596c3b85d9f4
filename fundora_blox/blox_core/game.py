"""
Core Game
=========

Phase controller: the state machine that runs a stacking round.

    ready --start()------> playing --no overlap / top row--> ended
    ready --start_demo()-> demo    --no overlap / end row--> ended --(delay)--> demo
    ended --restart()----> ready

The controller owns all mutable run state. Collaborators read it through
get_state()/subscribe() and change it only through the command methods
(or dispatch()). Deferred continuations (spawn delay, autoplay stop, demo
restart, end-of-run settlement) go through a TimerRegistry and are
additionally guarded by the run id, so a timer from an earlier run never
acts on a later one.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from fundora_blox.blox_core.autoplay import AutoplayScheduler
from fundora_blox.blox_core.blocks import Block, MotionState, PlacedBlockInfo
from fundora_blox.blox_core.collaborators import (
    DebitResult,
    EndReason,
    InMemoryWallet,
    ScoreSink,
    Settlement,
    Wallet,
    submit_quietly,
)
from fundora_blox.blox_core.config_loader import GameConfig, get_config
from fundora_blox.blox_core.errors import (
    InsufficientFundsError,
    RngUnavailableError,
    StateError,
)
from fundora_blox.blox_core.motion import MotionIntegrator
from fundora_blox.blox_core.placement import PlacementResolver, PlacementResult
from fundora_blox.blox_core.prizes import Prize, PrizeCalculator
from fundora_blox.blox_core.rng import RandomSource
from fundora_blox.blox_core.scheduler import ManualScheduler, TimerKind, TimerRegistry
from fundora_blox.blox_core.scoring import ComboEngine, ScoreTracker
from fundora_blox.blox_core.spawn import SpawnPlanner
from fundora_blox.blox_core.stakes import Stake, StakeLadder
from fundora_blox.blox_core.state_snapshot import GameSnapshot, Phase

logger = logging.getLogger(__name__)

SettlementCallback = Callable[[Settlement], None]
Listener = Callable[[GameSnapshot], None]


class BloxGame:
    """
    Main game controller.

    Orchestrates:
    - Spawn planning and per-tick motion
    - Placement, combo and score
    - Prize calculation and settlement against the wallet
    - Demo autoplay
    - Deferred tasks through the scheduler
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        seed: Optional[int] = None,
        rng: Optional[RandomSource] = None,
        scheduler=None,
        wallet: Optional[Wallet] = None,
        score_sink: Optional[ScoreSink] = None
    ):
        """
        Initialize game.

        Args:
            config: Game configuration. Uses default if None.
            seed: Random seed, used when rng is None.
            rng: Random source. Built from seed if None.
            scheduler: Deferred-task backend. ManualScheduler if None.
            wallet: Stake and payout account. In-memory wallet if None.
            score_sink: Optional leaderboard/persistence sink.
        """
        if config is None:
            config = get_config()

        self._config = config
        self._rng = rng if rng is not None else RandomSource(seed)
        self._scheduler = scheduler if scheduler is not None else ManualScheduler()
        self._timers = TimerRegistry(self._scheduler)
        self._wallet = wallet if wallet is not None else InMemoryWallet(config.wallet.starting_balance)
        self._score_sink = score_sink

        # Subsystems
        self._ladder = StakeLadder(config)
        self._spawner = SpawnPlanner(self._rng, config, self._ladder)
        self._integrator = MotionIntegrator()
        self._resolver = PlacementResolver(config)
        self._combo = ComboEngine(config)
        self._scorer = ScoreTracker(config)
        self._prizes = PrizeCalculator(config, self._ladder)
        self._autoplay = AutoplayScheduler(self._timers, self._rng, config)

        # Run state
        self._phase = Phase.READY
        self._stake: Stake = self._ladder.default
        self._run_id: int = 0
        self._is_demo_run: bool = False
        self._blocks: List[Block] = []
        self._current: Optional[Block] = None
        self._motion: Optional[MotionState] = None
        self._last_direction: Optional[int] = None
        self._last_placed: Optional[PlacedBlockInfo] = None
        self._demo_end_row: Optional[int] = None
        self._end_reason: Optional[EndReason] = None
        self._settlement: Optional[Settlement] = None
        self._on_settled: Optional[SettlementCallback] = None

        self._listeners: List[Listener] = []

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def config(self) -> GameConfig:
        """Game configuration."""
        return self._config

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def stake(self) -> Stake:
        """Selected stake."""
        return self._stake

    @property
    def ladder(self) -> StakeLadder:
        return self._ladder

    @property
    def wallet(self) -> Wallet:
        return self._wallet

    @property
    def scheduler(self):
        return self._scheduler

    @property
    def timers(self) -> TimerRegistry:
        return self._timers

    @property
    def rng(self) -> RandomSource:
        return self._rng

    @property
    def prize_calculator(self) -> PrizeCalculator:
        return self._prizes

    @property
    def run_id(self) -> int:
        """Increments on every start, demo start and restart."""
        return self._run_id

    @property
    def score(self) -> int:
        """Current score."""
        return self._scorer.score

    @property
    def highest_row(self) -> int:
        return self._scorer.highest_row

    @property
    def current_block(self) -> Optional[Block]:
        """The moving block, if one is in flight."""
        return self._current

    @property
    def motion(self) -> Optional[MotionState]:
        return self._motion

    @property
    def blocks(self) -> List[Block]:
        """Stacked blocks, base first."""
        return list(self._blocks)

    @property
    def end_reason(self) -> Optional[EndReason]:
        return self._end_reason

    @property
    def settlement(self) -> Optional[Settlement]:
        """Settlement of the last paid or free round, if it has ended."""
        return self._settlement

    @property
    def is_demo_run(self) -> bool:
        return self._is_demo_run

    def get_potential_prize(self) -> Prize:
        """Prize the current highest row would pay at the selected stake."""
        return self._prizes.calculate(self._scorer.highest_row, self._stake)

    def get_state(self) -> GameSnapshot:
        """Immutable snapshot of the full state record."""
        motion = self._motion
        return GameSnapshot(
            phase=self._phase,
            run_id=self._run_id,
            blocks=tuple(self._blocks),
            current_block=self._current,
            position=motion.position if motion is not None else 0.0,
            direction=motion.direction if motion is not None else 1,
            speed=motion.speed if motion is not None else 0.0,
            stake=self._stake,
            available_stakes=self._ladder.stakes,
            credits=self._wallet.balance,
            score=self._scorer.score,
            bonus_points=self._scorer.bonus_points,
            highest_row=self._scorer.highest_row,
            blocks_stacked=self._scorer.blocks_stacked,
            combo_multiplier=self._combo.multiplier,
            combo_streak=self._combo.streak,
            perfect_alignments=self._combo.perfect_alignments,
            last_placed=self._last_placed,
            potential_prize=self.get_potential_prize()
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener for state snapshots.

        Args:
            listener: Called with a fresh GameSnapshot after every transition
                and every tick that moved the block.

        Returns:
            Function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.get_state()
        for listener in list(self._listeners):
            listener(snapshot)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def dispatch(self, command: str, **kwargs) -> Any:
        """
        Route a named command to its method.

        Raises:
            StateError: If the command is unknown.
        """
        handlers: Dict[str, Callable[..., Any]] = {
            "start": self.start,
            "start_demo": self.start_demo,
            "restart": self.restart,
            "stop": self.stop_block,
            "set_stake": self.set_stake,
            "cycle_stake": self.cycle_stake,
        }
        handler = handlers.get(command)
        if handler is None:
            raise StateError(f"Unknown command: {command!r}")
        return handler(**kwargs)

    def start(self, stake=None, on_settled: Optional[SettlementCallback] = None) -> bool:
        """
        Start a round: ready -> playing.

        Args:
            stake: Stake to play. Uses the selected stake if None.
            on_settled: Called with the Settlement when the round ends.

        Returns:
            False if not in the ready phase (nothing changes).

        Raises:
            StakeError: If the stake is not on the ladder.
            InsufficientFundsError: If the wallet cannot cover the stake.
                No state is changed.
        """
        if self._phase != Phase.READY:
            logger.debug("Ignored start in phase %s", self._phase.value)
            return False

        stake = self._ladder.validate(stake) if stake is not None else self._stake

        if not stake.is_free:
            if self._wallet.debit(stake.amount) != DebitResult.OK:
                logger.warning(
                    "Start rejected: stake %s exceeds balance %s", stake.label, self._wallet.balance
                )
                raise InsufficientFundsError(
                    f"Stake {stake.label} exceeds available balance {self._wallet.balance}"
                )
            logger.info("Debited stake %s, balance now %s", stake.label, self._wallet.balance)

        self._stake = stake
        self._on_settled = on_settled
        self._begin_run(Phase.PLAYING)
        return True

    def start_demo(self) -> bool:
        """
        Start a demo round: ready|ended -> demo.

        No stake is debited and nothing is settled; the round loops by
        itself until restart().
        """
        if self._phase not in (Phase.READY, Phase.ENDED):
            logger.debug("Ignored start_demo in phase %s", self._phase.value)
            return False
        self._on_settled = None
        self._begin_run(Phase.DEMO)
        return True

    def restart(self) -> bool:
        """
        Clear the round and return to ready, cancelling every pending timer.

        Allowed from ended and ready, and from demo so an idle presentation
        can be left at any moment. A paid round in flight cannot be abandoned.
        """
        if self._phase == Phase.PLAYING:
            logger.debug("Ignored restart while playing")
            return False

        self._timers.cancel_all()
        self._run_id += 1
        self._reset_run_state()
        self._is_demo_run = False
        self._phase = Phase.READY
        logger.info("Restarted; ready at stake %s", self._stake.label)
        self._notify()
        return True

    def stop_block(self) -> bool:
        """
        Stop the moving block and resolve its placement.

        Returns:
            True if a block was stopped, False if the command was ignored.
        """
        if not self._phase.is_active or self._current is None:
            logger.debug("Ignored stop in phase %s (no moving block)", self._phase.value)
            return False

        # Any stop supersedes a pending auto-stop
        self._autoplay.cancel()

        moving = self._current
        motion = self._motion
        previous = self._blocks[-1]

        result = self._resolver.resolve(moving, motion.position, previous)
        self._last_direction = motion.direction
        self._current = None
        self._motion = None

        if not result.has_overlap:
            logger.debug("Row %d missed at %.2f", moving.row, motion.position)
            self._end(EndReason.NO_OVERLAP)
            return True

        self._place(result, previous)

        if self._scorer.highest_row >= self._end_row():
            self._timers.arm(
                TimerKind.SETTLEMENT,
                self._config.timing.settle_delay,
                self._guarded(self._finish_top_reached)
            )
        else:
            self._timers.arm(
                TimerKind.SPAWN,
                self._config.timing.next_spawn_delay,
                self._guarded(self._spawn_next)
            )

        self._notify()
        return True

    def update_block_position(self, dt: float) -> bool:
        """
        Advance the moving block by dt seconds.

        Returns:
            True if a block moved.
        """
        if not self._phase.is_active or self._current is None:
            return False
        self._motion = self._integrator.advance(self._current, self._motion, dt)
        self._notify()
        return True

    def tick(self, dt: float) -> bool:
        """
        One frame: move the block, then run deferred tasks that fell due.

        Only advances the scheduler when it is a ManualScheduler; a real
        event loop runs its own timers.
        """
        moved = self.update_block_position(dt)
        if isinstance(self._scheduler, ManualScheduler):
            self._scheduler.advance(dt)
        return moved

    def set_stake(self, stake) -> bool:
        """
        Select a stake while ready.

        Returns:
            False if not ready or the wallet cannot cover it.

        Raises:
            StakeError: If the stake is not on the ladder.
        """
        if self._phase != Phase.READY:
            logger.debug("Ignored set_stake in phase %s", self._phase.value)
            return False
        stake = self._ladder.validate(stake)
        if not self._can_afford(stake):
            logger.debug("Ignored set_stake %s: balance %s", stake.label, self._wallet.balance)
            return False
        self._stake = stake
        self._notify()
        return True

    def cycle_stake(self, direction: str = "up") -> bool:
        """
        Step the selected stake up or down the ladder, wrapping at the ends.

        A no-op if the next stake is not affordable.
        """
        if self._phase != Phase.READY:
            logger.debug("Ignored cycle_stake in phase %s", self._phase.value)
            return False
        candidate = self._ladder.cycle(self._stake, direction)
        if not self._can_afford(candidate):
            logger.debug("Ignored cycle_stake to %s: balance %s", candidate.label, self._wallet.balance)
            return False
        self._stake = candidate
        self._notify()
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _can_afford(self, stake: Stake) -> bool:
        return stake.is_free or stake.amount <= self._wallet.balance

    def _guarded(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Wrap a timer callback so it only acts within the run that armed it."""
        run_id = self._run_id

        def fire() -> None:
            if run_id != self._run_id:
                logger.debug("Dropped timer from run %d (now run %d)", run_id, self._run_id)
                return
            callback()

        return fire

    def _reset_run_state(self) -> None:
        self._combo.reset()
        self._scorer.reset()
        self._blocks = []
        self._current = None
        self._motion = None
        self._last_direction = None
        self._last_placed = None
        self._demo_end_row = None
        self._end_reason = None
        self._settlement = None

    def _begin_run(self, phase: Phase) -> None:
        self._timers.cancel_all()
        self._run_id += 1
        self._reset_run_state()
        self._is_demo_run = phase == Phase.DEMO
        self._phase = phase

        try:
            self._blocks.append(self._spawner.base_block())
            if self._is_demo_run:
                self._demo_end_row = self._autoplay.draw_end_row()
        except RngUnavailableError:
            logger.warning("Random source unavailable at run start; ending run %d", self._run_id)
            self._end(EndReason.RNG_UNAVAILABLE)
            return

        if self._is_demo_run:
            logger.info("Demo run %d started (ends at row %d)", self._run_id, self._demo_end_row)
        else:
            logger.info("Run %d started at stake %s", self._run_id, self._stake.label)

        self._timers.arm(
            TimerKind.SPAWN,
            self._config.timing.first_spawn_delay,
            self._guarded(self._spawn_next)
        )
        self._notify()

    def _end_row(self) -> int:
        terminal = self._config.rules.terminal_row
        if self._is_demo_run and self._demo_end_row is not None:
            return min(terminal, self._demo_end_row)
        return terminal

    def _spawn_next(self) -> None:
        if not self._phase.is_active or self._current is not None:
            logger.debug("Dropped spawn in phase %s", self._phase.value)
            return

        try:
            plan = self._spawner.plan(self._blocks[-1], self._last_direction, self._stake)
            self._current = plan.block
            self._motion = plan.motion
            if self._phase == Phase.DEMO:
                self._autoplay.arm(
                    plan.motion.position,
                    plan.motion.speed,
                    self._guarded(self._autoplay_stop)
                )
        except RngUnavailableError:
            logger.warning("Random source unavailable while spawning; ending run %d", self._run_id)
            self._end(EndReason.RNG_UNAVAILABLE)
            return

        self._notify()

    def _autoplay_stop(self) -> None:
        if self._phase != Phase.DEMO:
            return
        self.stop_block()

    def _place(self, result: PlacementResult, previous: Block) -> None:
        combo = self._combo.register(result.active_count, previous.active_count)
        event = self._scorer.apply_placement(result.block.row, result.active_count, combo.multiplier)
        self._blocks.append(result.block)
        self._last_placed = PlacedBlockInfo(
            row=result.block.row,
            columns=result.block.columns,
            is_perfect=combo.is_perfect
        )
        logger.debug(
            "Placed row %d columns %s: %r, streak %d",
            result.block.row, list(result.block.columns), event, combo.streak
        )

    def _finish_top_reached(self) -> None:
        if not self._phase.is_active:
            return
        self._end(EndReason.TOP_REACHED)

    def _end(self, reason: EndReason) -> None:
        """Enter ended: settle a real round, or schedule the next demo loop."""
        self._timers.cancel_all()
        self._current = None
        self._motion = None
        self._phase = Phase.ENDED
        self._end_reason = reason

        if self._is_demo_run:
            if reason != EndReason.RNG_UNAVAILABLE:
                self._timers.arm(
                    TimerKind.DEMO_RESTART,
                    self._config.timing.demo_restart_delay,
                    self._guarded(self._restart_demo)
                )
            logger.info("Demo run %d ended (%s) at row %d", self._run_id, reason.value, self._scorer.highest_row)
            self._notify()
            return

        stake = self._stake
        prize = self._prizes.calculate(self._scorer.highest_row, stake)
        if not prize.is_zero:
            self._wallet.credit(prize.amount, prize.kind)

        settlement = Settlement(
            stake=stake,
            prize=prize,
            score=self._scorer.score,
            bonus_points=self._scorer.bonus_points,
            highest_row=self._scorer.highest_row,
            blocks_stacked=self._scorer.blocks_stacked,
            perfect_alignments=self._combo.perfect_alignments,
            reason=reason
        )
        self._settlement = settlement
        logger.info(
            "Run %d ended (%s): row %d, score %d, prize %s, %s",
            self._run_id, reason.value, settlement.highest_row, settlement.score,
            prize, settlement.outcome
        )

        submit_quietly(self._score_sink, settlement)
        if self._on_settled is not None:
            try:
                self._on_settled(settlement)
            except Exception:
                logger.warning("Settlement callback failed for run %d", self._run_id, exc_info=True)
        self._notify()

    def _restart_demo(self) -> None:
        if self._phase != Phase.ENDED or not self._is_demo_run:
            return
        logger.info("Demo loop restarting")
        self.start_demo()
