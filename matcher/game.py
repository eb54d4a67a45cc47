"""Level orchestration for Color Matcher."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum, auto
from random import Random
from typing import Callable, List, Optional, Sequence, Tuple

from .board import deal_board, has_possible_match
from .rules_schema import RuleSet
from .scheduling import ManualScheduler, ScheduledHandle, Scheduler
from .scoring import completion_bonus, groups_for_level, preview_for_level, score_match, timer_for_level
from .tiles import Color, Tile, faces_match

logger = logging.getLogger(__name__)


class LevelPhase(Enum):
    IDLE = auto()
    PREVIEWING = auto()
    PLAYING = auto()
    RESOLVING = auto()
    LEVEL_COMPLETE = auto()
    TIMED_OUT = auto()
    ABORTED = auto()


TERMINAL_PHASES = frozenset({LevelPhase.LEVEL_COMPLETE, LevelPhase.TIMED_OUT, LevelPhase.ABORTED})


class EngineError(RuntimeError):
    """Base class for engine errors."""


class OutOfRange(EngineError, IndexError):
    """Raised when a tile index falls outside the board."""


class RevealRejection(Enum):
    LOCKED = auto()
    TIMER_STOPPED = auto()
    OUT_OF_RANGE = auto()
    RETIRED = auto()
    ALREADY_REVEALED = auto()
    SELECTION_FULL = auto()


class Resolution(Enum):
    MATCH = auto()
    MISMATCH = auto()


class TransitionKind(Enum):
    PREVIEW_END = auto()
    MISMATCH_RECOVERY = auto()


@dataclass(frozen=True)
class PendingTransition:
    kind: TransitionKind
    generation: int
    handle: ScheduledHandle = field(compare=False, repr=False)


@dataclass
class LevelState:
    level_number: int = 1
    time_remaining: int = 0
    is_locked: bool = True
    is_timer_running: bool = False
    streak: int = 0
    score: int = 0


@dataclass(frozen=True)
class LevelOutcome:
    level_number: int
    score: int
    success: bool
    time_remaining: int
    phase: LevelPhase


@dataclass(frozen=True)
class EngineSnapshot:
    phase: LevelPhase
    generation: int
    tiles: Tuple[Tile, ...]
    selection: Tuple[int, ...]
    level: LevelState
    outcome: Optional[LevelOutcome]
    suspended: bool

    @property
    def remaining_tiles(self) -> int:
        return sum(1 for tile in self.tiles if not tile.is_retired)


@dataclass(frozen=True)
class RevealResult:
    index: int
    accepted: bool
    snapshot: EngineSnapshot
    rejection: Optional[RevealRejection] = None
    resolution: Optional[Resolution] = None
    points: int = 0


@dataclass
class MatchEngine:
    """Run the levels of one game session.

    The engine is passive: a host loop calls :meth:`reveal` on input and
    :meth:`tick` once per second, and hands the engine a scheduler for the two
    deferred transitions (end of preview, recovery after a mismatch).
    """

    rules: RuleSet = field(default_factory=RuleSet)
    scheduler: Scheduler = field(default_factory=ManualScheduler)
    seed: Optional[int] = None
    on_outcome: Optional[Callable[[LevelOutcome], None]] = field(default=None, repr=False)

    rng: Random = field(init=False, repr=False)
    phase: LevelPhase = field(init=False, default=LevelPhase.IDLE)
    tiles: List[Tile] = field(init=False, default_factory=list)
    selection: List[int] = field(init=False, default_factory=list)
    state: LevelState = field(init=False, default_factory=LevelState)
    generation: int = field(init=False, default=0)
    outcome: Optional[LevelOutcome] = field(init=False, default=None)
    suspended: bool = field(init=False, default=False)
    _pending: Optional[PendingTransition] = field(init=False, default=None, repr=False)
    _banked_score: int = field(init=False, default=0, repr=False)

    def __post_init__(self) -> None:
        self.rng = Random(self.seed)

    # Level lifecycle ---------------------------------------------------

    def start_level(self, level_number: int, *, layout: Optional[Sequence[Color]] = None) -> EngineSnapshot:
        """Deal a fresh level with the score reset to zero."""
        return self._begin(level_number, score=0, layout=layout)

    def next_level(self) -> EngineSnapshot:
        """Advance after a completed level, carrying the score forward."""
        if self.phase is not LevelPhase.LEVEL_COMPLETE:
            return self.snapshot()
        return self._begin(self.state.level_number + 1, score=self.state.score)

    def retry_level(self, *, layout: Optional[Sequence[Color]] = None) -> EngineSnapshot:
        """Replay the current level from the score it started with."""
        if self.phase is LevelPhase.IDLE:
            return self.snapshot()
        return self._begin(self.state.level_number, score=self._banked_score, layout=layout)

    def abort(self) -> int:
        """Stop the level where it stands and return the score to record."""
        if self.phase is LevelPhase.IDLE:
            return 0
        if self.phase not in TERMINAL_PHASES:
            self._finish(LevelPhase.ABORTED, success=False)
        return self.state.score

    def suspend(self) -> EngineSnapshot:
        if self.phase is LevelPhase.IDLE or self.phase in TERMINAL_PHASES:
            return self.snapshot()
        self.suspended = True
        self._sync_flags()
        return self.snapshot()

    def resume(self) -> EngineSnapshot:
        if self.suspended:
            self.suspended = False
            self._sync_flags()
        return self.snapshot()

    # Input and time ----------------------------------------------------

    def reveal(self, index: int) -> RevealResult:
        rejection = self._check_reveal(index)
        if rejection is not None:
            logger.debug("Reveal of %s rejected: %s", index, rejection.name)
            return RevealResult(index=index, accepted=False, rejection=rejection, snapshot=self.snapshot())

        self.tiles[index] = self.tiles[index].revealed()
        self.selection.append(index)
        if len(self.selection) < self.rules.picks:
            return RevealResult(index=index, accepted=True, snapshot=self.snapshot())
        return self._resolve(index)

    def tick(self) -> EngineSnapshot:
        if not self.state.is_timer_running:
            return self.snapshot()
        self.state.time_remaining = max(0, self.state.time_remaining - 1)
        if self.state.time_remaining == 0:
            self._finish(LevelPhase.TIMED_OUT, success=False)
        return self.snapshot()

    # Views -------------------------------------------------------------

    def snapshot(self) -> EngineSnapshot:
        return EngineSnapshot(
            phase=self.phase,
            generation=self.generation,
            tiles=tuple(self.tiles),
            selection=tuple(self.selection),
            level=replace(self.state),
            outcome=self.outcome,
            suspended=self.suspended,
        )

    def tile(self, index: int) -> Tile:
        if not 0 <= index < len(self.tiles):
            raise OutOfRange(f"Tile index {index} outside board of {len(self.tiles)} tiles.")
        return self.tiles[index]

    @property
    def pending_transition(self) -> Optional[PendingTransition]:
        return self._pending

    @property
    def is_terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES

    # Internals ---------------------------------------------------------

    def _begin(self, level_number: int, *, score: int, layout: Optional[Sequence[Color]] = None) -> EngineSnapshot:
        if level_number < 1:
            raise ValueError(f"Level must be at least 1, got {level_number}.")
        tiles = deal_board(
            group_count=groups_for_level(self.rules, level_number),
            group_size=self.rules.group_size,
            rng=self.rng,
            layout=layout,
        )
        self._cancel_pending()
        self.generation += 1
        self.tiles = tiles
        self.selection = []
        self.state = LevelState(
            level_number=level_number,
            time_remaining=timer_for_level(self.rules, level_number),
            score=score,
        )
        self._banked_score = score
        self.outcome = None
        self.suspended = False
        self.phase = LevelPhase.PREVIEWING
        self._sync_flags()
        logger.info(
            "Level %d dealt: %d tiles, %ds on the clock (generation %d)",
            level_number,
            len(self.tiles),
            self.state.time_remaining,
            self.generation,
        )
        self._schedule(TransitionKind.PREVIEW_END, preview_for_level(self.rules, level_number), self._end_preview)
        return self.snapshot()

    def _check_reveal(self, index: int) -> Optional[RevealRejection]:
        if self.state.is_locked:
            return RevealRejection.LOCKED
        if not self.state.is_timer_running:
            return RevealRejection.TIMER_STOPPED
        if not 0 <= index < len(self.tiles):
            return RevealRejection.OUT_OF_RANGE
        tile = self.tiles[index]
        if tile.is_retired:
            return RevealRejection.RETIRED
        if tile.is_revealed:
            return RevealRejection.ALREADY_REVEALED
        if len(self.selection) >= self.rules.picks:
            return RevealRejection.SELECTION_FULL
        return None

    def _resolve(self, index: int) -> RevealResult:
        self.phase = LevelPhase.RESOLVING
        chosen = [self.tiles[i] for i in self.selection]

        if not faces_match(chosen):
            self.state.streak = 0
            self._sync_flags()
            logger.debug("Mismatch on %s; locking for %.2fs", self.selection, self.rules.penalty_seconds)
            self._schedule(TransitionKind.MISMATCH_RECOVERY, self.rules.penalty_seconds, self._recover_mismatch)
            return RevealResult(
                index=index,
                accepted=True,
                resolution=Resolution.MISMATCH,
                snapshot=self.snapshot(),
            )

        scored = score_match(self.rules, streak=self.state.streak, level=self.state.level_number)
        self.state.streak = scored.streak
        self.state.score += scored.points
        for i in self.selection:
            self.tiles[i] = self.tiles[i].retired()
        self.selection.clear()
        self.phase = LevelPhase.PLAYING
        logger.debug("Match scored %d (streak %d)", scored.points, scored.streak)

        points = scored.points
        if self._is_won():
            bonus = completion_bonus(self.rules, self.state.time_remaining)
            self.state.score += bonus
            points += bonus
            self._finish(LevelPhase.LEVEL_COMPLETE, success=True)
        else:
            self._sync_flags()
        return RevealResult(
            index=index,
            accepted=True,
            resolution=Resolution.MATCH,
            points=points,
            snapshot=self.snapshot(),
        )

    def _is_won(self) -> bool:
        unretired = sum(1 for tile in self.tiles if not tile.is_retired)
        if self.rules.win_rule == "single_remainder":
            return unretired <= 1
        if self.rules.win_rule == "exhausted":
            return not has_possible_match(self.tiles, self.rules.picks)
        return unretired == 0

    def _finish(self, phase: LevelPhase, *, success: bool) -> None:
        self._cancel_pending()
        self.phase = phase
        self._sync_flags()
        self.outcome = LevelOutcome(
            level_number=self.state.level_number,
            score=self.state.score,
            success=success,
            time_remaining=self.state.time_remaining,
            phase=phase,
        )
        logger.info("Level %d ended: %s with score %d", self.state.level_number, phase.name, self.state.score)
        if self.on_outcome is not None:
            self.on_outcome(self.outcome)

    def _sync_flags(self) -> None:
        self.state.is_timer_running = (
            self.phase in (LevelPhase.PLAYING, LevelPhase.RESOLVING) and not self.suspended
        )
        self.state.is_locked = self.suspended or self.phase is not LevelPhase.PLAYING

    def _schedule(self, kind: TransitionKind, delay: float, effect: Callable[[], None]) -> None:
        generation = self.generation

        def fire() -> None:
            self._apply_transition(kind, generation, effect)

        handle = self.scheduler.schedule(delay, fire)
        self._pending = PendingTransition(kind=kind, generation=generation, handle=handle)

    def _apply_transition(self, kind: TransitionKind, generation: int, effect: Callable[[], None]) -> None:
        pending = self._pending
        if pending is None or pending.kind is not kind or pending.generation != generation or generation != self.generation:
            logger.debug("Dropping stale %s transition from generation %d", kind.name, generation)
            return
        self._pending = None
        effect()

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.handle.cancel()
            self._pending = None

    def _end_preview(self) -> None:
        self.tiles = [tile.revealed(False) for tile in self.tiles]
        self.phase = LevelPhase.PLAYING
        self._sync_flags()
        logger.debug("Preview over for level %d", self.state.level_number)

    def _recover_mismatch(self) -> None:
        for i in self.selection:
            self.tiles[i] = self.tiles[i].revealed(False)
        self.selection.clear()
        self.phase = LevelPhase.PLAYING
        self._sync_flags()
