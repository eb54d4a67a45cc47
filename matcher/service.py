"""Convenience service layer for UI consumers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from .game import LevelOutcome, LevelPhase, MatchEngine
from .profiles import PersistenceError, Profile, ProfileStore
from .storage import MemoryBlobStorage
from .tiles import Color, serialize_tile, tile_label

logger = logging.getLogger(__name__)


@dataclass
class TileView:
    index: int
    id: str
    face: Optional[str]
    revealed: bool
    retired: bool
    label: str


@dataclass
class LevelView:
    phase: str
    level: int
    score: int
    streak: int
    time_remaining: int
    locked: bool
    timer_running: bool
    suspended: bool
    remaining_tiles: int
    selection: list[int]


@dataclass
class OutcomeView:
    level: int
    score: int
    success: bool
    time_remaining: int
    reason: str


@dataclass
class ProfileView:
    id: str
    name: str
    high_score: int
    total_points: int
    games_played: int
    active: bool


@dataclass
class SessionView:
    level: Optional[LevelView]
    tiles: list[TileView]
    outcome: Optional[OutcomeView]
    profile: Optional[ProfileView]
    session_over: bool
    recorded_points: Optional[int]
    error: Optional[str]


class GameService:
    """Facade composing the engine and the profile store for UI consumers.

    A session runs from :meth:`start_game` until the timer runs out or the
    player quits; only then is the score credited to the active profile.
    """

    def __init__(self, engine: Optional[MatchEngine] = None, store: Optional[ProfileStore] = None) -> None:
        self.engine = engine or MatchEngine()
        self.store = store if store is not None else ProfileStore(MemoryBlobStorage())
        self.engine.on_outcome = self._on_outcome
        self._session_over = False
        self._recorded_points: Optional[int] = None
        self._error: Optional[str] = None
        if not self.store.loaded:
            self._guard(self.store.load)
        if self.store.loaded:
            self._guard(self.store.ensure_default_profile)

    # Session lifecycle -------------------------------------------------

    def start_game(self, level: int = 1, *, layout: Optional[Sequence[Color]] = None) -> SessionView:
        self._reset_session()
        self.engine.start_level(level, layout=layout)
        return self.get_session_view()

    def continue_level(self) -> SessionView:
        self.engine.next_level()
        return self.get_session_view()

    def retry_level(self, *, layout: Optional[Sequence[Color]] = None) -> SessionView:
        if self.engine.phase is LevelPhase.IDLE:
            return self.get_session_view()
        if self._session_over:
            # The finished run was already credited; replay the level from zero.
            level = self.engine.state.level_number
            self._reset_session()
            self.engine.start_level(level, layout=layout)
        else:
            self.engine.retry_level(layout=layout)
        return self.get_session_view()

    def quit(self) -> SessionView:
        points = self.engine.abort()
        if self.engine.phase is not LevelPhase.IDLE and not self._session_over:
            self._end_session(points)
        return self.get_session_view()

    def has_active_level(self) -> bool:
        return self.engine.phase is not LevelPhase.IDLE and not self.engine.is_terminal

    # Actions -----------------------------------------------------------

    def reveal(self, index: int) -> SessionView:
        self.engine.reveal(index)
        return self.get_session_view()

    def tick(self) -> SessionView:
        self.engine.tick()
        return self.get_session_view()

    def pause(self) -> SessionView:
        self.engine.suspend()
        return self.get_session_view()

    def resume(self) -> SessionView:
        self.engine.resume()
        return self.get_session_view()

    # Profiles ----------------------------------------------------------

    def add_profile(self, name: str) -> Optional[ProfileView]:
        try:
            profile_id = self.store.add_profile(name)
        except PersistenceError as exc:
            self._report(exc)
            if not self.store.loaded:
                return None
            profile_id = self.store.profiles[-1].id
        return self._profile_view(self.store.get(profile_id))

    def select_profile(self, profile_id: str) -> Optional[ProfileView]:
        try:
            self.store.select_profile(profile_id)
        except PersistenceError as exc:
            self._report(exc)
            if not self.store.loaded:
                return None
        return self._profile_view(self.store.get(profile_id))

    def leaderboard(self) -> list[ProfileView]:
        return [self._profile_view(profile) for profile in self.store.leaderboard()]

    # Views -------------------------------------------------------------

    def get_session_view(self) -> SessionView:
        snapshot = self.engine.snapshot()
        level_view: Optional[LevelView] = None
        if snapshot.phase is not LevelPhase.IDLE:
            state = snapshot.level
            level_view = LevelView(
                phase=snapshot.phase.name.lower(),
                level=state.level_number,
                score=state.score,
                streak=state.streak,
                time_remaining=state.time_remaining,
                locked=state.is_locked,
                timer_running=state.is_timer_running,
                suspended=snapshot.suspended,
                remaining_tiles=snapshot.remaining_tiles,
                selection=list(snapshot.selection),
            )

        tiles = []
        for index, tile in enumerate(snapshot.tiles):
            payload = serialize_tile(tile)
            tiles.append(
                TileView(
                    index=index,
                    id=tile.id,
                    face=payload["face"],
                    revealed=tile.is_revealed,
                    retired=tile.is_retired,
                    label=tile_label(tile),
                )
            )

        outcome_view = None
        if snapshot.outcome is not None:
            outcome = snapshot.outcome
            outcome_view = OutcomeView(
                level=outcome.level_number,
                score=outcome.score,
                success=outcome.success,
                time_remaining=outcome.time_remaining,
                reason=outcome.phase.name.lower(),
            )

        active = self.store.active_profile
        return SessionView(
            level=level_view,
            tiles=tiles,
            outcome=outcome_view,
            profile=self._profile_view(active) if active is not None else None,
            session_over=self._session_over,
            recorded_points=self._recorded_points,
            error=self._error,
        )

    # Helpers -----------------------------------------------------------

    def _on_outcome(self, outcome: LevelOutcome) -> None:
        if outcome.phase in (LevelPhase.TIMED_OUT, LevelPhase.ABORTED) and not self._session_over:
            self._end_session(outcome.score)

    def _end_session(self, points: int) -> None:
        self._session_over = True
        self._recorded_points = points
        logger.info("Session over with %d points", points)
        self._guard(self.store.record_result, points)

    def _reset_session(self) -> None:
        self._session_over = False
        self._recorded_points = None
        self._error = None

    def _guard(self, action, *args):
        try:
            return action(*args)
        except PersistenceError as exc:
            self._report(exc)
            return None

    def _report(self, exc: PersistenceError) -> None:
        logger.warning("Profile data not saved: %s", exc)
        self._error = str(exc)

    def _profile_view(self, profile: Profile) -> ProfileView:
        return ProfileView(
            id=profile.id,
            name=profile.name,
            high_score=profile.high_score,
            total_points=profile.total_points,
            games_played=profile.games_played,
            active=profile.id == self.store.registry.active_id,
        )
