"""Scripted walkthrough shown before the first game."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .scheduling import ManualScheduler, ScheduledHandle, Scheduler

TUTORIAL_STEPS: Tuple[str, ...] = (
    "Tap the first card to reveal its color.",
    "Now find its match! Tap the second card.",
    "Great! Matches clear the board and increase your score.",
    "Be fast! Levels get harder and the timer changes as you climb.",
)

# Step index -> card (1 or 2) that has to be flipped before moving on.
REQUIRED_FLIPS = {0: 1, 1: 2}


@dataclass
class TutorialScript:
    scheduler: Scheduler = field(default_factory=ManualScheduler)
    advance_delay: float = 0.5
    steps: Tuple[str, ...] = TUTORIAL_STEPS

    step: int = field(init=False, default=0)
    flipped: List[bool] = field(init=False, default_factory=lambda: [False, False])
    finished: bool = field(init=False, default=False)
    _pending: Optional[ScheduledHandle] = field(init=False, default=None, repr=False)

    @property
    def instruction(self) -> str:
        return self.steps[self.step]

    @property
    def can_proceed(self) -> bool:
        card = REQUIRED_FLIPS.get(self.step)
        return card is None or self.flipped[card - 1]

    @property
    def is_last_step(self) -> bool:
        return self.step == len(self.steps) - 1

    def tap(self, card: int) -> bool:
        """Flip ``card`` if the current step asks for it; returns True when it did."""
        if self.finished or REQUIRED_FLIPS.get(self.step) != card:
            return False
        self.flipped[card - 1] = True
        expected = self.step
        self._pending = self.scheduler.schedule(self.advance_delay, lambda: self._auto_advance(expected))
        return True

    def next_step(self) -> bool:
        """Move on if allowed; finishing the last step ends the tutorial."""
        if self.finished or not self.can_proceed:
            return False
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        if self.is_last_step:
            self.finished = True
        else:
            self.step += 1
        return True

    def skip(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        self.finished = True

    def _auto_advance(self, expected_step: int) -> None:
        self._pending = None
        if self.step == expected_step:
            self.next_step()
