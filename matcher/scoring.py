"""Level progression and scoring formulas for Color Matcher."""

from __future__ import annotations

from dataclasses import dataclass

from .rules_schema import RuleSet
from .tiles import PALETTE


class ScoringError(ValueError):
    """Raised when a formula receives an impossible input."""


@dataclass(frozen=True)
class MatchScore:
    streak: int
    points: int


def _require_level(level: int) -> None:
    if level < 1:
        raise ScoringError(f"Level must be at least 1, got {level}.")


def groups_for_level(rules: RuleSet, level: int) -> int:
    """Number of face groups on the board; non-decreasing in the level."""
    _require_level(level)
    return max(1, min(level + rules.group_offset, rules.max_groups, len(PALETTE)))


def tiles_for_level(rules: RuleSet, level: int) -> int:
    return groups_for_level(rules, level) * rules.group_size


def timer_for_level(rules: RuleSet, level: int) -> int:
    _require_level(level)
    timer = rules.timer
    seconds = timer.base + timer.per_level * (level - 1) + timer.per_group * groups_for_level(rules, level)
    return max(timer.minimum, seconds)


def preview_for_level(rules: RuleSet, level: int) -> float:
    _require_level(level)
    preview = rules.preview
    if preview.shrink_per_level == 0:
        return preview.seconds
    shrunk = preview.seconds - preview.shrink_per_level * (level - 1)
    return max(min(preview.minimum, preview.seconds), shrunk)


def score_match(rules: RuleSet, *, streak: int, level: int) -> MatchScore:
    """Score a successful match; ``streak`` is the streak before this match."""
    _require_level(level)
    if streak < 0:
        raise ScoringError("Streak cannot be negative.")
    new_streak = streak + 1
    return MatchScore(streak=new_streak, points=rules.scoring.base_score * new_streak * level)


def completion_bonus(rules: RuleSet, time_remaining: int) -> int:
    return max(0, time_remaining) * rules.scoring.time_bonus_factor
