"""Validation schema for Color Matcher rules configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from .tiles import PALETTE

WIN_RULES = ("all_retired", "single_remainder", "exhausted")


class TimerConfig(BaseModel):
    base: int = Field(30, ge=1, description="Seconds granted on level 1 before bonuses.")
    per_level: int = Field(
        5,
        description="Seconds added per level after the first. Negative values shrink the timer.",
    )
    per_group: int = Field(0, ge=0, description="Seconds added for every group on the board.")
    minimum: int = Field(10, ge=1, description="Floor applied after the level adjustment.")


class PreviewConfig(BaseModel):
    seconds: float = Field(2.0, ge=0, description="How long every tile stays face-up after dealing.")
    shrink_per_level: float = Field(0.0, ge=0, description="Preview seconds removed per level after the first.")
    minimum: float = Field(0.5, ge=0, description="Shortest preview once shrinking applies.")


class ScoringConfig(BaseModel):
    base_score: int = Field(10, ge=1, description="Points per match before streak and level multipliers.")
    time_bonus_factor: int = Field(2, ge=0, description="Points per remaining second on level completion.")


class RuleSet(BaseModel):
    group_size: int = Field(2, ge=2, description="Tiles sharing one face on the board.")
    selection_size: Optional[int] = Field(
        None,
        description="Tiles revealed per attempt; defaults to the group size.",
    )
    group_offset: int = Field(2, ge=0, description="Groups on the board are level + offset, capped.")
    max_groups: int = Field(8, ge=1, description="Cap on groups per board.")
    penalty_seconds: float = Field(1.0, ge=0, description="Lock duration after a mismatch.")
    win_rule: Literal["all_retired", "single_remainder", "exhausted"] = "all_retired"
    timer: TimerConfig = Field(default_factory=TimerConfig)
    preview: PreviewConfig = Field(default_factory=PreviewConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)

    @field_validator("max_groups")
    @classmethod
    def validate_max_groups(cls, value: int) -> int:
        if value > len(PALETTE):
            raise ValueError(f"At most {len(PALETTE)} groups fit the palette, got {value}.")
        return value

    @model_validator(mode="after")
    def validate_selection(self) -> RuleSet:
        if self.selection_size is None:
            self.selection_size = self.group_size
        if not 2 <= self.selection_size <= self.group_size:
            raise ValueError("Selection size must be between 2 and the group size.")
        if self.win_rule == "all_retired" and self.group_size % self.selection_size != 0:
            raise ValueError(
                "The all_retired win rule needs the group size to be a multiple of the selection size."
            )
        return self

    @property
    def picks(self) -> int:
        """Selection size with the default resolved."""
        return self.selection_size or self.group_size


PRESETS: dict[str, RuleSet] = {
    # Levels continue until the timer runs out; the timer grows with the level.
    "infinite_run": RuleSet(),
    # Each level is started directly; the timer shrinks as levels rise.
    "direct_start": RuleSet(
        timer=TimerConfig(base=60, per_level=-5, minimum=15),
        scoring=ScoringConfig(time_bonus_factor=0),
    ),
    "triples": RuleSet(
        group_size=3,
        group_offset=1,
        max_groups=6,
        win_rule="single_remainder",
        timer=TimerConfig(base=40, per_level=5),
    ),
    # Three colors dealt as triples and picked in pairs.
    "classic": RuleSet(
        group_size=3,
        selection_size=2,
        max_groups=3,
        win_rule="exhausted",
    ),
}

DEFAULT_PRESET = "infinite_run"


def preset(name: str = DEFAULT_PRESET) -> RuleSet:
    try:
        rules = PRESETS[name]
    except KeyError as exc:
        raise ValueError(f"Unknown rules preset: {name!r}") from exc
    return rules.model_copy(deep=True)


def load_rules(path: Union[str, Path]) -> RuleSet:
    """Read a JSON rules file; missing keys fall back to the defaults."""
    return RuleSet.model_validate_json(Path(path).read_text(encoding="utf-8"))
