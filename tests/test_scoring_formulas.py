import pytest

from matcher.rules_schema import PreviewConfig, RuleSet, TimerConfig, preset
from matcher.scoring import (
    ScoringError,
    completion_bonus,
    groups_for_level,
    preview_for_level,
    score_match,
    timer_for_level,
)


def test_group_count_grows_then_caps():
    rules = RuleSet()
    counts = [groups_for_level(rules, level) for level in range(1, 15)]

    assert counts[0] == 3
    assert counts == sorted(counts)
    assert max(counts) == 8


def test_timer_grows_in_infinite_run_and_shrinks_in_direct_start():
    rules = preset("infinite_run")
    assert [timer_for_level(rules, level) for level in (1, 2, 3)] == [30, 35, 40]

    rules = preset("direct_start")
    assert [timer_for_level(rules, level) for level in (1, 2, 3)] == [60, 55, 50]
    assert timer_for_level(rules, 20) == 15


def test_timer_per_group_bonus():
    rules = RuleSet(timer=TimerConfig(base=10, per_level=0, per_group=2))
    assert timer_for_level(rules, 1) == 16


def test_preview_shrinks_to_minimum():
    rules = RuleSet(preview=PreviewConfig(seconds=2.0, shrink_per_level=0.5, minimum=0.5))

    assert preview_for_level(rules, 1) == 2.0
    assert preview_for_level(rules, 2) == 1.5
    assert preview_for_level(rules, 10) == 0.5
    assert preview_for_level(RuleSet(), 10) == 2.0


def test_match_score_scales_with_streak_and_level():
    rules = RuleSet()

    first = score_match(rules, streak=0, level=3)
    assert (first.streak, first.points) == (1, 30)

    third = score_match(rules, streak=2, level=2)
    assert (third.streak, third.points) == (3, 60)


def test_completion_bonus_uses_factor():
    assert completion_bonus(RuleSet(), 12) == 24
    assert completion_bonus(preset("direct_start"), 12) == 0
    assert completion_bonus(RuleSet(), -3) == 0


def test_level_zero_rejected():
    with pytest.raises(ScoringError):
        groups_for_level(RuleSet(), 0)
    with pytest.raises(ScoringError):
        score_match(RuleSet(), streak=0, level=0)
