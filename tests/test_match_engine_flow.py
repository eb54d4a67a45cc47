from matcher.game import LevelPhase, MatchEngine, Resolution
from matcher.rules_schema import RuleSet
from matcher.scheduling import ManualScheduler
from matcher.tiles import Color

A, B, C = Color.RED, Color.GREEN, Color.BLUE
# Three pairs after a shuffle: A at 0/3, B at 1/5, C at 2/4.
LAYOUT = [A, B, C, A, C, B]


def playing_engine(level=1, layout=LAYOUT, rules=None):
    scheduler = ManualScheduler()
    engine = MatchEngine(rules=rules or RuleSet(), scheduler=scheduler, seed=1)
    engine.start_level(level, layout=layout)
    scheduler.advance(engine.rules.preview.seconds)
    return engine, scheduler


def test_start_level_previews_then_hides():
    scheduler = ManualScheduler()
    engine = MatchEngine(scheduler=scheduler, seed=1)
    snapshot = engine.start_level(1, layout=LAYOUT)

    assert snapshot.phase is LevelPhase.PREVIEWING
    assert all(tile.is_revealed for tile in snapshot.tiles)
    assert snapshot.level.is_locked
    assert not snapshot.level.is_timer_running
    assert snapshot.level.time_remaining == 30

    assert not engine.reveal(0).accepted
    engine.tick()
    assert engine.state.time_remaining == 30

    scheduler.advance(1.75)
    assert engine.phase is LevelPhase.PREVIEWING

    scheduler.advance(0.25)
    assert engine.phase is LevelPhase.PLAYING
    assert not any(tile.is_revealed for tile in engine.tiles)
    assert not engine.state.is_locked
    assert engine.state.is_timer_running
    assert engine.pending_transition is None


def test_three_pair_scenario():
    engine, scheduler = playing_engine(level=2)

    engine.reveal(0)
    result = engine.reveal(3)
    assert result.resolution is Resolution.MATCH
    assert engine.state.score == 10 * 1 * 2
    assert engine.state.streak == 1
    assert engine.tiles[0].is_retired and engine.tiles[3].is_retired
    assert result.snapshot.remaining_tiles == 4

    engine.reveal(1)
    result = engine.reveal(2)
    assert result.resolution is Resolution.MISMATCH
    assert engine.state.streak == 0
    assert engine.phase is LevelPhase.RESOLVING
    assert engine.state.is_locked
    assert engine.state.is_timer_running
    assert not engine.reveal(5).accepted

    scheduler.advance(engine.rules.penalty_seconds)
    assert engine.phase is LevelPhase.PLAYING
    assert not engine.tiles[1].is_revealed and not engine.tiles[2].is_revealed
    assert engine.selection == []
    assert [tile.face for tile in engine.tiles] == LAYOUT

    engine.reveal(1)
    engine.reveal(5)
    assert engine.state.streak == 1
    assert engine.state.score == 40

    engine.reveal(2)
    result = engine.reveal(4)
    assert engine.phase is LevelPhase.LEVEL_COMPLETE
    assert not engine.state.is_timer_running
    assert engine.state.streak == 2
    # 40 for the streak-2 match plus 35 remaining seconds at 2 points each.
    assert result.points == 40 + 70
    assert engine.state.score == 150
    assert engine.outcome is not None
    assert engine.outcome.success
    assert engine.outcome.score == 150


def test_match_strictly_increases_score_streak_and_retirement():
    engine, _ = playing_engine()
    before = engine.snapshot()

    engine.reveal(2)
    engine.reveal(4)
    after = engine.snapshot()

    assert after.level.score > before.level.score
    assert after.level.streak > before.level.streak
    assert after.remaining_tiles == before.remaining_tiles - engine.rules.group_size


def test_mismatch_restores_hidden_tiles_and_board():
    engine, scheduler = playing_engine()
    engine.reveal(0)
    engine.reveal(3)
    faces = [tile.face for tile in engine.tiles]
    ids = [tile.id for tile in engine.tiles]

    engine.reveal(1)
    engine.reveal(4)
    assert engine.state.streak == 0
    scheduler.advance(1.0)

    assert engine.selection == []
    assert not engine.tiles[1].is_revealed and not engine.tiles[4].is_revealed
    assert [tile.face for tile in engine.tiles] == faces
    assert [tile.id for tile in engine.tiles] == ids
    assert engine.state.score == 10


def test_first_reveal_waits_for_a_partner():
    engine, _ = playing_engine()
    result = engine.reveal(0)

    assert result.accepted
    assert result.resolution is None
    assert result.snapshot.selection == (0,)
    assert engine.phase is LevelPhase.PLAYING


def test_outcome_callback_receives_completion():
    outcomes = []
    scheduler = ManualScheduler()
    engine = MatchEngine(scheduler=scheduler, on_outcome=outcomes.append)
    engine.start_level(1, layout=[A, A])
    scheduler.advance(2.0)

    engine.reveal(0)
    engine.reveal(1)

    assert len(outcomes) == 1
    assert outcomes[0].phase is LevelPhase.LEVEL_COMPLETE
    assert outcomes[0].level_number == 1
