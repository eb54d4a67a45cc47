from matcher.game import LevelPhase, MatchEngine, RevealRejection
from matcher.rules_schema import RuleSet, TimerConfig
from matcher.scheduling import ManualScheduler
from matcher.tiles import Color

LAYOUT = [Color.RED, Color.GREEN, Color.RED, Color.GREEN]


def playing_engine(rules=None):
    scheduler = ManualScheduler()
    engine = MatchEngine(rules=rules or RuleSet(), scheduler=scheduler)
    engine.start_level(1, layout=LAYOUT)
    scheduler.advance(engine.rules.preview.seconds)
    return engine, scheduler


def test_ticking_down_the_clock_times_out():
    engine, _ = playing_engine()
    remaining = engine.state.time_remaining

    for _ in range(remaining - 1):
        engine.tick()
    assert engine.phase is LevelPhase.PLAYING
    assert engine.state.time_remaining == 1

    engine.tick()
    assert engine.phase is LevelPhase.TIMED_OUT
    assert engine.state.time_remaining == 0
    assert not engine.state.is_timer_running
    assert engine.outcome is not None and not engine.outcome.success

    frozen = engine.snapshot()
    engine.tick()
    engine.tick()
    assert engine.snapshot() == frozen


def test_reveal_after_timeout_rejected():
    engine, _ = playing_engine(RuleSet(timer=TimerConfig(base=1, per_level=0, minimum=1)))
    engine.tick()

    assert engine.reveal(0).rejection is RevealRejection.LOCKED


def test_clock_runs_during_mismatch_penalty():
    engine, _ = playing_engine()
    engine.reveal(0)
    engine.reveal(1)
    start = engine.state.time_remaining

    engine.tick()
    assert engine.phase is LevelPhase.RESOLVING
    assert engine.state.time_remaining == start - 1


def test_timeout_during_penalty_freezes_the_board():
    engine, scheduler = playing_engine(RuleSet(timer=TimerConfig(base=2, per_level=0, minimum=1)))
    engine.reveal(0)
    engine.reveal(1)

    engine.tick()
    engine.tick()
    assert engine.phase is LevelPhase.TIMED_OUT
    assert engine.pending_transition is None

    scheduler.advance(5.0)
    assert engine.phase is LevelPhase.TIMED_OUT
    assert engine.tiles[0].is_revealed and engine.tiles[1].is_revealed
    assert engine.selection == [0, 1]
