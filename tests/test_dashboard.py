import random
from datetime import datetime, timezone

import pytest

from bloombrain.companion import (
    CELEBRATION_FALLBACK,
    INSIGHT_FALLBACK,
    Companion,
)
from bloombrain.dashboard import (
    EMPTY_HISTORY_INSIGHT,
    ChildDashboard,
    GuardianDashboard,
    difficulty_for_seeds,
)
from bloombrain.errors import GenerationError, GenerationInProgress, InvalidTransition
from bloombrain.game import GameState, GameStateMachine, Outcome
from bloombrain.live import LiveSessionStats

from fakes import FakeClient


FIXED_NOW = datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc)


def _child(ledger, make_provider, timers, client=None):
    client = client or FakeClient(credentials=False)
    return ChildDashboard(
        ledger,
        make_provider(client),
        Companion(client),
        rng=random.Random(7),
        clock=lambda: FIXED_NOW,
        timer_factory=timers,
    )


def _win(dashboard, timers):
    game = dashboard.game
    game.acknowledge()
    if game.state is GameState.MEMORIZE:
        timers.last.fire()
    for index in game.descriptor.game_data.solution:
        if game.select(index) is not None:
            break
    assert game.outcome is Outcome.WIN


def test_collect_books_session_and_seed(ledger, make_provider, timers):
    client = FakeClient(text="Wonderful memory work!")
    dashboard = _child(ledger, make_provider, timers, client)
    dashboard.start_mission(dashboard.provider.fallback("7-9", "attention", "Fruit"))
    _win(dashboard, timers)

    result = dashboard.collect()

    assert result.seeds == 3
    assert result.encouragement == "Wonderful memory work!"
    history = ledger.history()
    assert len(history) == 1
    assert history[0].name == "Fruit Match"
    assert history[0].skill == "attention"
    assert history[0].timestamp == "2026-03-14T09:30:00.000Z"
    assert dashboard.game is None


def test_celebration_failure_does_not_block_bookkeeping(ledger, make_provider, timers):
    client = FakeClient(error=GenerationError("quota"))
    dashboard = _child(ledger, make_provider, timers, client)
    dashboard.start_mission(dashboard.provider.library.presets()[0])
    _win(dashboard, timers)

    result = dashboard.collect()

    assert result.encouragement == CELEBRATION_FALLBACK
    assert ledger.seeds() == 3
    assert len(ledger.history()) == 1


def test_seeds_increase_once_per_collection(ledger, make_provider, timers):
    dashboard = _child(ledger, make_provider, timers)
    for expected in range(3, 8):
        dashboard.start_mission(dashboard.provider.fallback("7-9", "logic", "Cars"))
        _win(dashboard, timers)
        assert dashboard.collect().seeds == expected
    assert ledger.seeds() == 7
    with pytest.raises(InvalidTransition):
        dashboard.collect()


def test_lost_mission_books_nothing(ledger, make_provider, timers):
    dashboard = _child(ledger, make_provider, timers)
    game = dashboard.start_mission(dashboard.provider.fallback("7-9", "logic", "Cars"))
    game.acknowledge()
    game.select(0)

    with pytest.raises(InvalidTransition):
        dashboard.collect()
    assert ledger.seeds() == 2
    assert ledger.history() == []


def test_build_exercise_starts_mission_with_seed_difficulty(ledger, make_provider, timers):
    for _ in range(6):
        ledger.add_seed()
    client = FakeClient(error=GenerationError("offline"))
    dashboard = _child(ledger, make_provider, timers, client)

    descriptor = dashboard.build_exercise("logic", "  ")

    assert dashboard.difficulty() == 4
    assert "Difficulty Level: 4 (1-10)." in client.prompts[0]
    assert "Theme: Nature Discovery." in client.prompts[0]
    assert dashboard.game.descriptor is descriptor
    assert dashboard.activities()[0] is descriptor
    assert dashboard.activities("logic")[0] is descriptor


def test_difficulty_for_seeds_bounds():
    assert difficulty_for_seeds(0) == 1
    assert difficulty_for_seeds(2) == 1
    assert difficulty_for_seeds(9) == 4
    assert difficulty_for_seeds(50) == 10


def test_build_is_blocked_while_generating(ledger, make_provider, timers):
    dashboard = _child(ledger, make_provider, timers)
    observed = []

    class ReentrantClient(FakeClient):
        def complete_json(self, prompt, schema, system=None, name="payload"):
            observed.append(dashboard.is_generating())
            with pytest.raises(GenerationInProgress):
                dashboard.build_exercise("logic")
            raise GenerationError("slow network")

    dashboard.provider.client = ReentrantClient()
    assert dashboard.build_exercise("attention") is not None
    assert observed == [True]
    assert not dashboard.is_generating()


def test_results_after_close_are_discarded(ledger, make_provider, timers):
    dashboard = _child(ledger, make_provider, timers)

    class ClosingClient(FakeClient):
        def complete_json(self, prompt, schema, system=None, name="payload"):
            dashboard.close()
            raise GenerationError("late")

    dashboard.provider.client = ClosingClient()
    assert dashboard.build_exercise("attention") is None
    assert dashboard.game is None
    assert dashboard.activities() == dashboard.provider.library.presets()


def test_auto_generate_does_not_duplicate(ledger, make_provider, timers):
    dashboard = _child(ledger, make_provider, timers)
    first = dashboard.auto_generate()
    second = dashboard.auto_generate()

    assert first.id == second.id
    generated = [a for a in dashboard.activities() if a.id == first.id]
    assert len(generated) == 1
    assert dashboard.game is None


def test_guardian_empty_history(ledger):
    client = FakeClient()
    report = GuardianDashboard(ledger, Companion(client)).mount()

    assert report.insight == EMPTY_HISTORY_INSIGHT
    assert client.prompts == []
    assert report.seeds == 2
    assert report.metrics.wmgc == 1.0


def test_guardian_report_with_history(ledger, make_provider, timers):
    child = _child(ledger, make_provider, timers)
    for skill in ("logic", "attention"):
        child.start_mission(child.provider.fallback("7-9", skill, "Park"))
        _win(child, timers)
        child.collect()

    client = FakeClient(text="Steady growth this week.")
    live = LiveSessionStats(alternative_attempts=1, total_attempts=2)
    report = GuardianDashboard(ledger, Companion(client), live_stats=live).mount()

    assert report.insight == "Steady growth this week."
    assert [entry.skill for entry in report.history] == ["attention", "logic"]
    assert report.metrics.cfm_percentage == 50
    assert report.seeds == 4
    assert "Latest Skill: attention" in client.prompts[0]


def test_guardian_insight_failure_uses_fallback(ledger, make_provider, timers):
    child = _child(ledger, make_provider, timers)
    child.start_mission(child.provider.fallback("7-9", "logic", "Park"))
    _win(child, timers)
    child.collect()

    report = GuardianDashboard(ledger, Companion(FakeClient(error=GenerationError("x")))).mount()
    assert report.insight == INSIGHT_FALLBACK


def test_collect_without_booking_is_rejected(ledger, make_provider, timers):
    dashboard = _child(ledger, make_provider, timers)
    descriptor = dashboard.provider.fallback("7-9", "logic", "Space")
    dashboard.game = GameStateMachine(descriptor, timer_factory=timers)
    _win(dashboard, timers)

    with pytest.raises(InvalidTransition):
        dashboard.collect()
    assert ledger.seeds() == 2
