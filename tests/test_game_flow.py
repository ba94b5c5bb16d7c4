import pytest

from bloombrain.errors import InvalidTransition
from bloombrain.game import GameState, GameStateMachine, Outcome, judge, memorize_delay_ms
from bloombrain.schemas import (
    AgeBand,
    CognitiveSkill,
    ExerciseDescriptor,
    GamePayload,
    GameType,
)


def _descriptor(game_type, items, solution, difficulty=2):
    return ExerciseDescriptor(
        id="test-1",
        name="Forest Friends",
        age_group=AgeBand.MIDDLE,
        primary_skill=CognitiveSkill.WORKING_MEMORY,
        duration_minutes=5,
        difficulty_level=difficulty,
        custom_instructions="Watch closely!",
        game_data=GamePayload(type=GameType(game_type), items=items, solution=solution),
    )


def _sequence(difficulty=2):
    return _descriptor("sequence", ["🦊", "🦉", "🐻", "🦌"], [0, 1, 3], difficulty)


def _matching():
    return _descriptor("matching", ["🐠", "🐙", "🐠", "🦀", "🐳", "🐢"], [0, 2])


def _playing(machine, timers):
    machine.acknowledge()
    if machine.state is GameState.MEMORIZE:
        timers.last.fire()
    assert machine.state is GameState.PLAY
    return machine


def test_sequence_in_order_wins(timers):
    machine = _playing(GameStateMachine(_sequence(), timer_factory=timers), timers)

    assert machine.select(0) is None
    assert machine.select(1) is None
    assert machine.state is GameState.PLAY
    assert machine.select(3) is Outcome.WIN
    assert machine.state is GameState.FEEDBACK
    assert machine.selection == [0, 1, 3]


def test_sequence_mismatch_loses_immediately(timers):
    machine = _playing(GameStateMachine(_sequence(), timer_factory=timers), timers)

    assert machine.select(0) is None
    assert machine.select(2) is Outcome.LOSS
    assert machine.state is GameState.FEEDBACK
    assert machine.outcome is Outcome.LOSS
    assert machine.selection == [0]


@pytest.mark.parametrize("wrong_step", [0, 1, 2])
def test_sequence_any_wrong_step_loses(timers, wrong_step):
    machine = _playing(GameStateMachine(_sequence(), timer_factory=timers), timers)
    solution = machine.descriptor.game_data.solution

    for step in range(wrong_step):
        assert machine.select(solution[step]) is None
    assert machine.select(2) is Outcome.LOSS


def test_matching_single_selection_resolves(timers):
    machine = _playing(GameStateMachine(_matching(), timer_factory=timers), timers)
    assert machine.select(2) is Outcome.WIN

    machine = _playing(GameStateMachine(_matching(), timer_factory=timers), timers)
    assert machine.select(3) is Outcome.LOSS
    assert machine.state is GameState.FEEDBACK


@pytest.mark.parametrize(
    "game_type,items,solution",
    [
        ("odd_one_out", ["🚗", "✈️", "🚢", "🥦"], [3]),
        ("pattern_completion", ["🌕", "🌘", "🌕", "🌘"], [1]),
        ("emotional_matching", ["Sharing a snack", "Happy 🥳", "Sad 😔"], [1]),
    ],
)
def test_single_choice_games(timers, game_type, items, solution):
    for index in range(len(items)):
        machine = GameStateMachine(_descriptor(game_type, items, solution), timer_factory=timers)
        assert machine.acknowledge() is GameState.PLAY
        expected = Outcome.WIN if index in solution else Outcome.LOSS
        assert machine.select(index) is expected
        assert machine.select(solution[0]) is None


def test_memorize_delay_scales_with_difficulty(timers):
    machine = GameStateMachine(_sequence(difficulty=3), timer_factory=timers)
    assert machine.acknowledge() is GameState.MEMORIZE
    assert machine.memorize_delay_ms == 2500 + 3 * 800
    assert timers.last.seconds == pytest.approx(4.9)
    assert timers.last.started
    assert memorize_delay_ms(1) == 3300


def test_selection_outside_play_is_ignored(timers):
    machine = GameStateMachine(_sequence(), timer_factory=timers)
    assert machine.select(0) is None
    machine.acknowledge()
    assert machine.select(0) is None
    assert machine.selection == []
    assert machine.state is GameState.MEMORIZE


def test_close_cancels_memorize_timer(timers):
    machine = GameStateMachine(_sequence(), timer_factory=timers)
    machine.acknowledge()
    machine.close()

    assert timers.last.cancelled
    timers.last.fire()
    assert machine.state is GameState.MEMORIZE


def test_new_descriptor_supersedes_pending_timer(timers):
    machine = GameStateMachine(_sequence(), timer_factory=timers)
    machine.acknowledge()
    stale = timers.last

    machine.load(_sequence(difficulty=5))
    assert stale.cancelled
    machine.acknowledge()
    stale.fire()
    assert machine.state is GameState.MEMORIZE
    timers.last.fire()
    assert machine.state is GameState.PLAY


def test_retry_only_after_loss_and_clears_selection(timers):
    machine = _playing(GameStateMachine(_sequence(), timer_factory=timers), timers)
    with pytest.raises(InvalidTransition):
        machine.retry()

    machine.select(0)
    machine.select(3)
    assert machine.retry() is GameState.INTRO
    assert machine.selection == []
    assert machine.outcome is None

    with pytest.raises(InvalidTransition):
        machine.collect()


def test_collect_notifies_once(timers):
    completed = []
    machine = GameStateMachine(_matching(), on_complete=completed.append, timer_factory=timers)
    _playing(machine, timers)
    machine.select(0)

    with pytest.raises(InvalidTransition):
        machine.retry()
    machine.collect()
    assert completed == [machine.descriptor]
    with pytest.raises(InvalidTransition):
        machine.collect()
    assert len(completed) == 1


def test_out_of_range_selection_rejected(timers):
    machine = _playing(GameStateMachine(_matching(), timer_factory=timers), timers)
    with pytest.raises(ValueError):
        machine.select(6)
    assert machine.state is GameState.PLAY


def test_judge_sequence_requires_full_length():
    assert judge(GameType.SEQUENCE, [0, 2, 4], [0, 2]) is None
    assert judge(GameType.SEQUENCE, [0, 2, 4], [0, 2, 4]) is Outcome.WIN
    assert judge(GameType.SEQUENCE, [0, 2, 4], [2]) is Outcome.LOSS
