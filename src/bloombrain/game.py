"""Play-state machine driving one exercise attempt."""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Any, Callable, List, Optional

from .errors import InvalidTransition
from .schemas import ExerciseDescriptor, GameType


logger = logging.getLogger(__name__)

MEMORIZE_BASE_MS = 2500
MEMORIZE_PER_LEVEL_MS = 800


class GameState(str, Enum):
    INTRO = "intro"
    MEMORIZE = "memorize"
    PLAY = "play"
    FEEDBACK = "feedback"


class Outcome(str, Enum):
    WIN = "win"
    LOSS = "loss"


TimerFactory = Callable[[float, Callable[[], None]], Any]


def _daemon_timer(seconds: float, callback: Callable[[], None]) -> threading.Timer:
    timer = threading.Timer(seconds, callback)
    timer.daemon = True
    return timer


def memorize_delay_ms(difficulty_level: int) -> int:
    return MEMORIZE_BASE_MS + difficulty_level * MEMORIZE_PER_LEVEL_MS


def judge(game_type: GameType, solution: List[int], selection: List[int]) -> Optional[Outcome]:
    """Judge the selections made so far.

    Returns ``None`` while a sequence is still correct but incomplete.
    """

    if game_type is GameType.SEQUENCE:
        for step, index in enumerate(selection):
            if step >= len(solution) or index != solution[step]:
                return Outcome.LOSS
        return Outcome.WIN if len(selection) == len(solution) else None
    if not selection:
        return None
    return Outcome.WIN if selection[0] in solution else Outcome.LOSS


class GameStateMachine:
    """intro -> (memorize) -> play -> feedback for a single descriptor.

    ``on_complete`` fires once, when a win is collected.
    """

    def __init__(
        self,
        descriptor: ExerciseDescriptor,
        on_complete: Optional[Callable[[ExerciseDescriptor], None]] = None,
        timer_factory: TimerFactory = _daemon_timer,
    ) -> None:
        self._on_complete = on_complete
        self._timer_factory = timer_factory
        self._timer: Optional[Any] = None
        self._lock = threading.RLock()
        self._attempt = 0
        self.closed = False
        self.load(descriptor)

    # ------------------------------------------------------------------
    # Transitions

    def load(self, descriptor: ExerciseDescriptor) -> None:
        """Start over with ``descriptor``; any pending memorize timer is dropped."""

        descriptor.game_data.validate()
        with self._lock:
            self._cancel_timer()
            self.descriptor = descriptor
            self.finished = False
            self._reset_attempt()

    def acknowledge(self) -> GameState:
        with self._lock:
            self._ensure_open()
            if self.state is not GameState.INTRO:
                raise InvalidTransition(f"cannot start from {self.state.value}")
            if self.descriptor.game_data.type is GameType.SEQUENCE:
                self.state = GameState.MEMORIZE
                self._start_memorize_timer()
            else:
                self.state = GameState.PLAY
            return self.state

    def select(self, index: int) -> Optional[Outcome]:
        """Apply one selection; returns the outcome once the round resolves."""

        with self._lock:
            if self.closed or self.state is not GameState.PLAY:
                return None
            game = self.descriptor.game_data
            if not 0 <= index < len(game.items):
                raise ValueError(f"selection {index} is outside the {len(game.items)} items")

            self.selection.append(index)
            outcome = judge(game.type, game.solution, self.selection)
            if outcome is None:
                return None
            if outcome is Outcome.LOSS and game.type is GameType.SEQUENCE:
                self.selection.pop()
            self.outcome = outcome
            self.state = GameState.FEEDBACK
            logger.debug("attempt %d on %s resolved: %s", self._attempt, self.descriptor.id, outcome.value)
            return outcome

    def retry(self) -> GameState:
        with self._lock:
            self._ensure_open()
            if self.state is not GameState.FEEDBACK or self.outcome is not Outcome.LOSS:
                raise InvalidTransition("retry is only available after a loss")
            self._reset_attempt()
            return self.state

    def collect(self) -> ExerciseDescriptor:
        with self._lock:
            self._ensure_open()
            if self.state is not GameState.FEEDBACK or self.outcome is not Outcome.WIN:
                raise InvalidTransition("collect is only available after a win")
            self.finished = True
            self._cancel_timer()
            descriptor = self.descriptor
        if self._on_complete is not None:
            self._on_complete(descriptor)
        return descriptor

    def close(self) -> None:
        """Tear down; a pending memorize timer never fires afterwards."""

        with self._lock:
            self.closed = True
            self._cancel_timer()

    # ------------------------------------------------------------------
    # Queries

    @property
    def memorize_delay_ms(self) -> int:
        return memorize_delay_ms(self.descriptor.difficulty_level)

    @property
    def expected_index(self) -> Optional[int]:
        """Next index a sequence attempt must select, if one is pending."""

        game = self.descriptor.game_data
        if game.type is not GameType.SEQUENCE or self.state is not GameState.PLAY:
            return None
        return game.solution[len(self.selection)]

    # ------------------------------------------------------------------
    # Internal helpers

    def _reset_attempt(self) -> None:
        self._attempt += 1
        self.state = GameState.INTRO
        self.selection: List[int] = []
        self.outcome: Optional[Outcome] = None

    def _ensure_open(self) -> None:
        if self.closed:
            raise InvalidTransition("game has been closed")
        if self.finished:
            raise InvalidTransition("rewards already collected for this game")

    def _start_memorize_timer(self) -> None:
        attempt = self._attempt
        timer = self._timer_factory(
            self.memorize_delay_ms / 1000.0,
            lambda: self._memorize_elapsed(attempt),
        )
        self._timer = timer
        timer.start()

    def _memorize_elapsed(self, attempt: int) -> None:
        with self._lock:
            if self.closed or attempt != self._attempt or self.state is not GameState.MEMORIZE:
                return
            self._timer = None
            self.state = GameState.PLAY

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None


__all__ = [
    "GameState",
    "GameStateMachine",
    "Outcome",
    "judge",
    "memorize_delay_ms",
]
