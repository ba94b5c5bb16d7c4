"""Child and guardian dashboards hosting the activity engine."""

from __future__ import annotations

import logging
import random
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional, Union

from .companion import Companion
from .errors import GenerationInProgress, InvalidTransition
from .game import GameStateMachine, TimerFactory
from .library import DEFAULT_THEME, SURPRISE_SKILLS, THEMES
from .live import LiveSessionStats
from .metrics import DerivedMetrics, insight_prompt, summarize
from .provider import ExerciseProvider
from .schemas import (
    AgeBand,
    CognitiveSkill,
    ExerciseDescriptor,
    MAX_DIFFICULTY,
    MIN_DIFFICULTY,
    SessionLogEntry,
)
from .store import ProgressLedger


logger = logging.getLogger(__name__)

EMPTY_HISTORY_INSIGHT = "No sessions recorded yet. Encourage your explorer to start their first mission!"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def iso_timestamp(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def difficulty_for_seeds(seeds: int) -> int:
    return min(max(MIN_DIFFICULTY, seeds // 2), MAX_DIFFICULTY)


@dataclass(slots=True)
class CompletionResult:
    entry: SessionLogEntry
    seeds: int
    encouragement: Optional[str] = None


@dataclass(slots=True)
class GuardianReport:
    seeds: int
    metrics: DerivedMetrics
    history: List[SessionLogEntry] = field(default_factory=list)
    insight: Optional[str] = None


class ChildDashboard:
    """Builds missions, runs them and books completed sessions."""

    def __init__(
        self,
        ledger: ProgressLedger,
        provider: ExerciseProvider,
        companion: Companion,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = _utc_now,
        timer_factory: Optional[TimerFactory] = None,
    ) -> None:
        self.ledger = ledger
        self.provider = provider
        self.companion = companion
        self._rng = rng or random.Random()
        self._clock = clock
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._busy: set[str] = set()
        self._epoch = 0
        self._generated: List[ExerciseDescriptor] = []
        self.mounted = True
        self.game: Optional[GameStateMachine] = None
        self.last_completion: Optional[CompletionResult] = None

    # ------------------------------------------------------------------
    # Persistent state

    @property
    def seeds(self) -> int:
        return self.ledger.seeds()

    @property
    def age_group(self) -> AgeBand:
        return self.ledger.age_group()

    def set_age_group(self, age_group: Union[AgeBand, str]) -> AgeBand:
        return self.ledger.set_age_group(age_group)

    def difficulty(self) -> int:
        return difficulty_for_seeds(self.seeds)

    def activities(self, skill: Optional[Union[CognitiveSkill, str]] = None) -> List[ExerciseDescriptor]:
        listed = self._generated + self.provider.library.presets()
        if skill is None:
            return listed
        skill = CognitiveSkill(skill)
        return [activity for activity in listed if activity.primary_skill == skill]

    # ------------------------------------------------------------------
    # Exercise generation

    def build_exercise(
        self,
        skill: Optional[Union[CognitiveSkill, str]] = None,
        theme: str = "",
    ) -> Optional[ExerciseDescriptor]:
        """Generate a mission and start it; ``None`` if the view closed meanwhile."""

        selected = CognitiveSkill(skill) if skill else self._rng.choice(SURPRISE_SKILLS)
        descriptor = self._generate("build", selected, theme.strip() or DEFAULT_THEME)
        if descriptor is None:
            return None
        self._generated.insert(0, descriptor)
        self.start_mission(descriptor)
        return descriptor

    def auto_generate(self) -> Optional[ExerciseDescriptor]:
        """Add a random-theme mission to the list without starting it."""

        descriptor = self._generate(
            "auto",
            self._rng.choice(SURPRISE_SKILLS),
            self._rng.choice(THEMES),
        )
        if descriptor is None:
            return None
        if any(existing.id == descriptor.id for existing in self._generated):
            return descriptor
        self._generated.insert(0, descriptor)
        return descriptor

    def is_generating(self, slot: str = "build") -> bool:
        with self._lock:
            return slot in self._busy

    def _generate(self, slot: str, skill: CognitiveSkill, theme: str) -> Optional[ExerciseDescriptor]:
        with self._lock:
            if slot in self._busy:
                raise GenerationInProgress(f"{slot} request already running")
            self._busy.add(slot)
            epoch = self._epoch
        try:
            descriptor = self.provider.generate(self.age_group, skill, self.difficulty(), theme)
        finally:
            with self._lock:
                self._busy.discard(slot)
        if not self._current(epoch):
            logger.info("Dropping %s exercise for a closed dashboard", slot)
            return None
        return descriptor

    # ------------------------------------------------------------------
    # Missions

    def start_mission(self, descriptor: ExerciseDescriptor) -> GameStateMachine:
        if self.game is not None:
            self.game.close()
        kwargs = {}
        if self._timer_factory is not None:
            kwargs["timer_factory"] = self._timer_factory
        self.game = GameStateMachine(descriptor, on_complete=self._book_session, **kwargs)
        self.last_completion = None
        return self.game

    def collect(self) -> CompletionResult:
        """Collect a won mission: book it, add a seed, then fetch the celebration."""

        if self.game is None:
            raise InvalidTransition("no mission is running")
        epoch = self._epoch
        descriptor = self.game.collect()
        result = self.last_completion
        if result is None:
            raise InvalidTransition("mission was collected without being booked")
        self.game = None

        message = self.companion.celebration(descriptor)
        if self._current(epoch):
            result.encouragement = message
        return result

    def _book_session(self, descriptor: ExerciseDescriptor) -> None:
        entry = SessionLogEntry(
            id=descriptor.id,
            name=descriptor.name,
            skill=descriptor.primary_skill.value,
            difficulty=descriptor.difficulty_level,
            timestamp=iso_timestamp(self._clock()),
            duration=descriptor.duration_minutes,
        )
        self.ledger.log_session(entry)
        seeds = self.ledger.add_seed()
        logger.info("Mission %s collected; seeds=%d", descriptor.id, seeds)
        self.last_completion = CompletionResult(entry=entry, seeds=seeds)

    # ------------------------------------------------------------------

    def close(self) -> None:
        """Unmount: pending results and timers no longer touch this view."""

        with self._lock:
            self.mounted = False
            self._epoch += 1
        if self.game is not None:
            self.game.close()

    def _current(self, epoch: int) -> bool:
        with self._lock:
            return self.mounted and epoch == self._epoch


class GuardianDashboard:
    """Parent view: history, seeds, derived metrics and a narrative insight."""

    def __init__(
        self,
        ledger: ProgressLedger,
        companion: Companion,
        live_stats: Optional[LiveSessionStats] = None,
    ) -> None:
        self.ledger = ledger
        self.companion = companion
        self.live_stats = live_stats
        self.mounted = False
        self.report: Optional[GuardianReport] = None

    def mount(self) -> GuardianReport:
        self.mounted = True
        history = self.ledger.history()
        summary = summarize(history, self.live_stats)
        report = GuardianReport(
            seeds=self.ledger.seeds(),
            metrics=summary,
            history=list(reversed(history)),
        )
        self.report = report
        if not history:
            report.insight = EMPTY_HISTORY_INSIGHT
            return report

        insight = self.companion.narrative_insight(insight_prompt(summary))
        if self.mounted and self.report is report:
            report.insight = insight
        return report

    def close(self) -> None:
        self.mounted = False
        self.report = None


__all__ = [
    "ChildDashboard",
    "CompletionResult",
    "EMPTY_HISTORY_INSIGHT",
    "GuardianDashboard",
    "GuardianReport",
    "difficulty_for_seeds",
    "iso_timestamp",
]
