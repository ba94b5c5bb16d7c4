"""Counters for a live story session: pauses, hint choices and story beats."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Set

import numpy as np


SILENCE_LEVEL = 0.05
PAUSE_SECONDS = 5.0
COMPLETION_BEATS = 5


@dataclass(slots=True)
class LiveSessionStats:
    session_duration: int = 0
    pauses_taken: int = 0
    task_completion: bool = False
    frustration_signals: int = 0
    alternative_attempts: int = 0
    total_attempts: int = 0


def rms_level(samples: Sequence[float]) -> float:
    frame = np.asarray(samples, dtype=np.float32)
    if frame.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(np.square(frame))))


class LiveSessionTracker:
    """Accumulate live-session signals; ``stop()`` yields the final stats."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._started_at: Optional[float] = None
        self._last_voice_at = 0.0
        self._chosen: Set[str] = set()
        self.story_beats = 0
        self.stats = LiveSessionStats()

    @property
    def active(self) -> bool:
        return self._started_at is not None

    def start(self) -> None:
        now = self._clock()
        self._started_at = now
        self._last_voice_at = now
        self._chosen.clear()
        self.story_beats = 0
        self.stats = LiveSessionStats()

    def audio_frame(self, samples: Sequence[float]) -> float:
        """Feed one microphone frame; a silence longer than five seconds counts as a pause."""

        level = rms_level(samples)
        if not self.active:
            return level
        now = self._clock()
        if level > SILENCE_LEVEL:
            self._last_voice_at = now
        elif now - self._last_voice_at > PAUSE_SECONDS:
            self.stats.pauses_taken += 1
            self._last_voice_at = now
        return level

    def choose_hint(self, hint: str) -> bool:
        """Record a hint choice; returns True when it had not been chosen before."""

        if not self.active:
            return False
        alternative = hint not in self._chosen
        self.stats.total_attempts += 1
        if alternative:
            self.stats.alternative_attempts += 1
        self._chosen.add(hint)
        return alternative

    def frustration(self) -> None:
        if self.active:
            self.stats.frustration_signals += 1

    def story_beat(self) -> None:
        if self.active:
            self.story_beats += 1

    def stop(self) -> LiveSessionStats:
        if self._started_at is not None:
            elapsed = self._clock() - self._started_at
            self.stats.session_duration = int(np.floor(elapsed / 60.0 + 0.5))
            self.stats.task_completion = self.story_beats > COMPLETION_BEATS
        self._started_at = None
        self._chosen.clear()
        return self.stats


__all__ = ["LiveSessionStats", "LiveSessionTracker", "rms_level"]
