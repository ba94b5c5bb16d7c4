"""Parent-facing scores derived from the session log."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from .live import LiveSessionStats
from .schemas import SessionLogEntry


EXPECTED_DURATION = 15
PAUSE_PENALTY = 0.1
FRUSTRATION_PENALTY = 0.2
NEUTRAL_FSI = 0.5


@dataclass(slots=True)
class SessionMetrics:
    session_duration: float
    expected_duration: float
    pauses_taken: int
    task_completion: bool
    frustration_signals: int
    successful_recall_level: int
    time_to_resume: int
    alternative_attempts: int
    total_attempts: int


@dataclass(slots=True)
class DerivedMetrics:
    total_missions: int
    fsi: float
    fsi_percentage: int
    wmgc: float
    cfm_percentage: int
    latest_skill: Optional[str] = None


def to_percentage(ratio: float) -> int:
    """Round half up, as the dashboard displays whole percentages."""

    return int(np.floor(ratio * 100 + 0.5))


def focus_stability_index(metrics: SessionMetrics) -> float:
    expected = metrics.expected_duration or EXPECTED_DURATION
    score = (
        metrics.session_duration / expected
        - metrics.pauses_taken * PAUSE_PENALTY
        - metrics.frustration_signals * FRUSTRATION_PENALTY
    )
    # a raw score of exactly zero carries no signal
    if score == 0 or np.isnan(score):
        score = NEUTRAL_FSI
    return float(np.clip(score, 0.0, 1.0))


def working_memory_growth(history: Sequence[SessionLogEntry]) -> float:
    if not history:
        return 1.0
    return float(np.mean([entry.difficulty for entry in history]))


def cognitive_flexibility(metrics: SessionMetrics) -> int:
    if metrics.total_attempts <= 0:
        return 0
    return to_percentage(metrics.alternative_attempts / metrics.total_attempts)


def recent_session(
    history: Sequence[SessionLogEntry],
    live: Optional[LiveSessionStats] = None,
) -> SessionMetrics:
    """Metrics for the most recent mission; ``history`` is oldest first."""

    latest = history[-1] if history else None
    live = live or LiveSessionStats()
    return SessionMetrics(
        session_duration=latest.duration if latest else 0,
        expected_duration=EXPECTED_DURATION,
        pauses_taken=live.pauses_taken,
        task_completion=latest is not None,
        frustration_signals=live.frustration_signals,
        successful_recall_level=latest.difficulty if latest else 1,
        time_to_resume=0,
        alternative_attempts=live.alternative_attempts,
        total_attempts=live.total_attempts,
    )


def summarize(
    history: Sequence[SessionLogEntry],
    live: Optional[LiveSessionStats] = None,
) -> DerivedMetrics:
    session = recent_session(history, live)
    fsi = focus_stability_index(session)
    return DerivedMetrics(
        total_missions=len(history),
        fsi=fsi,
        fsi_percentage=to_percentage(fsi),
        wmgc=working_memory_growth(history),
        cfm_percentage=cognitive_flexibility(session) if history else 0,
        latest_skill=history[-1].skill if history else None,
    )


def insight_prompt(summary: DerivedMetrics) -> str:
    return (
        "Act as a child development expert. Based on these metrics:\n"
        f"- Total Missions: {summary.total_missions}\n"
        f"- Focus Stability: {summary.fsi_percentage}%\n"
        f"- Memory Growth Average: {summary.wmgc:.1f}\n"
        f"- Cognitive Flexibility: {summary.cfm_percentage}%\n"
        f"- Latest Skill: {summary.latest_skill}\n"
        "Provide an encouraging 2-sentence insight for the parent about the child's development."
    )


__all__ = [
    "DerivedMetrics",
    "EXPECTED_DURATION",
    "SessionMetrics",
    "cognitive_flexibility",
    "focus_stability_index",
    "insight_prompt",
    "recent_session",
    "summarize",
    "to_percentage",
    "working_memory_growth",
]
