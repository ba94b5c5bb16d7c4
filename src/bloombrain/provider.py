"""Exercise provider: generated descriptors with a deterministic offline fallback."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Union

from .library import DEFAULT_THEME, ExerciseLibrary
from .llm import GenerativeClient
from .schemas import (
    AgeBand,
    CognitiveSkill,
    ExerciseDescriptor,
    GameType,
    Tone,
    descriptor_from_payload,
)


logger = logging.getLogger(__name__)

AI_PREFIX = "ai-"
FALLBACK_PREFIX = "fallback-"

GAME_GUIDANCE = """Game Mechanics:
1. 'sequence': Memory based. Provide 4-6 emojis in 'items'. 'solution' indices match memory order.
2. 'matching': Attention based. 6 items, exactly two identical. 'solution' indices are the matches.
3. 'odd_one_out': Logic based. 4-6 items, one different. 'solution' index is outlier.
4. 'pattern_completion': Logic based. 3 items in a pattern (e.g. A-B-A), 4th is the answer index in 'items'.
5. 'emotional_matching': EQ based. 'items[0]' is an emotional situation, the rest are feelings. 'solution' index is the matching feeling.

Guidelines:
- Use clear emojis.
- Make customInstructions child-friendly.
- Every 'solution' index must point into 'items'."""

EXERCISE_SCHEMA = {
    "type": "object",
    "properties": {
        "id": {"type": "string"},
        "name": {"type": "string"},
        "ageGroup": {"type": "string", "enum": [band.value for band in AgeBand]},
        "primarySkill": {"type": "string", "enum": [skill.value for skill in CognitiveSkill]},
        "researchBasis": {"type": "array", "items": {"type": "string"}},
        "durationMinutes": {"type": "number"},
        "difficultyLevel": {"type": "number"},
        "adaptiveRule": {"type": "string"},
        "aiTone": {"type": "string", "enum": [tone.value for tone in Tone]},
        "customInstructions": {"type": "string"},
        "gameData": {
            "type": "object",
            "properties": {
                "type": {"type": "string", "enum": [game.value for game in GameType]},
                "items": {"type": "array", "items": {"type": "string"}},
                "solution": {"type": "array", "items": {"type": "number"}},
            },
            "required": ["type", "items", "solution"],
        },
    },
    "required": [
        "name",
        "ageGroup",
        "primarySkill",
        "durationMinutes",
        "difficultyLevel",
        "customInstructions",
        "gameData",
    ],
}


def _millis() -> int:
    return int(time.time() * 1000)


def is_ai_generated(descriptor: ExerciseDescriptor) -> bool:
    return descriptor.id.startswith(AI_PREFIX)


def is_fallback(descriptor: ExerciseDescriptor) -> bool:
    return descriptor.id.startswith(FALLBACK_PREFIX)


def build_exercise_prompt(age_group: AgeBand, skill: CognitiveSkill, difficulty: int, theme: str) -> str:
    return (
        f"Create a fun cognitive exercise for a {age_group.value} year old child.\n"
        f"Theme: {theme}.\n"
        f"Focus Skill: {skill.value}.\n"
        f"Difficulty Level: {difficulty} (1-10).\n\n"
        f"{GAME_GUIDANCE}\n\n"
        "Return JSON matching the requested schema."
    )


class ExerciseProvider:
    """Produce one valid descriptor per request, never ``None``."""

    def __init__(
        self,
        client: GenerativeClient,
        library: Optional[ExerciseLibrary] = None,
        clock: Callable[[], int] = _millis,
    ) -> None:
        self.client = client
        self.library = library or ExerciseLibrary.from_json()
        self._clock = clock

    def generate(
        self,
        age_group: Union[AgeBand, str],
        skill: Union[CognitiveSkill, str],
        difficulty: int = 1,
        theme: str = "",
    ) -> ExerciseDescriptor:
        age_group = AgeBand(age_group)
        skill = CognitiveSkill(skill)
        theme = theme.strip() or DEFAULT_THEME

        if not self.client.has_credentials():
            logger.info("No generative credential configured; offline %s fallback", skill.value)
            return self.fallback(age_group, skill, theme)

        prompt = build_exercise_prompt(age_group, skill, difficulty, theme)
        try:
            payload = self.client.complete_json(prompt, EXERCISE_SCHEMA, name="bloombrain_activity")
            descriptor = descriptor_from_payload(payload)
        except Exception as exc:
            logger.warning("Exercise generation failed, using offline fallback: %s", exc)
            return self.fallback(age_group, skill, theme)

        if descriptor.primary_skill is not skill or descriptor.age_group is not age_group:
            logger.info(
                "Generated exercise was filed as %s/%s; keeping requested %s/%s",
                descriptor.primary_skill.value,
                descriptor.age_group.value,
                skill.value,
                age_group.value,
            )
            descriptor.primary_skill = skill
            descriptor.age_group = age_group
        descriptor.id = f"{AI_PREFIX}{self._clock()}"
        return descriptor

    def fallback(
        self,
        age_group: Union[AgeBand, str],
        skill: Union[CognitiveSkill, str],
        theme: str = "",
    ) -> ExerciseDescriptor:
        skill = CognitiveSkill(skill)
        template = self.library.fallback_template(skill)
        return template.build(
            descriptor_id=f"{FALLBACK_PREFIX}{self._clock()}",
            age_group=AgeBand(age_group),
            skill=skill,
            theme=theme.strip() or DEFAULT_THEME,
        )


__all__ = [
    "AI_PREFIX",
    "EXERCISE_SCHEMA",
    "ExerciseProvider",
    "FALLBACK_PREFIX",
    "build_exercise_prompt",
    "is_ai_generated",
    "is_fallback",
]
