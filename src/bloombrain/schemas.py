"""Dataclasses describing exercises, game payloads and session records."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping

from .errors import SchemaError


class AgeBand(str, Enum):
    YOUNG = "4-6"
    MIDDLE = "7-9"
    OLDER = "10-12"


class CognitiveSkill(str, Enum):
    WORKING_MEMORY = "working_memory"
    ATTENTION = "attention"
    EMOTION_REGULATION = "emotion_regulation"
    LOGIC = "logic"
    CREATIVITY = "creativity"
    METACOGNITION = "metacognition"


class GameType(str, Enum):
    SEQUENCE = "sequence"
    MATCHING = "matching"
    ODD_ONE_OUT = "odd_one_out"
    PATTERN_COMPLETION = "pattern_completion"
    EMOTIONAL_MATCHING = "emotional_matching"


class Tone(str, Enum):
    GENTLE = "gentle"
    ENCOURAGING = "encouraging"
    REFLECTIVE = "reflective"


MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 10


@dataclass(slots=True)
class GamePayload:
    type: GameType
    items: List[str]
    solution: List[int]

    def validate(self) -> None:
        """Raise ``SchemaError`` unless items and solution indices agree."""

        if not self.items:
            raise SchemaError("gameData.items must not be empty")
        if not self.solution:
            raise SchemaError("gameData.solution must not be empty")
        for index in self.solution:
            if not 0 <= index < len(self.items):
                raise SchemaError(
                    f"gameData.solution index {index} is outside items (len={len(self.items)})"
                )
        if self.type is GameType.MATCHING:
            if len(self.solution) != 2 or self.solution[0] == self.solution[1]:
                raise SchemaError("matching games need the two indices of the duplicate pair")
            first, second = (self.items[index] for index in self.solution)
            if first != second:
                raise SchemaError("matching solution must point at two identical items")
        elif self.type is not GameType.SEQUENCE and len(self.solution) != 1:
            raise SchemaError(f"{self.type.value} games need exactly one solution index")

    def to_payload(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "items": list(self.items),
            "solution": list(self.solution),
        }


@dataclass(slots=True)
class ExerciseDescriptor:
    id: str
    name: str
    age_group: AgeBand
    primary_skill: CognitiveSkill
    duration_minutes: int
    difficulty_level: int
    custom_instructions: str
    game_data: GamePayload
    research_basis: List[str] = field(default_factory=list)
    adaptive_rule: str = ""
    ai_tone: Tone = Tone.ENCOURAGING

    def to_payload(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "ageGroup": self.age_group.value,
            "primarySkill": self.primary_skill.value,
            "researchBasis": list(self.research_basis),
            "durationMinutes": self.duration_minutes,
            "difficultyLevel": self.difficulty_level,
            "adaptiveRule": self.adaptive_rule,
            "aiTone": self.ai_tone.value,
            "customInstructions": self.custom_instructions,
            "gameData": self.game_data.to_payload(),
        }


@dataclass(slots=True)
class SessionLogEntry:
    id: str
    name: str
    skill: str
    difficulty: int
    timestamp: str
    duration: int

    def to_payload(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "skill": self.skill,
            "difficulty": self.difficulty,
            "timestamp": self.timestamp,
            "duration": self.duration,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "SessionLogEntry":
        return cls(
            id=str(payload["id"]),
            name=str(payload.get("name", "Mystery Mission")),
            skill=str(payload.get("skill", CognitiveSkill.LOGIC.value)),
            difficulty=int(payload.get("difficulty", 1)),
            timestamp=str(payload["timestamp"]),
            duration=int(payload.get("duration", 5)),
        )


# ----------------------------------------------------------------------
# Local validation of untrusted documents


def _require(payload: Mapping[str, Any], key: str) -> Any:
    if key not in payload or payload[key] is None:
        raise SchemaError(f"missing field {key!r}")
    return payload[key]


def _text(payload: Mapping[str, Any], key: str) -> str:
    value = _require(payload, key)
    if not isinstance(value, str) or not value.strip():
        raise SchemaError(f"field {key!r} must be a non-empty string")
    return value.strip()


def _whole_number(value: Any, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SchemaError(f"field {key!r} must be a number")
    if isinstance(value, float) and not value.is_integer():
        raise SchemaError(f"field {key!r} must be a whole number")
    return int(value)


def _choice(enum_cls, value: Any, key: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise SchemaError(f"field {key!r} must be one of: {allowed}") from None


def _string_list(value: Any, key: str) -> List[str]:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise SchemaError(f"field {key!r} must be a list of strings")
    return list(value)


def game_payload_from_payload(payload: Any) -> GamePayload:
    if not isinstance(payload, Mapping):
        raise SchemaError("gameData must be an object")
    items = _string_list(_require(payload, "items"), "gameData.items")
    if any(not item.strip() for item in items):
        raise SchemaError("gameData.items must not contain blank entries")
    raw_solution = _require(payload, "solution")
    if not isinstance(raw_solution, list):
        raise SchemaError("gameData.solution must be a list")
    game = GamePayload(
        type=_choice(GameType, _require(payload, "type"), "gameData.type"),
        items=items,
        solution=[_whole_number(index, "gameData.solution") for index in raw_solution],
    )
    game.validate()
    return game


def descriptor_from_payload(payload: Any) -> ExerciseDescriptor:
    """Build a descriptor from a decoded JSON document, rejecting anything malformed."""

    if not isinstance(payload, Mapping):
        raise SchemaError("descriptor must be a JSON object")

    difficulty = _whole_number(_require(payload, "difficultyLevel"), "difficultyLevel")
    if not MIN_DIFFICULTY <= difficulty <= MAX_DIFFICULTY:
        raise SchemaError(f"difficultyLevel {difficulty} outside {MIN_DIFFICULTY}-{MAX_DIFFICULTY}")
    duration = _whole_number(_require(payload, "durationMinutes"), "durationMinutes")
    if duration <= 0:
        raise SchemaError("durationMinutes must be positive")

    tone = payload.get("aiTone") or Tone.ENCOURAGING.value
    adaptive_rule = payload.get("adaptiveRule") or ""
    if not isinstance(adaptive_rule, str):
        raise SchemaError("field 'adaptiveRule' must be a string")

    return ExerciseDescriptor(
        id=str(payload.get("id") or ""),
        name=_text(payload, "name"),
        age_group=_choice(AgeBand, _require(payload, "ageGroup"), "ageGroup"),
        primary_skill=_choice(CognitiveSkill, _require(payload, "primarySkill"), "primarySkill"),
        duration_minutes=duration,
        difficulty_level=difficulty,
        custom_instructions=_text(payload, "customInstructions"),
        game_data=game_payload_from_payload(_require(payload, "gameData")),
        research_basis=_string_list(payload.get("researchBasis") or [], "researchBasis"),
        adaptive_rule=adaptive_rule,
        ai_tone=_choice(Tone, tone, "aiTone"),
    )


__all__ = [
    "AgeBand",
    "CognitiveSkill",
    "GameType",
    "Tone",
    "GamePayload",
    "ExerciseDescriptor",
    "SessionLogEntry",
    "MIN_DIFFICULTY",
    "MAX_DIFFICULTY",
    "descriptor_from_payload",
    "game_payload_from_payload",
]
