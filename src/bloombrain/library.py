"""Static exercise library, offline fallbacks and presentation tables."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .schemas import (
    AgeBand,
    CognitiveSkill,
    ExerciseDescriptor,
    GamePayload,
    Tone,
    descriptor_from_payload,
    game_payload_from_payload,
)


DEFAULT_LIBRARY_PATH = Path(__file__).resolve().parent / "library.json"
DEFAULT_THEME = "Nature Discovery"
FALLBACK_SKILL = CognitiveSkill.WORKING_MEMORY

THEMES = (
    "Ocean Expedition",
    "Cloud Kingdom",
    "Dinosaur Valley",
    "Robot Factory",
    "Magic Library",
)

# "Surprise Me" only draws from skills that have an offline fallback.
SURPRISE_SKILLS = (
    CognitiveSkill.WORKING_MEMORY,
    CognitiveSkill.ATTENTION,
    CognitiveSkill.LOGIC,
    CognitiveSkill.EMOTION_REGULATION,
)


@dataclass(frozen=True, slots=True)
class SkillPresentation:
    label: str
    icon: str
    color: str


SKILL_PRESENTATION: Dict[CognitiveSkill, SkillPresentation] = {
    CognitiveSkill.WORKING_MEMORY: SkillPresentation("Memory Magic", "brain", "indigo"),
    CognitiveSkill.ATTENTION: SkillPresentation("Focus Power", "zap", "amber"),
    CognitiveSkill.LOGIC: SkillPresentation("Puzzle Master", "puzzle", "emerald"),
    CognitiveSkill.EMOTION_REGULATION: SkillPresentation("Feelings Hero", "smile", "rose"),
    CognitiveSkill.CREATIVITY: SkillPresentation("Dream Maker", "sparkles", "violet"),
    CognitiveSkill.METACOGNITION: SkillPresentation("Brain Watcher", "target", "sky"),
}

DIFFICULTY_LABELS = (
    "Easy Peasy",
    "Just Right",
    "Brainy",
    "Super Thinker",
    "Ultimate Master",
)


def presentation_for(skill: CognitiveSkill) -> SkillPresentation:
    return SKILL_PRESENTATION[CognitiveSkill(skill)]


def difficulty_label(level: int) -> str:
    """Map a 1-10 level onto the five child-facing difficulty names."""

    index = min(max(level - 1, 0) // 2, len(DIFFICULTY_LABELS) - 1)
    return DIFFICULTY_LABELS[index]


@dataclass(slots=True)
class FallbackTemplate:
    skill: CognitiveSkill
    name: str
    instructions: str
    game_data: GamePayload

    def build(self, descriptor_id: str, age_group: AgeBand, skill: CognitiveSkill, theme: str) -> ExerciseDescriptor:
        return ExerciseDescriptor(
            id=descriptor_id,
            name=self.name.replace("{theme}", theme),
            age_group=age_group,
            primary_skill=skill,
            duration_minutes=3,
            difficulty_level=1,
            custom_instructions=self.instructions.replace("{theme}", theme),
            game_data=GamePayload(
                type=self.game_data.type,
                items=list(self.game_data.items),
                solution=list(self.game_data.solution),
            ),
            research_basis=["Offline redundancy logic"],
            adaptive_rule="Standard fallback",
            ai_tone=Tone.GENTLE,
        )


class ExerciseLibrary:
    """Preset missions plus the per-skill offline fallback table."""

    def __init__(
        self,
        presets: Iterable[ExerciseDescriptor],
        fallbacks: Dict[CognitiveSkill, FallbackTemplate],
    ) -> None:
        self._presets: List[ExerciseDescriptor] = list(presets)
        self._fallbacks = dict(fallbacks)
        if FALLBACK_SKILL not in self._fallbacks:
            raise ValueError("library must define a working_memory fallback")

    @classmethod
    def from_json(cls, path: Optional[Path] = None) -> "ExerciseLibrary":
        data = json.loads((path or DEFAULT_LIBRARY_PATH).read_text(encoding="utf-8"))
        presets = [descriptor_from_payload(entry) for entry in data.get("presets", [])]
        fallbacks: Dict[CognitiveSkill, FallbackTemplate] = {}
        for skill_name, entry in data.get("fallbacks", {}).items():
            skill = CognitiveSkill(skill_name)
            fallbacks[skill] = FallbackTemplate(
                skill=skill,
                name=entry["name"],
                instructions=entry["instructions"],
                game_data=game_payload_from_payload(entry["gameData"]),
            )
        return cls(presets, fallbacks)

    def presets(self, skill: Optional[CognitiveSkill] = None) -> List[ExerciseDescriptor]:
        if skill is None:
            return list(self._presets)
        return [preset for preset in self._presets if preset.primary_skill == skill]

    def get(self, descriptor_id: str) -> Optional[ExerciseDescriptor]:
        for preset in self._presets:
            if preset.id == descriptor_id:
                return preset
        return None

    def fallback_template(self, skill: CognitiveSkill) -> FallbackTemplate:
        return self._fallbacks.get(CognitiveSkill(skill), self._fallbacks[FALLBACK_SKILL])


__all__ = [
    "DEFAULT_THEME",
    "DIFFICULTY_LABELS",
    "ExerciseLibrary",
    "FallbackTemplate",
    "SKILL_PRESENTATION",
    "SURPRISE_SKILLS",
    "SkillPresentation",
    "THEMES",
    "difficulty_label",
    "presentation_for",
]
