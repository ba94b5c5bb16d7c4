"""BloomBrain tool surface: the activity engine exposed as callable tools."""

from __future__ import annotations

import threading
from dataclasses import asdict
from typing import Any, Dict, Optional

from .companion import Companion
from .config import Settings
from .dashboard import ChildDashboard, GuardianDashboard
from .errors import InvalidTransition
from .library import ExerciseLibrary, presentation_for
from .live import LiveSessionStats
from .llm import GenerativeClient
from .provider import ExerciseProvider, is_ai_generated
from .schemas import AgeBand, CognitiveSkill, ExerciseDescriptor
from .store import LocalStore, ProgressLedger


TOOL_DESCRIPTIONS = {
    "list_activities": "List generated and preset missions, optionally for one skill.",
    "generate_exercise": "Build a new mission for a skill and theme and start it.",
    "start_mission": "Start a listed mission by id.",
    "acknowledge": "Leave the mission briefing.",
    "select_item": "Pick one item in the running mission.",
    "retry": "Try a lost mission again from the briefing.",
    "collect": "Collect seeds for a won mission.",
    "mission_state": "Describe the running mission.",
    "get_progress": "Summarise seeds, history and metrics for guardians.",
    "set_age_group": "Change the explorer's age band.",
    "story_hints": "Suggest short next actions for a story.",
    "ask_buddy": "Quick, child-friendly answer from BloomBuddy.",
}

_SKILL = {"type": "string", "enum": [skill.value for skill in CognitiveSkill]}


def _tool_input_schema(name: str) -> dict:
    if name == "list_activities":
        return {"type": "object", "properties": {"skill": _SKILL}}
    if name == "generate_exercise":
        return {
            "type": "object",
            "properties": {"skill": _SKILL, "theme": {"type": "string"}},
        }
    if name == "start_mission":
        return {
            "type": "object",
            "required": ["activity_id"],
            "properties": {"activity_id": {"type": "string"}},
        }
    if name == "select_item":
        return {
            "type": "object",
            "required": ["index"],
            "properties": {"index": {"type": "integer", "minimum": 0}},
        }
    if name == "set_age_group":
        return {
            "type": "object",
            "required": ["age_group"],
            "properties": {
                "age_group": {"type": "string", "enum": [band.value for band in AgeBand]},
            },
        }
    if name == "story_hints":
        return {
            "type": "object",
            "required": ["context"],
            "properties": {"context": {"type": "string"}},
        }
    if name == "ask_buddy":
        return {
            "type": "object",
            "required": ["prompt"],
            "properties": {"prompt": {"type": "string"}},
        }
    if name in TOOL_DESCRIPTIONS:
        return {"type": "object", "properties": {}}
    raise KeyError(f"Unknown tool {name}")


def activity_card(descriptor: ExerciseDescriptor) -> dict:
    payload = descriptor.to_payload()
    look = presentation_for(descriptor.primary_skill)
    payload["presentation"] = {"label": look.label, "icon": look.icon, "color": look.color}
    payload["aiGenerated"] = is_ai_generated(descriptor)
    return payload


class BloomBrainServer:
    """Single-explorer orchestration object; every public tool returns plain data."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[GenerativeClient] = None,
        library: Optional[ExerciseLibrary] = None,
    ) -> None:
        self.settings = settings or Settings.load()
        self.ledger = ProgressLedger(
            LocalStore(self.settings.database_path),
            history_limit=self.settings.history_limit,
        )
        self.client = client or GenerativeClient(api_key=self.settings.api_key, model=self.settings.model)
        self.companion = Companion(self.client)
        self.provider = ExerciseProvider(self.client, library=library)
        self.child = ChildDashboard(self.ledger, self.provider, self.companion)
        self.live_stats: Optional[LiveSessionStats] = None
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Public tools

    def list_activities(self, skill: Optional[str] = None) -> dict:
        return {"activities": [activity_card(a) for a in self.child.activities(skill)]}

    def generate_exercise(self, skill: Optional[str] = None, theme: str = "") -> dict:
        descriptor = self.child.build_exercise(skill, theme)
        if descriptor is None:
            return {"activity": None}
        return {"activity": activity_card(descriptor), "mission": self.mission_state()}

    def start_mission(self, activity_id: str) -> dict:
        for activity in self.child.activities():
            if activity.id == activity_id:
                self.child.start_mission(activity)
                return self.mission_state()
        raise ValueError(f"Unknown activity: {activity_id}")

    def acknowledge(self) -> dict:
        self._game().acknowledge()
        return self.mission_state()

    def select_item(self, index: int) -> dict:
        self._game().select(int(index))
        return self.mission_state()

    def retry(self) -> dict:
        self._game().retry()
        return self.mission_state()

    def collect(self) -> dict:
        result = self.child.collect()
        return {
            "entry": result.entry.to_payload(),
            "seeds": result.seeds,
            "encouragement": result.encouragement,
        }

    def mission_state(self) -> dict:
        game = self.child.game
        if game is None:
            return {"running": False}
        return {
            "running": True,
            "activityId": game.descriptor.id,
            "state": game.state.value,
            "selection": list(game.selection),
            "outcome": game.outcome.value if game.outcome else None,
            "memorizeDelayMs": game.memorize_delay_ms,
        }

    def get_progress(self) -> dict:
        report = GuardianDashboard(self.ledger, self.companion, self.live_stats).mount()
        return {
            "seeds": report.seeds,
            "ageGroup": self.ledger.age_group().value,
            "history": [entry.to_payload() for entry in report.history],
            "metrics": asdict(report.metrics),
            "insight": report.insight,
        }

    def set_age_group(self, age_group: str) -> dict:
        return {"ageGroup": self.child.set_age_group(age_group).value}

    def story_hints(self, context: str) -> dict:
        return {"hints": self.companion.story_hints(context)}

    def ask_buddy(self, prompt: str) -> dict:
        return {"text": self.companion.quick_answer(prompt)}

    # ------------------------------------------------------------------
    # Metadata helpers

    def list_tools(self) -> dict:
        """Return tool metadata for discovery."""

        tools = []
        for name, description in TOOL_DESCRIPTIONS.items():
            tools.append(
                {
                    "name": name,
                    "description": description,
                    "input_schema": _tool_input_schema(name),
                }
            )
        return {"tools": tools}

    def call_tool(self, name: str, arguments: Dict[str, Any]) -> Any:
        """Invoke a public tool; calls are serialised so each action stays atomic."""

        if name not in TOOL_DESCRIPTIONS:
            raise ValueError(f"Unknown tool: {name}")
        method = getattr(self, name)
        with self._lock:
            return method(**arguments)

    def close(self) -> None:
        self.child.close()

    def _game(self):
        if self.child.game is None:
            raise InvalidTransition("no mission is running")
        return self.child.game


__all__ = ["BloomBrainServer", "TOOL_DESCRIPTIONS", "activity_card"]
