"""BloomBuddy short-text services with in-character fallbacks."""

from __future__ import annotations

import logging
from typing import List

from .errors import ConfigurationError, ContentSafetyError, MediaRejected
from .llm import GenerativeClient
from .schemas import ExerciseDescriptor


logger = logging.getLogger(__name__)

CHILD_PROMPT = (
    "You are BloomBrain AI. Speak gently. Never rush. Encourage curiosity."
    " If the child struggles, slow down. Never judge. Never compare."
    " Maintain a soft, calm, and nurturing tone at all times."
)

KID_FRIENDLY_SYSTEM = (
    "You are BloomBuddy, a gentle, encouraging, and highly intelligent companion for children aged 4-12. "
    + CHILD_PROMPT
    + " Always use simple but accurate language. Be curious, positive, and safe."
    " If asked about complex topics, explain them using analogies children understand."
    " Do not generate any inappropriate, scary, or adult content."
)

HINTS_OFFLINE = ["Explore", "Say Hello", "Rest"]
HINTS_FALLBACK = ["Go left", "Go right", "Open it"]
MAX_HINTS = 4

CELEBRATION_FALLBACK = "You did it! Your brain is blooming like a beautiful flower in the sun! 🌸"
INSIGHT_FALLBACK = (
    "Your explorer is building strong cognitive foundations!"
    " Their focus stability is improving with every session."
)

MISSING_KEY_REPLY = "I need my magic key to think! Please check the Guardian portal."
SAFETY_REPLY = "I'm not sure how to answer that safely, let's talk about something else like dinosaurs or space!"
HICCUP_REPLY = "I had a tiny hiccup! Try asking me again?"
STUCK_REPLY = "My thinking gears got stuck! Let's try again in a moment."

MAX_MEDIA_BYTES = 20 * 1024 * 1024
MEDIA_TYPES = {"image/png", "image/jpeg", "image/webp", "image/gif"}

HINTS_SCHEMA = {
    "type": "object",
    "properties": {
        "hints": {"type": "array", "items": {"type": "string"}},
    },
    "required": ["hints"],
}


def _clean_hints(payload: object) -> List[str]:
    if isinstance(payload, dict):
        payload = payload.get("hints")
    if not isinstance(payload, list):
        return []
    hints = [item.strip() for item in payload if isinstance(item, str) and item.strip()]
    return hints[:MAX_HINTS]


class Companion:
    """Story hints, parent insights, celebrations and quick answers."""

    def __init__(self, client: GenerativeClient) -> None:
        self.client = client

    def story_hints(self, context: str) -> List[str]:
        if not self.client.has_credentials():
            return list(HINTS_OFFLINE)
        prompt = (
            f'Based on this story context: "{context}", suggest 3 very short (2-4 words)'
            " possible next actions for a child to take in the story."
            ' Return JSON of the form {"hints": [...]}.'
        )
        try:
            hints = _clean_hints(self.client.complete_json(prompt, HINTS_SCHEMA, name="story_hints"))
        except Exception as exc:
            logger.warning("Story hint generation failed: %s", exc)
            return list(HINTS_FALLBACK)
        return hints or list(HINTS_FALLBACK)

    def celebration(self, activity: ExerciseDescriptor) -> str:
        prompt = (
            f'Act as BloomBuddy, a gentle AI friend. A child just finished the "{activity.name}" activity.'
            " Write a one-sentence celebratory message that highlights their effort in"
            f" {activity.primary_skill.value.replace('_', ' ')}. Be very encouraging and whimsical."
        )
        return self._text_or(prompt, CELEBRATION_FALLBACK, system=KID_FRIENDLY_SYSTEM)

    def narrative_insight(self, prompt: str) -> str:
        return self._text_or(prompt, INSIGHT_FALLBACK)

    def quick_answer(self, prompt: str) -> str:
        """Short, fun answer for the chat tab; every failure maps to friendly copy."""

        system = (
            KID_FRIENDLY_SYSTEM
            + " Provide a short, fun fact or quick answer."
            " If appropriate, ask the child a tiny follow-up question to keep them thinking."
        )
        try:
            return self.client.complete_text(prompt, system=system)
        except ConfigurationError:
            return MISSING_KEY_REPLY
        except ContentSafetyError:
            return SAFETY_REPLY
        except Exception as exc:
            logger.warning("Quick answer failed: %s", exc)
            return HICCUP_REPLY

    def analyze_snapshot(self, data: bytes, mime_type: str, prompt: str) -> str:
        if len(data) > MAX_MEDIA_BYTES:
            raise MediaRejected(
                "Oops! That picture is too big for my tiny box. Try a smaller one under 20MB!"
            )
        if mime_type not in MEDIA_TYPES:
            raise MediaRejected("I can only look at PNG, JPEG, WebP or GIF pictures. Try another one!")
        if not data:
            raise MediaRejected("That picture looks empty. Can you pick another one?")
        try:
            return self.client.complete_vision(prompt, data, mime_type, system=KID_FRIENDLY_SYSTEM)
        except ConfigurationError:
            return MISSING_KEY_REPLY
        except ContentSafetyError:
            return SAFETY_REPLY
        except Exception as exc:
            logger.warning("Snapshot analysis failed: %s", exc)
            return STUCK_REPLY

    def _text_or(self, prompt: str, fallback: str, system: str = "") -> str:
        if not self.client.has_credentials():
            return fallback
        try:
            return self.client.complete_text(prompt, system=system or None)
        except Exception as exc:
            logger.warning("Text generation failed, using fallback: %s", exc)
            return fallback


__all__ = [
    "CELEBRATION_FALLBACK",
    "Companion",
    "HINTS_FALLBACK",
    "HINTS_OFFLINE",
    "INSIGHT_FALLBACK",
    "KID_FRIENDLY_SYSTEM",
    "MAX_MEDIA_BYTES",
]
