"""Thin wrapper over the OpenAI chat API used for all generated content."""

from __future__ import annotations

import base64
import json
import logging
import re
from typing import Any, Dict, List, Optional

import openai
from openai import OpenAI

from .errors import ConfigurationError, ContentSafetyError, GenerationError


logger = logging.getLogger(__name__)

FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)
SAFETY_CODES = {"content_filter", "content_policy_violation"}


def strip_code_fences(text: str) -> str:
    """Remove markdown code-fence markers the model sometimes wraps JSON in."""

    return FENCE_RE.sub("", text).strip()


class GenerativeClient:
    """Text, JSON and vision completions against a chat-completions model."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        client: Optional[Any] = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self._client = client

    def has_credentials(self) -> bool:
        return self._client is not None or bool(self.api_key)

    def complete_text(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        messages = self._messages(prompt, system)
        extra: Dict[str, Any] = {}
        if max_tokens is not None:
            extra["max_completion_tokens"] = max_tokens
        return self._create(messages, **extra)

    def complete_json(
        self,
        prompt: str,
        schema: Dict[str, Any],
        system: Optional[str] = None,
        name: str = "payload",
    ) -> Any:
        """Request a document shaped by ``schema`` and decode it.

        The schema is only a hint to the model; callers validate the result.
        """

        messages = self._messages(prompt, system)
        raw = self._create(
            messages,
            response_format={
                "type": "json_schema",
                "json_schema": {"name": name, "schema": schema},
            },
        )
        try:
            return json.loads(strip_code_fences(raw))
        except json.JSONDecodeError as exc:
            raise GenerationError(f"response was not valid JSON: {exc}") from exc

    def complete_vision(
        self,
        prompt: str,
        data: bytes,
        mime_type: str,
        system: Optional[str] = None,
    ) -> str:
        encoded = base64.b64encode(data).decode("ascii")
        messages: List[Dict[str, Any]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append(
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                    {
                        "type": "image_url",
                        "image_url": {"url": f"data:{mime_type};base64,{encoded}"},
                    },
                ],
            }
        )
        return self._create(messages)

    # ------------------------------------------------------------------
    # Internal helpers

    def _messages(self, prompt: str, system: Optional[str]) -> List[Dict[str, Any]]:
        messages: List[Dict[str, Any]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return messages

    def _sdk(self) -> Any:
        if self._client is None:
            if not self.api_key:
                raise ConfigurationError("OPENAI_API_KEY is not configured")
            self._client = OpenAI(api_key=self.api_key)
        return self._client

    def _create(self, messages: List[Dict[str, Any]], **extra: Any) -> str:
        client = self._sdk()
        try:
            resp = client.chat.completions.create(
                model=self.model,
                messages=messages,
                **extra,
            )
        except openai.BadRequestError as exc:
            if getattr(exc, "code", None) in SAFETY_CODES:
                raise ContentSafetyError(str(exc)) from exc
            raise GenerationError(str(exc)) from exc
        except openai.OpenAIError as exc:
            raise GenerationError(str(exc)) from exc

        choice = resp.choices[0]
        if choice.finish_reason == "content_filter":
            raise ContentSafetyError("response withheld by the content filter")
        text = (choice.message.content or "").strip()
        if not text:
            raise GenerationError("empty response")
        logger.debug("completion model=%s chars=%d", self.model, len(text))
        return text


__all__ = ["GenerativeClient", "strip_code_fences"]
