"""Replay provider: returns a fixed sequence of responses.

Drives a chain without a live model, for transcript replays and tests.
A response entry may be an exception instance, which is raised instead.
"""

from __future__ import annotations

import uuid

from chainmode.models.base import ModelProvider, ModelResponse, ToolCall


class ScriptedProvider(ModelProvider):
    """Replays scripted responses in order.

    Once the script is exhausted every further call raises
    ``IndexError`` unless ``fallback_text`` is set, in which case a
    plain text reply is returned.
    """

    def __init__(
        self,
        responses: list[ModelResponse | Exception],
        *,
        model_name: str = "scripted",
        fallback_text: str | None = None,
    ):
        self._responses = list(responses)
        self._model_name = model_name
        self._fallback_text = fallback_text
        self.calls: list[list[dict]] = []

    @classmethod
    def from_dicts(cls, entries: list[dict], **kwargs) -> ScriptedProvider:
        """Build from plain mappings, e.g. a parsed YAML transcript.

        Each entry has ``text`` and optional ``tool_calls``; each tool call
        has ``name``, optional ``arguments`` and optional ``id``.
        """
        responses: list[ModelResponse | Exception] = []
        for entry in entries:
            if not isinstance(entry, dict):
                raise ValueError(f"Scripted response must be a mapping, got {entry!r}")
            calls = [
                ToolCall(
                    id=str(call.get("id") or f"call_{uuid.uuid4().hex[:8]}"),
                    name=str(call["name"]),
                    arguments=dict(call.get("arguments") or {}),
                )
                for call in entry.get("tool_calls") or []
            ]
            responses.append(ModelResponse(
                text=str(entry.get("text", "")),
                tool_calls=tuple(calls),
            ))
        return cls(responses, **kwargs)

    @property
    def remaining(self) -> int:
        return len(self._responses)

    async def complete(self, messages, tools=None) -> ModelResponse:
        self.calls.append(list(messages))
        if not self._responses:
            if self._fallback_text is not None:
                return ModelResponse(text=self._fallback_text, model=self._model_name)
            raise IndexError("Scripted provider has no responses left")
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    @property
    def name(self) -> str:
        return self._model_name
