"""Transcript replays: run a mode against scripted model and tool outcomes.

A transcript is a YAML file::

    system: You are a helpful assistant.
    prompt: What is the weather in Paris?
    responses:
      - text: ""
        tool_calls:
          - name: get_weather
            arguments: {city: Paris}
      - text: It is sunny in Paris.
    tools:
      get_weather:
        output: "sunny, 21C"

``messages`` (a list of ``{role, content}``) may be given instead of
``prompt`` to seed a longer conversation.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from chainmode.chain import ROLE_ASSISTANT, ROLE_SYSTEM, ROLE_USER, Chain, Message
from chainmode.models.scripted import ScriptedProvider
from chainmode.tools.registry import ToolRegistry
from chainmode.tools.scripted import registry_from_dict


class TranscriptError(Exception):
    """Raised when a transcript file is missing or malformed."""


@dataclass
class Transcript:
    """Everything needed to replay one run."""

    chain: Chain
    provider: ScriptedProvider
    tools: ToolRegistry
    source_path: Path | None = None


_SEED_ROLES = (ROLE_SYSTEM, ROLE_USER, ROLE_ASSISTANT)


def _seed_messages(raw: dict[str, Any]) -> list[Message]:
    messages: list[Message] = []
    if raw.get("system"):
        messages.append(Message.system(str(raw["system"])))

    if "messages" in raw:
        entries = raw["messages"]
        if not isinstance(entries, list):
            raise TranscriptError("'messages' must be a list")
        for entry in entries:
            if not isinstance(entry, dict) or entry.get("role") not in _SEED_ROLES:
                raise TranscriptError(
                    f"Each message needs a role in {_SEED_ROLES}, got {entry!r}"
                )
            messages.append(Message(role=entry["role"], content=str(entry.get("content", ""))))
    elif raw.get("prompt"):
        messages.append(Message.user(str(raw["prompt"])))
    else:
        raise TranscriptError("Transcript needs either 'prompt' or 'messages'")
    return messages


def parse_transcript(raw: Any) -> Transcript:
    """Build a ``Transcript`` from already-parsed YAML data."""
    if not raw or not isinstance(raw, dict):
        raise TranscriptError("Empty or invalid transcript")

    responses = raw.get("responses") or []
    if not isinstance(responses, list):
        raise TranscriptError("'responses' must be a list")
    tools = raw.get("tools") or {}
    if not isinstance(tools, dict):
        raise TranscriptError("'tools' must be a mapping of tool name to outcome")

    try:
        provider = ScriptedProvider.from_dicts(responses)
        registry = registry_from_dict(tools)
    except (KeyError, TypeError, ValueError) as e:
        raise TranscriptError(f"Invalid transcript entry: {e}") from e

    return Transcript(
        chain=Chain(messages=tuple(_seed_messages(raw))),
        provider=provider,
        tools=registry,
    )


def load_transcript(path: Path) -> Transcript:
    """Parse a YAML transcript file."""
    try:
        with open(path) as f:
            raw = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise TranscriptError(f"Cannot load transcript {path}: {e}") from e

    transcript = parse_transcript(raw)
    transcript.source_path = path
    return transcript
