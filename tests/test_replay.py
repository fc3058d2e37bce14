"""Tests for YAML transcript loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from chainmode.models.base import ModelConnectionError, ModelResponse
from chainmode.models.scripted import ScriptedProvider
from chainmode.replay import TranscriptError, load_transcript, parse_transcript

WEATHER = """\
system: You are a helpful assistant.
prompt: What is the weather in Paris?
responses:
  - text: ""
    tool_calls:
      - name: get_weather
        id: call_1
        arguments: {city: Paris}
  - text: It is sunny in Paris.
tools:
  get_weather:
    output: "sunny, 21C"
"""


class TestLoadTranscript:
    def test_loads_weather(self, tmp_path: Path):
        path = tmp_path / "weather.yaml"
        path.write_text(WEATHER)
        transcript = load_transcript(path)

        assert transcript.source_path == path
        assert [m.role for m in transcript.chain.messages] == ["system", "user"]
        assert transcript.chain.needs_response is True
        assert transcript.provider.remaining == 2
        assert transcript.tools.list_tools() == ["get_weather"]

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(TranscriptError, match="Cannot load"):
            load_transcript(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path: Path):
        path = tmp_path / "bad.yaml"
        path.write_text("responses: [unclosed\n")
        with pytest.raises(TranscriptError):
            load_transcript(path)


class TestParseTranscript:
    def test_seed_messages(self):
        transcript = parse_transcript({
            "messages": [
                {"role": "user", "content": "hi"},
                {"role": "assistant", "content": "hello"},
                {"role": "user", "content": "weather?"},
            ],
        })
        assert [m.content for m in transcript.chain.messages] == ["hi", "hello", "weather?"]
        assert transcript.provider.remaining == 0

    async def test_tool_call_ids_generated(self):
        transcript = parse_transcript({
            "prompt": "go",
            "responses": [{"tool_calls": [{"name": "a"}, {"name": "b"}]}],
        })
        response = await transcript.provider.complete([])
        ids = [call.id for call in response.tool_calls]
        assert len(set(ids)) == 2
        assert all(i.startswith("call_") for i in ids)

    @pytest.mark.parametrize("raw, message", [
        (None, "Empty"),
        ([], "Empty"),
        ("text", "Empty"),
        ({"responses": []}, "prompt"),
        ({"prompt": "go", "responses": {"text": "x"}}, "must be a list"),
        ({"prompt": "go", "tools": ["a"]}, "mapping"),
        ({"messages": "hi"}, "must be a list"),
        ({"messages": [{"role": "tool", "content": "x"}]}, "role"),
        ({"prompt": "go", "responses": ["plain"]}, "Invalid transcript entry"),
        ({"prompt": "go", "responses": [{"tool_calls": [{}]}]}, "Invalid transcript entry"),
    ])
    def test_invalid(self, raw, message):
        with pytest.raises(TranscriptError, match=message):
            parse_transcript(raw)


class TestScriptedProvider:
    async def test_exhausted_raises(self):
        provider = ScriptedProvider([ModelResponse(text="one")])
        assert (await provider.complete([])).text == "one"
        with pytest.raises(IndexError):
            await provider.complete([])
        assert len(provider.calls) == 2

    async def test_fallback_text(self):
        provider = ScriptedProvider([], fallback_text="done", model_name="replay")
        response = await provider.complete([{"role": "user", "content": "hi"}])
        assert response.text == "done"
        assert response.model == "replay"
        assert provider.name == "replay"

    async def test_scripted_exception(self):
        provider = ScriptedProvider([ModelConnectionError("refused")])
        with pytest.raises(ModelConnectionError):
            await provider.complete([])
