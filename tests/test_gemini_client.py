import asyncio
from types import SimpleNamespace

import pytest
from google.genai import types

from providers.llm.errors import ConfigurationError, TransportError
from providers.llm.gemini import GeminiClient, build_schema_from_dict
from workers.llm.storyboard import BRANCH_SCHEMA, STORYBOARD_SCHEMA


def _client_with(generate_content):
    client = GeminiClient(api_key="test-key", model="gemini-2.5-pro")
    client.client = SimpleNamespace(aio=SimpleNamespace(models=SimpleNamespace(generate_content=generate_content)))
    return client


def test_build_schema_for_shot_list():
    schema = build_schema_from_dict(STORYBOARD_SCHEMA)
    assert schema.type == types.Type.ARRAY
    assert schema.items.type == types.Type.OBJECT
    assert schema.items.required == ["textToImagePrompt", "imageToVideoPrompt"]
    assert schema.items.properties["imageToVideoPrompt"].type == types.Type.STRING
    assert schema.min_items == 1
    assert schema.max_items is None


def test_build_schema_for_single_branch_shot():
    schema = build_schema_from_dict(BRANCH_SCHEMA)
    assert schema.min_items == 1
    assert schema.max_items == 1


def test_build_schema_rejects_unknown_type():
    with pytest.raises(ValueError):
        build_schema_from_dict({"type": "tuple"})


def test_missing_key_raises_configuration_error(monkeypatch):
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    monkeypatch.delenv("API_KEY", raising=False)
    with pytest.raises(ConfigurationError):
        GeminiClient()


def test_generate_json_text_sends_one_request():
    calls = []

    async def generate_content(**kwargs):
        calls.append(kwargs)
        return SimpleNamespace(text='[{"textToImagePrompt":"a","imageToVideoPrompt":"b"}]', candidates=None)

    client = _client_with(generate_content)
    text = asyncio.run(client.generate_json_text("用户指令", system_instruction="系统指令", schema=STORYBOARD_SCHEMA))

    assert text.startswith("[")
    assert len(calls) == 1
    cfg = calls[0]["config"]
    assert calls[0]["model"] == "gemini-2.5-pro"
    assert "系统指令" in str(cfg.system_instruction)
    assert cfg.response_mime_type == "application/json"
    assert cfg.response_schema.type == types.Type.ARRAY
    assert calls[0]["contents"][0].parts[0].text == "用户指令"


def test_text_rebuilt_from_parts_when_text_empty():
    async def generate_content(**kwargs):
        cand = SimpleNamespace(
            finish_reason="FinishReason.STOP",
            content=SimpleNamespace(parts=[SimpleNamespace(text="[1,"), {"text": "2]"}]),
        )
        return SimpleNamespace(text="", candidates=[cand])

    client = _client_with(generate_content)
    assert asyncio.run(client.generate_json_text("p", system_instruction="s", schema=STORYBOARD_SCHEMA)) == "[1,2]"


def test_sdk_failure_becomes_transport_error():
    async def generate_content(**kwargs):
        raise ConnectionError("network unreachable")

    client = _client_with(generate_content)
    with pytest.raises(TransportError) as exc:
        asyncio.run(client.generate_json_text("p", system_instruction="s", schema=STORYBOARD_SCHEMA))
    assert exc.value.message == "network unreachable"
