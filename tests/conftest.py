# tests/conftest.py
import asyncio
import json

import pytest

from workers.llm import storyboard as orchestrator


def shots_json(*pairs):
    return json.dumps(
        [{"textToImagePrompt": t, "imageToVideoPrompt": v} for t, v in pairs],
        ensure_ascii=False,
    )


class FakeGemini:
    """替身客户端：按调用顺序返回预置回复；回复可以是文本、异常或 async 函数。"""

    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    async def generate_json_text(self, prompt, *, system_instruction, schema):
        self.calls.append({"prompt": prompt, "system_instruction": system_instruction, "schema": schema})
        reply = self.replies.pop(0)
        if callable(reply):
            reply = await reply(prompt)
        if isinstance(reply, Exception):
            raise reply
        await asyncio.sleep(0)
        return reply


@pytest.fixture
def fake_gemini(monkeypatch):
    def install(*replies):
        fake = FakeGemini(replies)
        monkeypatch.setattr(orchestrator, "get_client", lambda: fake)
        return fake

    return install
