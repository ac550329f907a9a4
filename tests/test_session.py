import asyncio
from datetime import timedelta

import pytest

from conftest import shots_json
from providers.llm.errors import ConfigurationError, TransportError
from schemas.branch import BranchRecord, BranchStatus, GenerationStatus, new_branch_id
from schemas.shot import BranchOptions, FacialExpression, GenerationOptions
from services.api.app.core.session import (
    NoStoryboardError,
    SessionRegistry,
    ShotIndexError,
    StoryboardSession,
)
from workers.llm import storyboard as orchestrator

THREE_SHOTS = shots_json(("一", "1"), ("二", "2"), ("三", "3"))


def test_generate_success_then_failure_replaces_state(fake_gemini):
    fake_gemini(THREE_SHOTS, TransportError("boom"))
    session = StoryboardSession()
    assert session.status is GenerationStatus.IDLE

    async def scenario():
        await session.generate("故事", GenerationOptions())
        assert session.status is GenerationStatus.SUCCESS
        assert len(session.storyboard.shots) == 3

        await session.generate("另一个故事", GenerationOptions())

    asyncio.run(scenario())
    assert session.status is GenerationStatus.FAILURE
    assert session.storyboard is None
    assert session.error == "Failed to generate storyboard: boom"


def test_loading_state_while_call_outstanding(fake_gemini):
    gate = asyncio.Event()

    async def held(prompt):
        await gate.wait()
        return THREE_SHOTS

    fake_gemini(held)
    session = StoryboardSession()

    async def scenario():
        task = asyncio.create_task(session.generate("故事", GenerationOptions()))
        await asyncio.sleep(0)
        assert session.status is GenerationStatus.LOADING
        gate.set()
        await task

    asyncio.run(scenario())
    assert session.status is GenerationStatus.SUCCESS


def test_concurrent_branches_do_not_cross_contaminate(fake_gemini):
    first_gate = asyncio.Event()

    async def slow_success(prompt):
        assert "第一个分支" in prompt
        await first_gate.wait()
        return shots_json(("分支一", "动作一"))

    async def fast_failure(prompt):
        assert "第二个分支" in prompt
        first_gate.set()
        return TransportError("quota exceeded")

    fake_gemini(THREE_SHOTS, slow_success, fast_failure)
    session = StoryboardSession()

    async def scenario():
        await session.generate("故事", GenerationOptions())
        return await asyncio.gather(
            session.branch(0, "第一个分支", BranchOptions()),
            session.branch(2, "第二个分支", BranchOptions(facial_expression=FacialExpression.FEAR)),
        )

    first, second = asyncio.run(scenario())
    records = {r.original_shot_index: r for r in session.snapshot().branches}

    assert first.id != second.id
    assert records[0].status is BranchStatus.SUCCEEDED
    assert records[0].generated_shot.text_to_image_prompt == "分支一"
    assert records[0].error is None
    assert records[2].status is BranchStatus.FAILED
    assert records[2].generated_shot is None
    assert records[2].error == "Failed to generate branch shot: quota exceeded"
    assert records[2].options.facial_expression is FacialExpression.FEAR
    # 分支失败不影响主分镜
    assert session.status is GenerationStatus.SUCCESS
    assert len(session.storyboard.shots) == 3


def test_pending_branch_is_visible(fake_gemini):
    gate = asyncio.Event()

    async def held(prompt):
        await gate.wait()
        return shots_json(("分支", "动作"))

    fake_gemini(THREE_SHOTS, held)
    session = StoryboardSession()

    async def scenario():
        await session.generate("故事", GenerationOptions())
        task = asyncio.create_task(session.branch(1, "片段", BranchOptions()))
        await asyncio.sleep(0)
        (pending,) = session.snapshot().branches
        assert pending.status is BranchStatus.PENDING
        assert pending.generated_shot is None and pending.error is None
        gate.set()
        return pending, await task

    pending, done = asyncio.run(scenario())
    assert done.id == pending.id
    assert done.status is BranchStatus.SUCCEEDED
    # 原记录对象不被修改
    assert pending.status is BranchStatus.PENDING


def test_new_generation_clears_all_branches(fake_gemini):
    gate = asyncio.Event()

    async def held(prompt):
        await gate.wait()
        return shots_json(("迟到", "结果"))

    fake_gemini(THREE_SHOTS, shots_json(("分支", "动作")), TransportError("x"), held, THREE_SHOTS)
    session = StoryboardSession()

    async def scenario():
        await session.generate("故事", GenerationOptions())
        await session.branch(0, "成功的分支", BranchOptions())
        await session.branch(1, "失败的分支", BranchOptions())
        late = asyncio.create_task(session.branch(2, "还在等的分支", BranchOptions()))
        await asyncio.sleep(0)
        assert len(session.branches) == 3

        await session.generate("新故事", GenerationOptions())
        assert session.branches == {}
        gate.set()
        await late

    asyncio.run(scenario())
    assert session.snapshot().branches == []
    assert session.status is GenerationStatus.SUCCESS


def test_branch_requires_storyboard_and_valid_index(fake_gemini):
    fake_gemini(THREE_SHOTS)
    session = StoryboardSession()
    with pytest.raises(NoStoryboardError) as exc:
        asyncio.run(session.branch(0, "片段", BranchOptions()))
    assert exc.value.message == "请先生成主分镜脚本。"

    asyncio.run(session.generate("故事", GenerationOptions()))
    with pytest.raises(ShotIndexError):
        asyncio.run(session.branch(3, "片段", BranchOptions()))
    assert session.branches == {}


def test_configuration_error_marks_failure_and_propagates(monkeypatch):
    def missing():
        raise ConfigurationError("GOOGLE_API_KEY is not defined in the environment variables.")

    monkeypatch.setattr(orchestrator, "get_client", missing)
    session = StoryboardSession()
    with pytest.raises(ConfigurationError):
        asyncio.run(session.generate("故事", GenerationOptions()))
    assert session.status is GenerationStatus.FAILURE
    assert "GOOGLE_API_KEY" in session.error


def test_branch_ids_are_unique():
    ids = {new_branch_id() for _ in range(1000)}
    assert len(ids) == 1000


def test_registry_lifecycle():
    registry = SessionRegistry()
    session = registry.create()
    assert registry.get(session.id) is session
    assert len(registry) == 1
    assert registry.discard(session.id) is True
    assert registry.discard(session.id) is False
    assert registry.get(session.id) is None


class _Clock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_registry_expires_idle_sessions():
    clock = _Clock()
    registry = SessionRegistry(maxsize=10, ttl=60, timer=clock)
    kept = registry.create()
    idle = registry.create()

    clock.now = 40
    assert registry.get(kept.id) is kept  # 访问刷新空闲计时

    clock.now = 80
    assert registry.get(idle.id) is None
    assert registry.get(kept.id) is kept
    assert len(registry) == 1

    clock.now = 200
    assert registry.get(kept.id) is None
    assert len(registry) == 0


def test_registry_evicts_least_recently_used_when_full():
    registry = SessionRegistry(maxsize=2, ttl=3600)
    first = registry.create()
    second = registry.create()
    registry.get(first.id)
    third = registry.create()

    assert len(registry) == 2
    assert registry.get(second.id) is None
    assert registry.get(first.id) is first
    assert registry.get(third.id) is third


def test_branch_record_timestamp_is_utc():
    record = BranchRecord(original_shot_index=0, branch_synopsis="片段", options=BranchOptions())
    assert record.created_at.utcoffset() == timedelta(0)
