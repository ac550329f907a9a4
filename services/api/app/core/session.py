# services/api/app/core/session.py

"""
会话状态机（对应前端页面的状态）

主分镜： idle -> loading -> success | failure，下一次提交重新进入 loading
分支镜头：每条记录独立 pending -> succeeded | failed，可并发进行

所有更新都是整条替换：storyboard 整体替换；分支记录按 id 整条替换，不改字段。
"""

import logging
import time
import uuid
from typing import Callable, Dict, Optional

from cachetools import TTLCache

from providers.llm.errors import ConfigurationError, StoryboardError
from schemas.branch import BranchRecord, GenerationStatus, SessionView
from schemas.shot import BranchOptions, GenerationOptions, Storyboard
from services.api.app.core.config import settings
from workers.llm import storyboard as orchestrator

logger = logging.getLogger(__name__)

NO_STORYBOARD_MESSAGE = "请先生成主分镜脚本。"


class NoStoryboardError(Exception):
    kind = "no_storyboard"

    def __init__(self, message: str = NO_STORYBOARD_MESSAGE):
        super().__init__(message)
        self.message = message


class ShotIndexError(Exception):
    kind = "shot_index_out_of_range"

    def __init__(self, index: int, size: int):
        self.message = f"shot index {index} is out of range for a storyboard of {size} shot(s)"
        super().__init__(self.message)


class StoryboardSession:
    def __init__(self, session_id: Optional[str] = None):
        self.id = session_id or uuid.uuid4().hex
        self.status = GenerationStatus.IDLE
        self.storyboard: Optional[Storyboard] = None
        self.error: Optional[str] = None
        self.main_options: Optional[GenerationOptions] = None
        self.branches: Dict[str, BranchRecord] = {}

    async def generate(self, synopsis: str, options: GenerationOptions) -> Optional[Storyboard]:
        # 新一轮生成：清空上一轮结果和全部分支
        self.status = GenerationStatus.LOADING
        self.error = None
        self.storyboard = None
        self.branches = {}
        self.main_options = options
        try:
            board = await orchestrator.generate_storyboard(synopsis, options)
        except ConfigurationError as e:
            self._fail(e.message)
            raise
        except StoryboardError as e:
            self._fail(e.message)
            return None
        self.storyboard = board
        self.status = GenerationStatus.SUCCESS
        return board

    def _fail(self, message: str) -> None:
        logger.warning("session %s generation failed: %s", self.id, message)
        self.storyboard = None
        self.error = message
        self.status = GenerationStatus.FAILURE

    async def branch(self, original_shot_index: int, synopsis: str, options: BranchOptions) -> BranchRecord:
        if self.main_options is None or self.storyboard is None:
            raise NoStoryboardError()
        size = len(self.storyboard.shots)
        if not 0 <= original_shot_index < size:
            raise ShotIndexError(original_shot_index, size)

        record = BranchRecord(
            original_shot_index=original_shot_index,
            branch_synopsis=synopsis,
            options=options,
        )
        self.branches[record.id] = record
        try:
            shot = await orchestrator.generate_branch_shot(synopsis, self.main_options, options)
        except ConfigurationError:
            self.branches.pop(record.id, None)
            raise
        except StoryboardError as e:
            logger.warning("branch %s failed: %s", record.id, e.message)
            return self._settle(record.failed(e.message))
        return self._settle(record.succeeded(shot))

    def _settle(self, record: BranchRecord) -> BranchRecord:
        # 记录已被新一轮生成清掉时，迟到的结果直接丢弃
        if record.id in self.branches:
            self.branches[record.id] = record
        return record

    def snapshot(self) -> SessionView:
        return SessionView(
            id=self.id,
            status=self.status,
            storyboard=self.storyboard,
            error=self.error,
            main_options=self.main_options,
            branches=list(self.branches.values()),
        )


class SessionRegistry:
    """
    进程内会话表；不落盘。
    空闲超过 ttl 秒的会话过期，总数超过 maxsize 时淘汰最久未访问的会话。
    """

    def __init__(self, maxsize: int = 1000, ttl: float = 3600, timer: Callable[[], float] = time.monotonic):
        self._sessions: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl, timer=timer)

    def create(self) -> StoryboardSession:
        session = StoryboardSession()
        self._sessions[session.id] = session
        return session

    def get(self, session_id: str) -> Optional[StoryboardSession]:
        session = self._sessions.get(session_id)
        if session is not None:
            # 重新写入以刷新空闲计时
            self._sessions[session_id] = session
        return session

    def discard(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    def __len__(self) -> int:
        self._sessions.expire()
        return len(self._sessions)


registry = SessionRegistry(maxsize=settings.SESSION_MAX_COUNT, ttl=settings.SESSION_TTL_SECONDS)


def get_registry() -> SessionRegistry:
    return registry
