import time
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import Field

from schemas.shot import BranchOptions, GenerationOptions, Shot, Storyboard, WireModel


def new_branch_id() -> str:
    """毫秒时间戳 + 随机后缀；同一毫秒内并发创建也不会撞号。"""
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


class BranchStatus(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class GenerationStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    FAILURE = "failure"


class BranchRecord(WireModel):
    id: str = Field(default_factory=new_branch_id)
    original_shot_index: int = Field(ge=0)
    branch_synopsis: str
    options: BranchOptions
    status: BranchStatus = BranchStatus.PENDING
    generated_shot: Optional[Shot] = None
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def succeeded(self, shot: Shot) -> "BranchRecord":
        return self.model_copy(update={"status": BranchStatus.SUCCEEDED, "generated_shot": shot, "error": None})

    def failed(self, message: str) -> "BranchRecord":
        return self.model_copy(update={"status": BranchStatus.FAILED, "generated_shot": None, "error": message})


class SessionView(WireModel):
    id: str
    status: GenerationStatus
    storyboard: Optional[Storyboard] = None
    error: Optional[str] = None
    main_options: Optional[GenerationOptions] = None
    branches: List[BranchRecord] = []
