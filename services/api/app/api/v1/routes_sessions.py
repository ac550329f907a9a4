from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import Field, field_validator

from schemas.branch import BranchRecord, SessionView
from schemas.shot import BranchOptions, GenerationOptions, WireModel
from services.api.app.core.security import verify_api_key
from services.api.app.core.session import SessionRegistry, StoryboardSession, get_registry

router = APIRouter(prefix="/sessions", dependencies=[Depends(verify_api_key)])


class GenerateReq(WireModel):
    synopsis: str
    options: GenerationOptions = Field(default_factory=GenerationOptions)

    @field_validator("synopsis")
    @classmethod
    def synopsis_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("synopsis must not be blank")
        return v


class BranchReq(WireModel):
    original_shot_index: int = Field(ge=0)
    synopsis: str
    options: BranchOptions = Field(default_factory=BranchOptions)

    @field_validator("synopsis")
    @classmethod
    def synopsis_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("synopsis must not be blank")
        return v


def _session(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> StoryboardSession:
    session = registry.get(session_id)
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="session not found")
    return session


@router.post("", response_model=SessionView, status_code=status.HTTP_201_CREATED)
def create_session(registry: SessionRegistry = Depends(get_registry)):
    return registry.create().snapshot()


@router.get("/{session_id}", response_model=SessionView)
def read_session(session: StoryboardSession = Depends(_session)):
    return session.snapshot()


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    if not registry.discard(session_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="session not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{session_id}/generate", response_model=SessionView)
async def generate(req: GenerateReq, session: StoryboardSession = Depends(_session)):
    """失败也返回 200：错误写在会话状态里（status=failure）。"""
    await session.generate(req.synopsis, req.options)
    return session.snapshot()


@router.post("/{session_id}/branches", response_model=BranchRecord)
async def branch(req: BranchReq, session: StoryboardSession = Depends(_session)):
    return await session.branch(req.original_shot_index, req.synopsis, req.options)
