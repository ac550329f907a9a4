# -*- coding: utf-8 -*-
"""
Storyboard API 路由（无状态）
- POST /storyboard         故事梗概 -> 完整分镜
- POST /storyboard/branch  故事片段 -> 单个分支镜头
每个请求只调用一次模型；错误由 core.exceptions 统一转换为 JSON 错误体。
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import Field, field_validator

from schemas.shot import BranchOptions, GenerationOptions, Shot, Storyboard, WireModel
from services.api.app.core.security import verify_api_key
from workers.llm import storyboard as orchestrator

router = APIRouter(default_response_class=JSONResponse)


# ---------- 请求模型 ----------
class StoryboardReq(WireModel):
    synopsis: str
    options: GenerationOptions = Field(default_factory=GenerationOptions)

    @field_validator("synopsis")
    @classmethod
    def synopsis_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("synopsis must not be blank")
        return v


class BranchReq(WireModel):
    synopsis: str
    main_options: GenerationOptions
    branch_options: BranchOptions = Field(default_factory=BranchOptions)

    @field_validator("synopsis")
    @classmethod
    def synopsis_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("synopsis must not be blank")
        return v


@router.post("/storyboard", response_model=Storyboard, dependencies=[Depends(verify_api_key)])
async def create_storyboard(req: StoryboardReq):
    return await orchestrator.generate_storyboard(req.synopsis, req.options)


@router.post("/storyboard/branch", response_model=Shot, dependencies=[Depends(verify_api_key)])
async def create_branch_shot(req: BranchReq):
    return await orchestrator.generate_branch_shot(req.synopsis, req.main_options, req.branch_options)
