# -*- coding: utf-8 -*-
"""
StoryBoard 编排层
- generate_storyboard   ：故事梗概 -> 完整分镜（数组，至少 1 个镜头）
- generate_branch_shot  ：故事片段 + 主选项 + 分支选项 -> 单个镜头
每次调用只发一次请求；不重试；错误包装后原样抛给调用方。
"""

from __future__ import annotations
import logging
from typing import Any, Dict, Optional

from providers.llm.errors import MalformedOutputError, StoryboardError, TransportError
from providers.llm.gemini import GeminiClient
from schemas.shot import BranchOptions, GenerationOptions, Shot, Storyboard
from services.api.app.core.config import settings
from workers.llm.prompts import assemble_branch_instructions, assemble_main_instructions
from workers.llm.validation import ShotCount, validate_shots

logger = logging.getLogger(__name__)

MAIN_PREFIX = "Failed to generate storyboard"
BRANCH_PREFIX = "Failed to generate branch shot"
MAIN_MALFORMED_HINT = "AI response was not valid JSON. 请尝试再次生成或优化您的故事梗概。"
BRANCH_MALFORMED_HINT = "AI response was not valid JSON. 请尝试再次生成或优化您的故事片段。"


def _shot_list_schema(image_hint: str, **bounds: int) -> Dict[str, Any]:
    return {
        "type": "array",
        **bounds,
        "items": {
            "type": "object",
            "properties": {
                "textToImagePrompt": {"type": "string", "description": image_hint},
                "imageToVideoPrompt": {
                    "type": "string",
                    "description": "A description of the action or movement to generate a video from the keyframe.",
                },
            },
            "required": ["textToImagePrompt", "imageToVideoPrompt"],
        },
    }


STORYBOARD_SCHEMA = _shot_list_schema(
    "A detailed prompt for a static keyframe image, including consistent character/scene anchors, "
    "style, quality, and aspect ratio.",
    minItems=1,
)
BRANCH_SCHEMA = _shot_list_schema("A detailed prompt for a static keyframe image.", minItems=1, maxItems=1)

# ---------- Gemini 单例 ----------
_client: Optional[GeminiClient] = None


def get_client() -> GeminiClient:
    """首次调用时创建；缺少 API Key 抛 ConfigurationError（不会发起任何请求）。"""
    global _client
    if _client is None:
        cfg = {}
        if settings.GEMINI_TEMPERATURE is not None:
            cfg["temperature"] = settings.GEMINI_TEMPERATURE
        _client = GeminiClient(
            api_key=settings.gemini_api_key,
            model=settings.GEMINI_MODEL,
            default_generation_config=cfg,
        )
    return _client


def reset_client() -> None:
    global _client
    _client = None


async def _run(
    prompt: str,
    system_instruction: str,
    schema: Dict[str, Any],
    count: ShotCount,
    *,
    prefix: str,
    malformed_hint: str,
):
    client = get_client()
    try:
        raw = await client.generate_json_text(prompt, system_instruction=system_instruction, schema=schema)
        return validate_shots(raw, count)
    except MalformedOutputError as e:
        logger.error("%s: %s", prefix, e.message)
        raise MalformedOutputError(malformed_hint) from e
    except StoryboardError as e:
        logger.error("%s: %s", prefix, e.message)
        raise type(e)(f"{prefix}: {e.message}") from e
    except Exception as e:
        logger.exception(prefix)
        raise TransportError(f"{prefix}: {e}") from e


async def generate_storyboard(synopsis: str, options: GenerationOptions) -> Storyboard:
    system, user = assemble_main_instructions(synopsis, options)
    shots = await _run(
        user, system, STORYBOARD_SCHEMA, ShotCount.ANY_NONZERO,
        prefix=MAIN_PREFIX, malformed_hint=MAIN_MALFORMED_HINT,
    )
    logger.info("storyboard generated: %d shot(s)", len(shots))
    return Storyboard(shots=shots)


async def generate_branch_shot(
    branch_synopsis: str,
    main_options: GenerationOptions,
    branch_options: BranchOptions,
) -> Shot:
    system, user = assemble_branch_instructions(branch_synopsis, main_options, branch_options)
    shots = await _run(
        user, system, BRANCH_SCHEMA, ShotCount.EXACTLY_ONE,
        prefix=BRANCH_PREFIX, malformed_hint=BRANCH_MALFORMED_HINT,
    )
    return shots[0]
