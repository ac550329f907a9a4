# -*- coding: utf-8 -*-
"""模型输出校验：原始文本 -> List[Shot]"""

import json
from enum import Enum
from typing import Any, List

from providers.llm.errors import MalformedOutputError, UnexpectedShapeError
from schemas.shot import Shot

REQUIRED_KEYS = ("textToImagePrompt", "imageToVideoPrompt")


class ShotCount(str, Enum):
    ANY_NONZERO = "any-nonzero"
    EXACTLY_ONE = "exactly-one"


def _expected(count: ShotCount) -> str:
    keys = "', '".join(REQUIRED_KEYS)
    if count == ShotCount.EXACTLY_ONE:
        return f"Expected an array with a single object containing '{keys}'."
    return f"Expected a non-empty array of objects with '{keys}'."


def _well_formed(item: Any) -> bool:
    if not isinstance(item, dict):
        return False
    return all(isinstance(item.get(k), str) and item.get(k) for k in REQUIRED_KEYS)


def validate_shots(raw: str, expected_count: ShotCount) -> List[Shot]:
    """
    解析并校验模型输出：
    - 非 JSON -> MalformedOutputError
    - 非数组 / 数量不符 / 缺字段 / 非字符串字段 -> UnexpectedShapeError
    顺序原样保留。expected_count 也接受 "any-nonzero" / "exactly-one" 字符串。
    """
    expected_count = ShotCount(expected_count)
    try:
        parsed = json.loads((raw or "").strip())
    except (json.JSONDecodeError, RecursionError) as e:
        # 嵌套过深同样视为无效 JSON
        raise MalformedOutputError(f"AI response was not valid JSON: {e}") from e

    if not isinstance(parsed, list):
        raise UnexpectedShapeError(
            f"Invalid response format from AI: got {type(parsed).__name__}. {_expected(expected_count)}"
        )
    if expected_count == ShotCount.EXACTLY_ONE and len(parsed) != 1:
        raise UnexpectedShapeError(
            f"Invalid response format from AI: got {len(parsed)} item(s). {_expected(expected_count)}"
        )
    if not parsed:
        raise UnexpectedShapeError(f"Invalid response format from AI: empty array. {_expected(expected_count)}")

    bad = [i for i, item in enumerate(parsed) if not _well_formed(item)]
    if bad:
        raise UnexpectedShapeError(
            f"Invalid response format from AI: malformed item(s) at {bad}. {_expected(expected_count)}"
        )
    return [Shot.model_validate(item) for item in parsed]
