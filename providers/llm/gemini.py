# -*- coding: utf-8 -*-
"""
===========================================================
Gemini Gateway - 结构化 JSON 输出的最小封装
===========================================================

功能:
    - 封装 Google Gemini 的单次调用：system instruction + 用户内容 + 响应 schema
    - 每次调用只发一次请求：不重试、不降级、不续写
    - 传输层超时沿用 SDK 默认值

依赖:
    pip install -U google-genai python-dotenv

环境变量(.env):
    GOOGLE_API_KEY   : Google Gemini API key（兼容旧名 API_KEY）

===========================================================
"""
import os
import logging
from typing import Optional, Dict, Any, Tuple

from dotenv import load_dotenv
from google import genai
from google.genai import types
from google.genai.types import FinishReason

from providers.llm.errors import ConfigurationError, TransportError

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-pro"


def _finish_name(fr) -> str:
    """
    统一把 finish_reason 规范化为枚举名的裸字符串：
    FinishReason.STOP -> "STOP"
    "FinishReason.MAX_TOKENS" -> "MAX_TOKENS"
    None / 未知 -> "UNKNOWN"
    """
    if fr is None:
        return "UNKNOWN"
    if isinstance(fr, FinishReason):
        return fr.name or "UNKNOWN"
    s = str(fr)
    return s.split(".")[-1] if "." in s else s


# ---- JSON Schema 构建器（支持 description / minItems / maxItems）----
TYPE_MAP = {
    "string": types.Type.STRING,
    "number": types.Type.NUMBER,
    "integer": types.Type.INTEGER,
    "boolean": types.Type.BOOLEAN,
    "array": types.Type.ARRAY,
    "object": types.Type.OBJECT,
}


def build_schema_from_dict(schema_dict: Dict[str, Any]) -> types.Schema:
    if not isinstance(schema_dict, dict):
        raise ValueError("schema must be a dict")
    t = schema_dict.get("type")
    t_enum = t if isinstance(t, types.Type) else TYPE_MAP.get(str(t).lower())
    if t_enum is None:
        raise ValueError(f"Unsupported schema type: {t}")

    kwargs: Dict[str, Any] = {"type": t_enum}

    if "description" in schema_dict:
        kwargs["description"] = schema_dict["description"]

    if t_enum == types.Type.OBJECT:
        props = schema_dict.get("properties") or {}
        kwargs["properties"] = {k: build_schema_from_dict(v) for k, v in props.items()}
        if "required" in schema_dict:
            kwargs["required"] = list(schema_dict["required"])

    if t_enum == types.Type.ARRAY:
        items = schema_dict.get("items")
        if items:
            kwargs["items"] = build_schema_from_dict(items)
        if "minItems" in schema_dict:
            kwargs["min_items"] = int(schema_dict["minItems"])
        if "maxItems" in schema_dict:
            kwargs["max_items"] = int(schema_dict["maxItems"])

    return types.Schema(**kwargs)


class GeminiClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        default_generation_config: Optional[Dict[str, Any]] = None,
    ):
        api_key = api_key or os.getenv("GOOGLE_API_KEY") or os.getenv("API_KEY")
        if not api_key:
            raise ConfigurationError("GOOGLE_API_KEY is not defined in the environment variables.")
        self.client = genai.Client(api_key=api_key)
        self.model = model or DEFAULT_MODEL
        self.default_cfg = dict(default_generation_config or {})

    @staticmethod
    def _extract_text_and_reason(resp) -> Tuple[str, str]:
        """
        1) 先拿 resp.text
        2) 空的话，从 candidates[0].content.parts 里把所有 text 拼接
        3) 兜底返回 "" 与 finish_reason
        """
        txt = getattr(resp, "text", "") or ""
        reason = "UNKNOWN"

        cands = getattr(resp, "candidates", None)
        if cands:
            reason = _finish_name(getattr(cands[0], "finish_reason", None))
            if not txt.strip():
                content = getattr(cands[0], "content", None)
                parts = getattr(content, "parts", None) if content else None
                buf = []
                for p in parts or []:
                    # part 可能是对象也可能是 dict
                    t = getattr(p, "text", None)
                    if t is None and isinstance(p, dict):
                        t = p.get("text")
                    if t:
                        buf.append(t)
                txt = "".join(buf)

        return txt, reason

    def _config(self, system_instruction: str, schema: Dict[str, Any]) -> types.GenerateContentConfig:
        cfg_dict = dict(self.default_cfg)
        cfg_dict.update({
            "system_instruction": system_instruction,
            "response_mime_type": "application/json",
            "response_schema": build_schema_from_dict(schema),
        })
        return types.GenerateContentConfig(**cfg_dict)

    # ---------- JSON：单轮、单次请求 ----------
    async def generate_json_text(self, prompt: str, *, system_instruction: str, schema: Dict[str, Any]) -> str:
        """
        发一次 generate_content 请求，返回模型的原始文本（应为 JSON）。
        任何 SDK / 网络异常都包装成 TransportError 抛出。
        """
        cfg = self._config(system_instruction, schema)
        contents = [types.Content(role="user", parts=[types.Part(text=prompt)])]
        try:
            resp = await self.client.aio.models.generate_content(
                model=self.model, contents=contents, config=cfg
            )
        except Exception as e:
            raise TransportError(str(e)) from e

        txt, reason = self._extract_text_and_reason(resp)
        logger.debug("gemini %s finish_reason=%s len=%d", self.model, reason, len(txt))
        return txt
