# -*- coding: utf-8 -*-
"""
分镜生成链路的错误分类
- ConfigurationError   : 缺少 API Key，任何请求前即失败
- TransportError       : 网络 / 模型端失败（不重试）
- MalformedOutputError : 模型返回的不是合法 JSON（提示用户重新生成）
- UnexpectedShapeError : JSON 合法但结构不符
"""


class StoryboardError(Exception):
    """所有分镜生成错误的基类；kind 用于 API 错误体。"""

    kind = "storyboard_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(StoryboardError):
    kind = "configuration_error"


class TransportError(StoryboardError):
    kind = "transport_error"


class MalformedOutputError(StoryboardError):
    kind = "malformed_output"


class UnexpectedShapeError(StoryboardError):
    kind = "unexpected_shape"
