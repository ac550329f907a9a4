from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    # 前端沿用 camelCase 字段名
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class AspectRatio(str, Enum):
    PORTRAIT = "9:16"
    LANDSCAPE = "16:9"


class ImageStyle(str, Enum):
    REALISTIC_PHOTO = "realistic-photo"
    CINEMATIC = "cinematic"

    @property
    def label(self) -> str:
        return _STYLE_LABELS[self]


_STYLE_LABELS = {
    ImageStyle.REALISTIC_PHOTO: "实写照片",
    ImageStyle.CINEMATIC: "电影写真",
}


class FocalLength(str, Enum):
    ULTRA_WIDE = "10mm"
    WIDE = "25mm"
    STANDARD = "35mm"


class FacialExpression(str, Enum):
    FEAR = "exaggerated_fear"
    JOY = "exaggerated_joy"
    TEARS = "exaggerated_tears"
    PAIN = "exaggerated_pain"
    ANGER = "exaggerated_anger"

    @property
    def label(self) -> str:
        return _EXPRESSION_LABELS[self]


_EXPRESSION_LABELS = {
    FacialExpression.FEAR: "夸张恐惧",
    FacialExpression.JOY: "夸张喜悦",
    FacialExpression.TEARS: "夸张流泪",
    FacialExpression.PAIN: "夸张痛苦",
    FacialExpression.ANGER: "夸张愤怒",
}


class ConsistencyOption(str, Enum):
    CHARACTER_ANIMAL = "character_animal"
    SCENE_LANDSCAPE = "scene_landscape"


class GenerationOptions(WireModel):
    include_high_quality_details: bool = True
    aspect_ratio: AspectRatio = AspectRatio.LANDSCAPE
    image_style: ImageStyle = ImageStyle.REALISTIC_PHOTO


class BranchOptions(WireModel):
    """缺省 (None) 表示“不指定”，不会出现在指令里。"""

    focal_length: Optional[FocalLength] = None
    facial_expression: Optional[FacialExpression] = None
    consistency_option: Optional[ConsistencyOption] = None

    @field_validator("focal_length", "facial_expression", "consistency_option", mode="before")
    @classmethod
    def blank_is_unspecified(cls, v):
        # 下拉框的“不指定”会提交空字符串
        if isinstance(v, str) and not v.strip():
            return None
        return v


class Shot(WireModel):
    text_to_image_prompt: str = Field(min_length=1)
    image_to_video_prompt: str = Field(min_length=1)


class Storyboard(WireModel):
    shots: List[Shot]
