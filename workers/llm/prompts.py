# -*- coding: utf-8 -*-
"""
分镜指令拼装（纯字符串构造，无副作用）
- 主分镜：assemble_main_instructions
- 分支镜头：assemble_branch_instructions
"""

from typing import List, Tuple

from schemas.shot import BranchOptions, ConsistencyOption, GenerationOptions

QUALITY_DESCRIPTORS = ("8k 画质", "电影打光")

CHARACTER_ANCHOR_EXAMPLE = "一位留着长棕色头发、穿着蓝色毛衣的年轻女子"
SCENE_ANCHOR_EXAMPLE = "一个带壁炉的舒适客厅"
MARKET_ANCHOR_EXAMPLE = "晴空下熙熙攘攘的市场广场"

CONSISTENCY_DEFAULT = "如果故事片段与之前的故事梗概相关，请尝试保持角色和场景描述的一致性。"
CONSISTENCY_CHARACTER_ANIMAL = (
    "请确保角色和动物特征（锚点）与主故事分镜中定义的保持绝对一致。"
    f"例如，如果角色是“{CHARACTER_ANCHOR_EXAMPLE}”，那么在她出现的每个文生图提示词中都使用这个精确短语。"
)
CONSISTENCY_SCENE_LANDSCAPE = (
    "请确保场景和景物特征（锚点）与主故事分镜中定义的保持绝对一致。"
    f"例如，如果场景是“{SCENE_ANCHOR_EXAMPLE}”，则使用这个精确短语。"
)

_CONSISTENCY = {
    ConsistencyOption.CHARACTER_ANIMAL: CONSISTENCY_CHARACTER_ANIMAL,
    ConsistencyOption.SCENE_LANDSCAPE: CONSISTENCY_SCENE_LANDSCAPE,
}

_MAIN_SYSTEM = """你是一个专业的分镜脚本生成器。你的任务是根据故事梗概，将其分解成一系列独立的分镜画面。对于每个分镜，你必须生成两个提示词：
1.  **文生图提示词**：用于生成静态关键帧的详细描述。此提示词必须包含一致的角色和场景细节作为锚点。场景和角色的描述必须用中文。
2.  **图生视频提示词**：描述该关键帧内的动作或移动，用于生成视频。此描述必须用中文。

请确保：
-   **一致性**：角色和场景描述（锚点）在所有分镜中必须绝对一致。定义一次后，在每次出现时精确复用。例如，如果角色是“{character}”，那么在她出现的每个文生图提示词中都使用这个精确短语。如果场景是“{scene}”，则使用这个精确短语。
-   **逻辑流畅性**：每个分镜必须与前后画面逻辑衔接，讲述一个连贯的故事。
-   **细节**：为两个提示词提供丰富的视觉细节。
-   **视觉要求**：{visual}
-   **输出格式**：只回复一个JSON对象数组，其中每个对象代表一个分镜，并包含“textToImagePrompt”和“imageToVideoPrompt”两个键。"""

_MAIN_USER = """请为以下故事梗概生成分镜脚本。请记住，在第一个分镜中定义一致的角色和场景锚点，并在所有后续分镜中精确复用它们。所有生成的提示词（textToImagePrompt 和 imageToVideoPrompt）都应是中文。

故事梗概："{synopsis}"

角色锚点示例：“{character}”
场景锚点示例：“{market}”"""

_BRANCH_SYSTEM = """你是一个专业的分镜脚本生成器，专门用于生成单个分支镜头。你的任务是根据提供的故事片段，生成一个独立的分镜画面。对于这个分镜，你必须生成两个提示词：
1.  **文生图提示词**：用于生成静态关键帧的详细描述。此提示词必须包含一致的角色和场景细节作为锚点（如果故事片段暗示了之前定义的角色或场景）。场景和角色的描述必须用中文。
2.  **图生视频提示词**：描述该关键帧内的动作或移动，用于生成视频。此描述必须用中文。

请确保：
-   **一致性**：{consistency}
-   **细节**：为两个提示词提供丰富的视觉细节。
-   **视觉要求**：{visual}
-   **输出格式**：只回复一个JSON对象数组，其中只包含一个对象，代表这个分镜，并包含“textToImagePrompt”和“imageToVideoPrompt”两个键。"""

_BRANCH_USER = """请为以下故事片段生成一个单独的分镜。请确保所有生成的提示词（textToImagePrompt 和 imageToVideoPrompt）都应是中文。

故事片段："{synopsis}\""""


def _visual_parts(options: GenerationOptions) -> List[str]:
    if not isinstance(options, GenerationOptions):
        raise TypeError(f"expected GenerationOptions, got {type(options).__name__}")
    parts: List[str] = []
    if options.include_high_quality_details:
        parts.extend(QUALITY_DESCRIPTORS)
    parts.append(f"风格：{options.image_style.label}")
    parts.append(f"比例：{options.aspect_ratio.value}")
    return parts


def _visual_instruction(parts: List[str]) -> str:
    return f"所有文生图提示词都必须包含以下视觉要求：{', '.join(parts)}。"


def consistency_instruction(branch_options: BranchOptions) -> str:
    if branch_options.consistency_option is None:
        return CONSISTENCY_DEFAULT
    return _CONSISTENCY[branch_options.consistency_option]


def assemble_main_instructions(synopsis: str, options: GenerationOptions) -> Tuple[str, str]:
    """返回 (system_instruction, user_instruction)。"""
    visual = _visual_instruction(_visual_parts(options))
    system = _MAIN_SYSTEM.format(
        character=CHARACTER_ANCHOR_EXAMPLE, scene=SCENE_ANCHOR_EXAMPLE, visual=visual
    )
    user = _MAIN_USER.format(
        synopsis=synopsis, character=CHARACTER_ANCHOR_EXAMPLE, market=MARKET_ANCHOR_EXAMPLE
    )
    return system, user


def assemble_branch_instructions(
    branch_synopsis: str,
    main_options: GenerationOptions,
    branch_options: BranchOptions,
) -> Tuple[str, str]:
    if not isinstance(branch_options, BranchOptions):
        raise TypeError(f"expected BranchOptions, got {type(branch_options).__name__}")
    parts = _visual_parts(main_options)
    # 仅当有值时才添加
    if branch_options.focal_length is not None:
        parts.append(f"焦距：{branch_options.focal_length.value}")
    if branch_options.facial_expression is not None:
        parts.append(f"面部特写：{branch_options.facial_expression.label}")

    system = _BRANCH_SYSTEM.format(
        consistency=consistency_instruction(branch_options), visual=_visual_instruction(parts)
    )
    user = _BRANCH_USER.format(synopsis=branch_synopsis)
    return system, user
