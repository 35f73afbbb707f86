"""提示词扩写 Provider 抽象接口

文本直出：用固定的系统指令包装关键词，调用 chat 类接口，返回生成的文本。
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

ENHANCE_INSTRUCTION = """You are an expert AI image generation prompt engineer.
Transform the given keywords into a detailed, creative image generation prompt optimized for AI image models like DALL-E, Midjourney, or Stable Diffusion.

Guidelines:
- Include vivid visual details (colors, lighting, composition)
- Add artistic style if not specified (e.g., "digital art", "oil painting", "photorealistic")
- Specify mood and atmosphere
- Add technical details (e.g., "4K", "highly detailed", "trending on artstation")
- Keep it under 200 words
- Write in English

Respond ONLY with the enhanced prompt, no explanations."""

ENHANCE_TEMPERATURE = 0.8
ENHANCE_MAX_TOKENS = 300


@dataclass
class TextResult:
    """扩写结果"""

    text: str
    provider: str = ""
    model: str = ""
    usage: dict[str, int] = field(default_factory=dict)


class PromptEnhancer(ABC):
    """提示词扩写 Provider 抽象基类

    缺少密钥时必须在发起任何网络请求之前抛出 MISSING_CREDENTIAL。
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider 名称"""

    @property
    @abstractmethod
    def default_model(self) -> str:
        """当前使用的模型名"""

    @abstractmethod
    async def enhance(self, keywords: str, *, model: str | None = None) -> TextResult:
        """把关键词扩写为完整的图片生成提示词"""

    async def aclose(self) -> None:
        """释放资源（可选覆盖）"""

    def _log_request(self, messages: list[dict[str, Any]], *, model: str | None) -> None:
        """统一的请求日志（DEBUG 级别）"""
        logger.debug(
            "=== %s.enhance ===\nmodel: %s\nmessages:\n%s",
            self.name,
            model or self.default_model,
            json.dumps(messages, ensure_ascii=False, indent=2),
        )
