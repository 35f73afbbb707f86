"""提示词扩写入口"""

from .base import ENHANCE_INSTRUCTION, PromptEnhancer, TextResult
from .client import EnhanceClient

__all__ = ["ENHANCE_INSTRUCTION", "EnhanceClient", "PromptEnhancer", "TextResult"]
