"""提示词扩写客户端"""

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

from ..errors import invalid_input
from .base import PromptEnhancer, TextResult

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger(__name__)


class EnhanceClient:
    """按名称选择扩写 provider（groq / gemini）"""

    def __init__(
        self,
        enhancers: Mapping[str, PromptEnhancer],
        *,
        default_provider: str = "groq",
    ):
        self._enhancers = dict(enhancers)
        self.default_provider = default_provider

    @classmethod
    def from_settings(cls, settings: "Settings") -> "EnhanceClient":
        from .providers.gemini import GeminiEnhancer
        from .providers.groq import GroqEnhancer

        return cls(
            {
                "groq": GroqEnhancer(
                    api_key=settings.groq_api_key, timeout=settings.submit_timeout
                ),
                "gemini": GeminiEnhancer(
                    api_key=settings.gemini_api_key, timeout=settings.submit_timeout
                ),
            }
        )

    def enhancer(self, provider: str | None = None) -> PromptEnhancer:
        key = (provider or self.default_provider).strip().lower()
        enhancer = self._enhancers.get(key)
        if enhancer is None:
            raise invalid_input(
                f"未知扩写 provider: {provider}，可选: {list(self._enhancers)}"
            )
        return enhancer

    async def enhance(self, keywords: str, provider: str | None = None) -> TextResult:
        if not isinstance(keywords, str) or not keywords.strip():
            raise invalid_input("请输入关键词", title="Keywords required")
        enhancer = self.enhancer(provider)
        logger.info("提示词扩写请求: %.50s (provider: %s)", keywords, enhancer.name)
        return await enhancer.enhance(keywords.strip())

    async def aclose(self) -> None:
        for enhancer in self._enhancers.values():
            await enhancer.aclose()
