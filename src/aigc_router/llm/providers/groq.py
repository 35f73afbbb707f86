"""Groq 提示词扩写（OpenAI 兼容）

环境变量:
    GROQ_API_KEY: API 密钥（必需）
"""

import logging
from typing import Any

import openai
from openai import AsyncOpenAI

from ...errors import classify, missing_credential, upstream_error
from ..base import (
    ENHANCE_INSTRUCTION,
    ENHANCE_MAX_TOKENS,
    ENHANCE_TEMPERATURE,
    PromptEnhancer,
    TextResult,
)

logger = logging.getLogger(__name__)

_TITLE = "Prompt enhancement API error"


class GroqEnhancer(PromptEnhancer):
    """Groq Chat Completions"""

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = "https://api.groq.com/openai/v1",
        model: str = "llama-3.3-70b-versatile",
        timeout: float = 30.0,
        client: AsyncOpenAI | None = None,
    ):
        self._api_key = api_key
        self._base_url = base_url
        self._model = model
        self._timeout = timeout
        self._client = client

    @property
    def name(self) -> str:
        return "groq"

    @property
    def default_model(self) -> str:
        return self._model

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self._api_key,
                base_url=self._base_url,
                timeout=self._timeout,
                max_retries=0,
            )
        return self._client

    async def enhance(self, keywords: str, *, model: str | None = None) -> TextResult:
        if not self._api_key:
            raise missing_credential("GROQ_API_KEY", provider=self.name)

        messages: list[dict[str, Any]] = [
            {"role": "system", "content": ENHANCE_INSTRUCTION},
            {"role": "user", "content": keywords},
        ]
        use_model = model or self._model
        self._log_request(messages, model=use_model)

        try:
            response = await self.client.chat.completions.create(
                model=use_model,
                messages=messages,
                temperature=ENHANCE_TEMPERATURE,
                max_tokens=ENHANCE_MAX_TOKENS,
            )
        except openai.APIError as e:
            logger.error("Groq 扩写失败: %s", e)
            raise classify(e, provider=self.name, title=_TITLE) from e

        text = ""
        if response.choices:
            text = (response.choices[0].message.content or "").strip()
        if not text:
            raise upstream_error(
                "提示词扩写失败：模型未返回内容", provider=self.name, title="Enhancement failed"
            )

        usage = {}
        if response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }
        logger.info("Groq 扩写完成: %.50s...", text)
        return TextResult(text=text, provider=self.name, model=use_model, usage=usage)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
