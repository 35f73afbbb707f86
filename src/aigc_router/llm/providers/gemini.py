"""Google Gemini 提示词扩写

环境变量:
    GEMINI_API_KEY: API 密钥（必需）
"""

import logging
from typing import Any

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

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


class GeminiEnhancer(PromptEnhancer):
    """Google Gemini generate_content"""

    def __init__(
        self,
        *,
        api_key: str,
        model: str = "gemini-2.5-flash",
        timeout: float = 30.0,
        client: genai.Client | None = None,
    ):
        self._api_key = api_key
        self._model = model
        self._timeout = timeout
        self._client = client

    @property
    def name(self) -> str:
        return "gemini"

    @property
    def default_model(self) -> str:
        return self._model

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(
                api_key=self._api_key,
                http_options=types.HttpOptions(timeout=int(self._timeout * 1000)),
            )
        return self._client

    async def enhance(self, keywords: str, *, model: str | None = None) -> TextResult:
        if not self._api_key:
            raise missing_credential("GEMINI_API_KEY", provider=self.name)

        use_model = model or self._model
        self._log_request(
            [
                {"role": "system", "content": ENHANCE_INSTRUCTION},
                {"role": "user", "content": keywords},
            ],
            model=use_model,
        )

        try:
            response = await self.client.aio.models.generate_content(
                model=use_model,
                contents=keywords,
                config=types.GenerateContentConfig(
                    system_instruction=ENHANCE_INSTRUCTION,
                    temperature=ENHANCE_TEMPERATURE,
                    max_output_tokens=ENHANCE_MAX_TOKENS,
                ),
            )
        except (genai_errors.APIError, httpx.HTTPError) as e:
            logger.error("Gemini 扩写失败: %s", e)
            raise classify(e, provider=self.name, title=_TITLE) from e

        text = _candidate_text(response).strip()
        if not text:
            raise upstream_error(
                "提示词扩写失败：模型未返回内容", provider=self.name, title="Enhancement failed"
            )

        usage = {}
        um = getattr(response, "usage_metadata", None)
        if um:
            usage = {
                "prompt_tokens": um.prompt_token_count or 0,
                "completion_tokens": um.candidates_token_count or 0,
                "total_tokens": um.total_token_count or 0,
            }
        logger.info("Gemini 扩写完成: %.50s...", text)
        return TextResult(text=text, provider=self.name, model=use_model, usage=usage)


def _candidate_text(response: Any) -> str:
    candidates = getattr(response, "candidates", None) or []
    if not candidates or not candidates[0].content:
        return ""
    return "".join(part.text or "" for part in candidates[0].content.parts or [])
