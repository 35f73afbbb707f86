"""Google Gemini 图片生成（同步直出）

环境变量:
    GEMINI_API_KEY: API 密钥（必需）
    GEMINI_IMAGE_MODEL: 模型名（默认 gemini-2.5-flash-image）
"""

import base64
import logging

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from ...errors import classify, missing_credential, unavailable
from ..base import GenerationRequest, ImageAdapter, ImageResult, Provider
from ..normalizer import find_url

logger = logging.getLogger(__name__)

_TITLE = "Gemini API error"

_INSTRUCTION = "Create an image based on this description: "

# Gemini 支持的比例
_SUPPORTED_RATIOS = [
    (1, 1),
    (2, 3),
    (3, 2),
    (3, 4),
    (4, 3),
    (4, 5),
    (5, 4),
    (9, 16),
    (16, 9),
    (21, 9),
]


def _size_to_aspect_ratio(size: str) -> str:
    """将 WxH 转为 Gemini 最接近的 aspect_ratio 字符串"""
    try:
        w, h = (int(x) for x in size.lower().split("x"))
        target = w / h
    except (ValueError, ZeroDivisionError):
        return "1:1"

    best = min(_SUPPORTED_RATIOS, key=lambda r: abs(r[0] / r[1] - target))
    return f"{best[0]}:{best[1]}"


class GeminiImageAdapter(ImageAdapter):
    """Google Gemini 文生图，取第一个候选结果"""

    provider = Provider.GEMINI
    multi_image = False

    def __init__(
        self,
        *,
        api_key: str,
        model: str = "gemini-2.5-flash-image",
        timeout: float = 30.0,
        client: genai.Client | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._client = client

    @property
    def client(self) -> genai.Client:
        # 没有密钥时 genai.Client 构造会失败，延迟到校验之后再创建
        if self._client is None:
            self._client = genai.Client(
                api_key=self.api_key,
                http_options=types.HttpOptions(timeout=int(self.timeout * 1000)),
            )
        return self._client

    async def submit(self, request: GenerationRequest) -> ImageResult:
        if not self.api_key:
            raise missing_credential("GEMINI_API_KEY", provider=self.name)

        model = request.model or self.model
        image_config = None
        if request.size:
            image_config = types.ImageConfig(
                aspect_ratio=_size_to_aspect_ratio(request.size)
            )
        logger.info("Gemini 文生图: model=%s, size=%s", model, request.size)

        try:
            response = await self.client.aio.models.generate_content(
                model=model,
                contents=[_INSTRUCTION + request.prompt],
                config=types.GenerateContentConfig(
                    response_modalities=["IMAGE", "TEXT"],
                    image_config=image_config,
                ),
            )
        except (genai_errors.APIError, httpx.HTTPError) as e:
            raise classify(e, provider=self.name, title=_TITLE) from e

        result = self._first_candidate(response)
        if result is None:
            raise unavailable(
                "Gemini 未返回可用的图片", provider=self.name, title=_TITLE
            )
        logger.info("Gemini 图片生成成功")
        return result

    def _first_candidate(self, response) -> ImageResult | None:
        candidates = getattr(response, "candidates", None) or []
        if not candidates:
            return None
        content = candidates[0].content
        parts = (content.parts if content else None) or []

        for part in parts:
            inline = part.inline_data
            if inline and inline.data and (inline.mime_type or "").startswith("image/"):
                raw = inline.data
                b64 = (
                    base64.b64encode(raw).decode("utf-8")
                    if isinstance(raw, bytes)
                    else raw
                )
                return ImageResult(
                    base64=b64, mime_type=inline.mime_type, provider=self.name
                )
            url = find_url(part.text or "")
            if url:
                return ImageResult(urls=[url], provider=self.name)
        return None
