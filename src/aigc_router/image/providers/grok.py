"""Grok 图片生成（经 Puter 免费中转，尽力而为）

没有自己的 API 密钥。依次尝试 result.images、result.url，最后才从回复文本里
正则提取 URL；都失败时提示需要直接的 xAI 密钥。
"""

import logging
from typing import Any

import httpx

from ...errors import classify, from_response, unavailable
from ..base import GenerationRequest, ImageAdapter, ImageResult, Provider
from ..normalizer import clean_urls, find_url

logger = logging.getLogger(__name__)

_TITLE = "Grok service unavailable"


class GrokRelayAdapter(ImageAdapter):
    """Grok via Puter drivers API"""

    provider = Provider.GROK
    multi_image = True

    BASE_URL = "https://api.puter.com/drivers/call"

    def __init__(
        self,
        *,
        base_url: str = BASE_URL,
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self.client = client or httpx.AsyncClient()

    async def submit(self, request: GenerationRequest) -> ImageResult:
        payload: dict[str, Any] = {
            "interface": "puter-chat-completion",
            "driver": "grok",
            "method": "complete",
            "args": {
                "messages": [
                    {"role": "user", "content": f"Generate an image: {request.prompt}"}
                ],
                "stream": False,
            },
        }
        logger.info("Grok 图片生成请求: count=%s", request.count or 1)

        try:
            resp = await self.client.post(
                self.base_url,
                headers={"Content-Type": "application/json"},
                json=payload,
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise classify(e, provider=self.name, title=_TITLE) from e

        if not resp.is_success:
            logger.error("Grok 中转失败: %s %s", resp.status_code, resp.text)
            raise from_response(resp, provider=self.name, title=_TITLE)

        try:
            data = resp.json()
        except ValueError:
            data = {}

        images = extract_images(data)
        if not images:
            raise unavailable(
                "Grok 图片生成需要直接的 xAI API 密钥，经 Puter 的免费访问受限",
                provider=self.name,
                title="Image generation unavailable",
                raw=data or None,
            )

        if request.count:
            images = images[: request.count]
        logger.info("Grok 图片生成成功: %d 张", len(images))
        return ImageResult(urls=images, provider=self.name)

    async def aclose(self) -> None:
        await self.client.aclose()


def extract_images(data: Any) -> list[str]:
    """按优先级提取图片 URL：images 字段 → url 字段 → 文本里的 URL"""
    if not isinstance(data, dict):
        return []
    result = data.get("result")
    result = result if isinstance(result, dict) else {}

    images = result.get("images")
    if images:
        found = clean_urls(images if isinstance(images, list) else [images])
        if found:
            return found

    found = clean_urls([result.get("url")])
    if found:
        return found

    for message in (data.get("message"), result.get("message")):
        content = message.get("content") if isinstance(message, dict) else None
        if isinstance(content, str):
            url = find_url(content)
            if url:
                return [url]
    return []
