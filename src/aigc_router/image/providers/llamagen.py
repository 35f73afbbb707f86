"""LlamaGen 漫画生成（异步任务）

提交只返回任务 ID，结果需要 JobPoller 轮询 comics/generations/{id}。
"""

import logging
from typing import Any

import httpx

from ...errors import classify, from_response, missing_credential, upstream_error
from ..base import (
    GenerationRequest,
    ImageAdapter,
    JobHandle,
    JobSnapshot,
    JobStatus,
    Provider,
)

logger = logging.getLogger(__name__)

_TITLE = "LlamaGen API error"


class LlamaGenAdapter(ImageAdapter):
    """LlamaGen 多面板漫画"""

    provider = Provider.LLAMAGEN
    multi_image = True

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = "https://api.llamagen.ai/v1",
        model: str = "cyani-model",
        size: str = "1024x1024",
        submit_timeout: float = 30.0,
        status_timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.size = size
        self.submit_timeout = submit_timeout
        self.status_timeout = status_timeout
        self.client = client or httpx.AsyncClient()

    def _headers(self) -> dict[str, str]:
        if not self.api_key:
            raise missing_credential("LLAMAGEN_API_KEY", provider=self.name)
        return {"Authorization": f"Bearer {self.api_key}"}

    async def submit(self, request: GenerationRequest) -> JobHandle:
        headers = self._headers()
        payload: dict[str, Any] = {
            "model": request.model or self.model,
            "prompt": request.prompt,
            "size": request.size or self.size,
        }
        logger.info(
            "LlamaGen 提交生成: model=%s, size=%s", payload["model"], payload["size"]
        )

        try:
            resp = await self.client.post(
                f"{self.base_url}/comics/generations",
                headers=headers,
                json=payload,
                timeout=self.submit_timeout,
            )
        except httpx.HTTPError as e:
            raise classify(e, provider=self.name, title=_TITLE) from e

        if not resp.is_success:
            logger.error("LlamaGen 提交失败: %s %s", resp.status_code, resp.text)
            raise from_response(resp, provider=self.name, title=_TITLE)

        try:
            data = resp.json()
        except ValueError as e:
            raise classify(e, provider=self.name, title=_TITLE) from e

        job_id = data.get("id") if isinstance(data, dict) else None
        if not job_id:
            raise upstream_error(
                "LlamaGen 未返回任务 ID", provider=self.name, title=_TITLE, raw=data
            )

        logger.info("LlamaGen 任务已创建: id=%s", job_id)
        return JobHandle(id=str(job_id), provider=self.provider)

    async def fetch_status(self, handle: JobHandle) -> JobSnapshot:
        headers = self._headers()
        try:
            resp = await self.client.get(
                f"{self.base_url}/comics/generations/{handle.id}",
                headers=headers,
                timeout=self.status_timeout,
            )
        except httpx.HTTPError as e:
            raise classify(e, provider=self.name, title=_TITLE) from e

        if not resp.is_success:
            raise from_response(resp, provider=self.name, title=_TITLE)

        try:
            data = resp.json()
        except ValueError:
            # 网关偶发返回 HTML 等非 JSON 内容，没有状态可读，按仍在处理计
            logger.warning(
                "LlamaGen 状态返回无法解析，视为仍在处理: id=%s, body=%.200s",
                handle.id,
                resp.text,
            )
            return JobSnapshot(status=JobStatus.PROCESSING, raw=resp.text)
        if not isinstance(data, dict):
            data = {}

        return JobSnapshot(
            status=JobStatus.parse(data.get("status")),
            panels=_panel_urls(data),
            reason=_failure_reason(data),
            raw=data,
        )

    async def aclose(self) -> None:
        await self.client.aclose()


def _panel_urls(data: dict[str, Any]) -> list[Any]:
    comics = data.get("comics") or []
    if not isinstance(comics, list) or not comics or not isinstance(comics[0], dict):
        return []
    panels = comics[0].get("panels") or []
    if not isinstance(panels, list):
        return []
    return [p.get("assetUrl") for p in panels if isinstance(p, dict)]


def _failure_reason(data: dict[str, Any]) -> str:
    err = data.get("error")
    if isinstance(err, dict):
        return str(err.get("message") or "")
    return str(err or "")
