"""统一图片生成客户端

按 Provider 选择适配器：同步结果直接归一化，异步任务交给 JobPoller 轮询到终态。
如果结果只有 base64，转 webp 后上传到存储获取 URL。
"""

import asyncio
import base64
import binascii
import io
import logging
import uuid
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING

from PIL import Image

from ..errors import classify, invalid_input
from ..storage.base import StorageProvider
from .base import (
    GenerationRequest,
    GenerationResult,
    ImageAdapter,
    ImageResult,
    JobHandle,
    Provider,
    StillProcessing,
)
from .normalizer import normalize
from .poller import JobPoller

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger(__name__)

# 已注册的 provider 工厂
_PROVIDER_FACTORIES: dict[Provider, Callable[["Settings"], ImageAdapter]] = {}


def _ensure_registered() -> None:
    """延迟注册，避免循环导入"""
    if _PROVIDER_FACTORIES:
        return
    from .providers.gemini import GeminiImageAdapter
    from .providers.grok import GrokRelayAdapter
    from .providers.llamagen import LlamaGenAdapter

    _PROVIDER_FACTORIES[Provider.LLAMAGEN] = lambda s: LlamaGenAdapter(
        api_key=s.llamagen_api_key,
        submit_timeout=s.submit_timeout,
        status_timeout=s.status_timeout,
    )
    _PROVIDER_FACTORIES[Provider.GEMINI] = lambda s: GeminiImageAdapter(
        api_key=s.gemini_api_key,
        model=s.gemini_image_model,
        timeout=s.submit_timeout,
    )
    _PROVIDER_FACTORIES[Provider.GROK] = lambda s: GrokRelayAdapter(
        timeout=s.relay_timeout,
    )


def _convert_to_webp(data: bytes) -> bytes:
    img = Image.open(io.BytesIO(data))
    buf = io.BytesIO()
    img.save(buf, format="WEBP", quality=85)
    return buf.getvalue()


class ImageClient:
    """统一图片生成客户端

    用法:
        client = ImageClient.from_settings(Settings.from_env())
        result = await client.generate(GenerationRequest(prompt="一只猫"), Provider.LLAMAGEN)
        print(result.primary)
    """

    def __init__(
        self,
        adapters: Mapping[Provider, ImageAdapter],
        *,
        poller: JobPoller | None = None,
        storage: StorageProvider | None = None,
        storage_key_prefix: str = "aigc",
        default_provider: Provider = Provider.LLAMAGEN,
    ):
        self._adapters = dict(adapters)
        self._poller = poller or JobPoller()
        self._storage = storage
        self._storage_key_prefix = storage_key_prefix
        self.default_provider = default_provider

    @classmethod
    def from_settings(
        cls, settings: "Settings", *, storage: StorageProvider | None = None
    ) -> "ImageClient":
        _ensure_registered()
        if storage is None:
            from ..storage.r2 import R2Storage

            storage = R2Storage.from_settings(settings)
        return cls(
            {provider: factory(settings) for provider, factory in _PROVIDER_FACTORIES.items()},
            poller=JobPoller(
                interval=settings.poll_interval,
                max_attempts=settings.poll_max_attempts,
            ),
            storage=storage,
            default_provider=settings.default_provider,
        )

    @property
    def providers(self) -> list[Provider]:
        return list(self._adapters)

    def adapter(self, provider: Provider | str | None = None) -> ImageAdapter:
        key = Provider.parse(provider) if provider else self.default_provider
        adapter = self._adapters.get(key)
        if adapter is None:
            raise invalid_input(
                f"provider 未启用: {key.value}，可选: {[p.value for p in self._adapters]}"
            )
        return adapter

    async def generate(
        self,
        request: GenerationRequest,
        provider: Provider | str | None = None,
    ) -> GenerationResult | StillProcessing:
        """生成图片；失败抛 CanonicalError，轮询超时返回 StillProcessing"""
        adapter = self.adapter(provider)
        logger.info("%s 生成请求: %.50s", adapter.name, request.prompt)

        outcome = await adapter.submit(request)
        if isinstance(outcome, JobHandle):
            polled = await self._poller.poll(adapter, outcome)
            return self._finish(adapter, polled, outcome)

        outcome = await self._ensure_url(outcome, adapter.name)
        return normalize(
            outcome.urls, multi_image=adapter.multi_image, provider=adapter.name
        )

    async def check_job(
        self, provider: Provider | str, job_id: str
    ) -> GenerationResult | StillProcessing:
        """凭任务 ID 立即查询一次"""
        if not job_id or not job_id.strip():
            raise invalid_input("任务 ID 不能为空")
        adapter = self.adapter(provider)
        handle = JobHandle(id=job_id.strip(), provider=adapter.provider)
        polled = await self._poller.check(adapter, handle)
        return self._finish(adapter, polled, handle)

    @staticmethod
    def _finish(
        adapter: ImageAdapter,
        polled: list[str] | StillProcessing,
        handle: JobHandle,
    ) -> GenerationResult | StillProcessing:
        if isinstance(polled, StillProcessing):
            return polled
        return normalize(
            polled,
            multi_image=adapter.multi_image,
            provider=adapter.name,
            job_id=handle.id,
        )

    async def _ensure_url(self, result: ImageResult, provider: str) -> ImageResult:
        """如果结果只有 base64 没有 url，转 webp 后上传；没有存储时退化为 data URI"""
        if result.has_url or not result.has_base64:
            return result

        if not self._storage:
            logger.warning("图片结果为 base64 但未配置 storage，返回 data URI")
            result.urls = [f"data:{result.mime_type};base64,{result.base64}"]
            return result

        key = f"{self._storage_key_prefix}/{uuid.uuid4().hex}.webp"
        try:
            raw_data = base64.b64decode(result.base64)
            webp_data = await asyncio.to_thread(_convert_to_webp, raw_data)
        except (binascii.Error, OSError) as e:
            raise classify(e, provider=provider, title="Invalid image data") from e
        # 存储失败由 StorageProvider 转为 CanonicalError
        upload = await asyncio.to_thread(
            self._storage.upload_bytes, webp_data, key, content_type="image/webp"
        )
        logger.info("上传图片 webp: %s (%d -> %d bytes)", key, len(raw_data), len(webp_data))

        result.urls = [upload.url]
        result.mime_type = upload.content_type
        return result

    async def aclose(self) -> None:
        for adapter in self._adapters.values():
            await adapter.aclose()
        if self._storage:
            self._storage.close()
