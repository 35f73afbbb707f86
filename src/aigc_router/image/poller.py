"""异步任务轮询

固定间隔、有上限的轮询状态机。只持有本次调用内的状态，不是持久化任务队列。
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from ..errors import CanonicalError, upstream_error
from .base import ImageAdapter, JobHandle, JobStatus, StillProcessing
from .normalizer import clean_urls

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 1.0
DEFAULT_MAX_ATTEMPTS = 30


class JobPoller:
    """驱动异步 provider 的任务状态直到终态或用尽次数"""

    def __init__(
        self,
        *,
        interval: float = DEFAULT_INTERVAL,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts 必须 >= 1")
        if interval < 0:
            raise ValueError("interval 不能为负数")
        self.interval = interval
        self.max_attempts = max_attempts
        self._sleep = sleep

    async def poll(
        self, adapter: ImageAdapter, handle: JobHandle
    ) -> list[str] | StillProcessing:
        """轮询直到拿到面板列表；失败抛 CanonicalError，超出次数返回 StillProcessing"""
        attempts = 0
        while attempts < self.max_attempts:
            await self._sleep(self.interval)
            attempts += 1
            panels = await self._step(adapter, handle, attempts)
            if panels:
                logger.info(
                    "%s 任务完成: id=%s, 面板数=%d, 尝试=%d",
                    adapter.name,
                    handle.id,
                    len(panels),
                    attempts,
                )
                return panels

        logger.warning(
            "%s 任务轮询次数用尽: id=%s, 尝试=%d", adapter.name, handle.id, attempts
        )
        return StillProcessing(
            handle=handle,
            attempts=attempts,
            message=(
                f"图片仍在生成中，已等待 {attempts * self.interval:g} 秒仍未完成，"
                "请稍后凭任务 ID 再次查询"
            ),
        )

    async def check(
        self, adapter: ImageAdapter, handle: JobHandle
    ) -> list[str] | StillProcessing:
        """立即查询一次状态，用于凭句柄补查"""
        panels = await self._step(adapter, handle, 1)
        if panels:
            return panels
        return StillProcessing(
            handle=handle, attempts=1, message="图片仍在生成中，请稍后再次查询"
        )

    async def _step(
        self, adapter: ImageAdapter, handle: JobHandle, attempt: int
    ) -> list[str] | None:
        try:
            snapshot = await adapter.fetch_status(handle)
        except CanonicalError as e:
            if not e.transient:
                raise
            logger.warning(
                "%s 状态查询失败，视为仍在处理 (尝试 %d/%d): %s",
                adapter.name,
                attempt,
                self.max_attempts,
                e.message,
            )
            return None

        if snapshot.status is JobStatus.PROCESSED:
            panels = clean_urls(snapshot.panels)
            if panels:
                return panels
            logger.warning(
                "%s 任务已完成但没有可用面板，继续等待: id=%s", adapter.name, handle.id
            )
            return None

        if snapshot.status.is_failure:
            reason = snapshot.reason or "未知错误"
            logger.error(
                "%s 任务失败: id=%s, status=%s, reason=%s",
                adapter.name,
                handle.id,
                snapshot.status.value,
                reason,
            )
            raise upstream_error(
                f"图片生成失败: {reason}",
                provider=adapter.name,
                raw=snapshot.raw,
            )

        logger.info(
            "%s 生成中... (状态: %s, 尝试 %d/%d)",
            adapter.name,
            snapshot.status.value,
            attempt,
            self.max_attempts,
        )
        return None
