"""图片生成抽象接口与数据模型"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from ..errors import ErrorKind, invalid_input

logger = logging.getLogger(__name__)

MIN_COUNT = 1
MAX_COUNT = 10


class Provider(str, Enum):
    """可选的图片生成后端"""

    LLAMAGEN = "llamagen"
    GEMINI = "gemini"
    GROK = "grok"

    @classmethod
    def parse(cls, value: "str | Provider") -> "Provider":
        """解析 provider 名称，兼容旧的路由名（webtoon / image）"""
        if isinstance(value, Provider):
            return value
        key = str(value).strip().lower()
        key = _LEGACY_NAMES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise invalid_input(
                f"未知 provider: {value}，可选: {[p.value for p in cls]}"
            ) from None


_LEGACY_NAMES = {"webtoon": "llamagen", "image": "gemini"}


@dataclass(frozen=True)
class GenerationRequest:
    """一次生成请求，构造时完成校验"""

    prompt: str
    model: str | None = None
    size: str | None = None
    count: int | None = None

    def __post_init__(self) -> None:
        prompt = self.prompt.strip() if isinstance(self.prompt, str) else ""
        if not prompt:
            raise invalid_input("请输入提示词", title="Prompt is required")
        object.__setattr__(self, "prompt", prompt)

        if self.count is not None:
            if (
                isinstance(self.count, bool)
                or not isinstance(self.count, int)
                or not MIN_COUNT <= self.count <= MAX_COUNT
            ):
                raise invalid_input(f"图片数量必须在 {MIN_COUNT}~{MAX_COUNT} 之间")


@dataclass(frozen=True)
class JobHandle:
    """异步任务句柄，只在一次请求内有效"""

    id: str
    provider: Provider
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class JobStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    PROCESSED = "PROCESSED"
    FAILED = "FAILED"
    ERROR = "ERROR"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.PROCESSED, JobStatus.FAILED, JobStatus.ERROR)

    @property
    def is_failure(self) -> bool:
        return self in (JobStatus.FAILED, JobStatus.ERROR)

    @classmethod
    def parse(cls, value: Any) -> "JobStatus":
        """未知状态按 PROCESSING 处理"""
        try:
            return cls(str(value).upper())
        except ValueError:
            logger.warning("未知任务状态 %r，按处理中对待", value)
            return cls.PROCESSING


@dataclass
class JobSnapshot:
    """单次状态查询的结果"""

    status: JobStatus
    panels: list[Any] = field(default_factory=list)
    reason: str = ""
    raw: Any = None


@dataclass
class ImageResult:
    """适配器的即时结果（归一化之前）"""

    urls: list[str] = field(default_factory=list)
    base64: str = ""
    mime_type: str = "image/png"
    provider: str = ""
    metadata: dict = field(default_factory=dict)

    @property
    def has_url(self) -> bool:
        return bool(self.urls)

    @property
    def has_base64(self) -> bool:
        return bool(self.base64)


@dataclass(frozen=True)
class SingleImage:
    url: str
    provider: str = ""

    kind = "single"

    @property
    def primary(self) -> str:
        return self.url

    @property
    def panels(self) -> tuple[str, ...]:
        return (self.url,)


@dataclass(frozen=True)
class MultiPanel:
    panels: tuple[str, ...]
    provider: str = ""
    job_id: str | None = None

    kind = "multi"

    def __post_init__(self) -> None:
        if not self.panels:
            raise ValueError("MultiPanel 至少需要一张图片")
        object.__setattr__(self, "panels", tuple(self.panels))

    @property
    def primary(self) -> str:
        return self.panels[0]


GenerationResult = SingleImage | MultiPanel


@dataclass(frozen=True)
class StillProcessing:
    """轮询次数用尽、任务仍未完成；调用方可凭句柄稍后再查"""

    handle: JobHandle
    attempts: int
    message: str = ""

    kind = ErrorKind.STILL_PROCESSING


class ImageAdapter(ABC):
    """图片生成 Provider 适配器抽象基类

    submit 返回即时结果或任务句柄；所有失败都以 CanonicalError 抛出。
    """

    provider: Provider
    # 可以一次返回多张图的 provider，归一化后总是 MultiPanel
    multi_image: bool = False

    @property
    def name(self) -> str:
        """Provider 名称"""
        return self.provider.value

    @abstractmethod
    async def submit(self, request: GenerationRequest) -> ImageResult | JobHandle:
        """提交生成请求"""

    async def fetch_status(self, handle: JobHandle) -> JobSnapshot:
        """查询异步任务状态（仅异步 provider 实现）"""
        raise invalid_input(f"{self.name} 不支持任务查询")

    async def aclose(self) -> None:
        """释放资源"""
