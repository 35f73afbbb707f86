"""统一图片生成入口"""

from .base import (
    GenerationRequest,
    GenerationResult,
    ImageAdapter,
    ImageResult,
    JobHandle,
    JobSnapshot,
    JobStatus,
    MultiPanel,
    Provider,
    SingleImage,
    StillProcessing,
)
from .client import ImageClient
from .normalizer import normalize
from .poller import JobPoller

__all__ = [
    "GenerationRequest",
    "GenerationResult",
    "ImageAdapter",
    "ImageClient",
    "ImageResult",
    "JobHandle",
    "JobPoller",
    "JobSnapshot",
    "JobStatus",
    "MultiPanel",
    "Provider",
    "SingleImage",
    "StillProcessing",
    "normalize",
]
