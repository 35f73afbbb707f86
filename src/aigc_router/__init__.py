"""AIGC Router - 多图片生成后端的统一路由"""

from .config import Settings
from .errors import CanonicalError, ErrorKind
from .image import (
    GenerationRequest,
    ImageClient,
    JobHandle,
    JobPoller,
    MultiPanel,
    Provider,
    SingleImage,
    StillProcessing,
)
from .llm import EnhanceClient, TextResult

__all__ = [
    "CanonicalError",
    "EnhanceClient",
    "ErrorKind",
    "GenerationRequest",
    "ImageClient",
    "JobHandle",
    "JobPoller",
    "MultiPanel",
    "Provider",
    "Settings",
    "SingleImage",
    "StillProcessing",
    "TextResult",
]
