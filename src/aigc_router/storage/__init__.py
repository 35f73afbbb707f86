"""图片托管存储"""

from .base import StorageProvider, UploadResult
from .r2 import R2Storage

__all__ = ["R2Storage", "StorageProvider", "UploadResult"]
