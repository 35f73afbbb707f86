"""图片托管存储抽象接口

同步接口；在异步流程里由 ImageClient 放到线程池执行。
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class UploadResult:
    """一次上传后可公开访问的位置"""

    url: str
    key: str
    bucket: str = ""
    content_type: str = "image/webp"
    size: int = 0


class StorageProvider(ABC):
    """托管 provider 内联返回的图片"""

    @property
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    def upload_bytes(
        self, data: bytes, key: str, *, content_type: str = "image/webp"
    ) -> UploadResult:
        """写入对象并返回可访问的 URL；失败抛 CanonicalError"""

    def close(self) -> None:
        pass
