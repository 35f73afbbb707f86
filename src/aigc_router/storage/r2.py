"""Cloudflare R2 存储

用于托管 provider 以内联 base64 返回的图片。
"""

import logging
from typing import TYPE_CHECKING

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..errors import classify
from .base import StorageProvider, UploadResult

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger(__name__)


class R2Storage(StorageProvider):
    """Cloudflare R2 (S3 兼容)"""

    def __init__(
        self,
        *,
        access_key_id: str,
        access_key_secret: str,
        endpoint: str,
        bucket: str,
        public_domain: str = "",
        s3_client=None,
    ):
        self.bucket = bucket
        self.endpoint = endpoint.rstrip("/")
        self.public_domain = public_domain.rstrip("/")
        self.s3 = s3_client or boto3.client(
            "s3",
            endpoint_url=endpoint,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=access_key_secret,
            region_name="auto",
        )

    @classmethod
    def from_settings(cls, settings: "Settings") -> "R2Storage | None":
        """未完整配置 R2 时返回 None"""
        if not settings.storage_enabled:
            return None
        return cls(
            access_key_id=settings.r2_access_key_id,
            access_key_secret=settings.r2_access_key_secret,
            endpoint=settings.r2_endpoint,
            bucket=settings.r2_bucket,
            public_domain=settings.r2_public_domain,
        )

    @property
    def name(self) -> str:
        return "r2"

    def upload_bytes(
        self,
        data: bytes,
        key: str,
        *,
        content_type: str = "image/webp",
    ) -> UploadResult:
        try:
            self.s3.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("R2 上传失败: %s: %s", key, e)
            raise classify(e, provider=self.name, title="Image storage error") from e
        url = self.public_url(key)
        logger.info("R2 上传完成: %s (%d bytes)", url, len(data))
        return UploadResult(
            url=url,
            key=key,
            bucket=self.bucket,
            content_type=content_type,
            size=len(data),
        )

    def public_url(self, key: str) -> str:
        """没有公开域名时使用 endpoint/bucket/key 的路径风格地址"""
        if self.public_domain:
            return f"{self.public_domain}/{key}"
        return f"{self.endpoint}/{self.bucket}/{key}"

    def close(self) -> None:
        self.s3.close()
