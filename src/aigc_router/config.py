"""运行配置

进程启动时从环境变量构造一次 Settings，再显式传给各个 client / adapter。

环境变量:
    LLAMAGEN_API_KEY / GEMINI_API_KEY / GROQ_API_KEY: 各 provider 的 API 密钥
    PORT: HTTP 端口（默认 3001）
    ALLOWED_ORIGINS: 允许跨域的前端地址，逗号分隔
    DEFAULT_PROVIDER: 未指定 provider 时使用的后端（默认 llamagen）
    POLL_INTERVAL / POLL_MAX_ATTEMPTS: 轮询间隔秒数与最大次数（默认 1 / 30）
    SUBMIT_TIMEOUT / STATUS_TIMEOUT / RELAY_TIMEOUT: 单次请求超时秒数
    GEMINI_IMAGE_MODEL: Gemini 图片模型
    R2_ACCESS_KEY_ID / R2_ACCESS_KEY_SECRET / R2_ENDPOINT / R2_BUCKET / R2_PUBLIC_DOMAIN:
        内联图片上传用的 R2 存储（可选）
    LOG_LEVEL: 日志级别（默认 INFO）
"""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass

from .errors import CanonicalError
from .image.base import Provider

logger = logging.getLogger(__name__)

_DEFAULT_ORIGINS = ("http://localhost:3000", "http://127.0.0.1:3000")


def _get_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"环境变量 {key} 不是合法数字: {raw!r}") from None


def _get_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"环境变量 {key} 不是合法整数: {raw!r}") from None


@dataclass(frozen=True)
class Settings:
    llamagen_api_key: str = ""
    gemini_api_key: str = ""
    groq_api_key: str = ""

    port: int = 3001
    allowed_origins: tuple[str, ...] = _DEFAULT_ORIGINS
    default_provider: Provider = Provider.LLAMAGEN

    poll_interval: float = 1.0
    poll_max_attempts: int = 30
    submit_timeout: float = 30.0
    status_timeout: float = 10.0
    relay_timeout: float = 60.0

    gemini_image_model: str = "gemini-2.5-flash-image"

    r2_access_key_id: str = ""
    r2_access_key_secret: str = ""
    r2_endpoint: str = ""
    r2_bucket: str = ""
    r2_public_domain: str = ""

    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if environ is None else environ
        origins = tuple(
            o.strip() for o in env.get("ALLOWED_ORIGINS", "").split(",") if o.strip()
        )
        default_provider = env.get("DEFAULT_PROVIDER", "").strip()
        try:
            provider = Provider.parse(default_provider or Provider.LLAMAGEN)
        except CanonicalError as e:
            raise ValueError(f"环境变量 DEFAULT_PROVIDER 无效: {e.message}") from None
        return cls(
            llamagen_api_key=env.get("LLAMAGEN_API_KEY", ""),
            gemini_api_key=env.get("GEMINI_API_KEY", ""),
            groq_api_key=env.get("GROQ_API_KEY", ""),
            port=_get_int(env, "PORT", 3001),
            allowed_origins=origins or _DEFAULT_ORIGINS,
            default_provider=provider,
            poll_interval=_get_float(env, "POLL_INTERVAL", 1.0),
            poll_max_attempts=_get_int(env, "POLL_MAX_ATTEMPTS", 30),
            submit_timeout=_get_float(env, "SUBMIT_TIMEOUT", 30.0),
            status_timeout=_get_float(env, "STATUS_TIMEOUT", 10.0),
            relay_timeout=_get_float(env, "RELAY_TIMEOUT", 60.0),
            gemini_image_model=env.get("GEMINI_IMAGE_MODEL", "gemini-2.5-flash-image"),
            r2_access_key_id=env.get("R2_ACCESS_KEY_ID", ""),
            r2_access_key_secret=env.get("R2_ACCESS_KEY_SECRET", ""),
            r2_endpoint=env.get("R2_ENDPOINT", ""),
            r2_bucket=env.get("R2_BUCKET", ""),
            r2_public_domain=env.get("R2_PUBLIC_DOMAIN", ""),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )

    @property
    def storage_enabled(self) -> bool:
        return all(
            (
                self.r2_access_key_id,
                self.r2_access_key_secret,
                self.r2_endpoint,
                self.r2_bucket,
            )
        )

    def missing_credentials(self) -> list[str]:
        """未配置的 API 密钥环境变量名"""
        keys = {
            "LLAMAGEN_API_KEY": self.llamagen_api_key,
            "GEMINI_API_KEY": self.gemini_api_key,
            "GROQ_API_KEY": self.groq_api_key,
        }
        return [name for name, value in keys.items() if not value]

    def warn_missing(self) -> None:
        for name in self.missing_credentials():
            logger.warning("%s 未设置，对应 provider 将不可用", name)
