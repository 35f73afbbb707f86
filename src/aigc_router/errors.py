"""统一错误分类

参数校验、缺少配置、网络传输失败、上游业务错误都在适配器边界转换为
CanonicalError，调用方只需要处理这一种异常。轮询超出次数不算错误，见
image.base.StillProcessing。
"""

import logging
from enum import Enum
from typing import Any

import binascii

import httpx
import openai
from botocore.exceptions import BotoCoreError
from botocore.exceptions import ClientError as BotoClientError
from google.genai import errors as genai_errors
from PIL import UnidentifiedImageError

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    """错误类别"""

    INVALID_INPUT = "invalid_input"
    MISSING_CREDENTIAL = "missing_credential"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    UPSTREAM_ERROR = "upstream_error"
    STILL_PROCESSING = "still_processing"


HTTP_STATUS: dict[ErrorKind, int] = {
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.MISSING_CREDENTIAL: 500,
    ErrorKind.UPSTREAM_UNAVAILABLE: 503,
    ErrorKind.UPSTREAM_ERROR: 502,
    ErrorKind.STILL_PROCESSING: 202,
}

_DEFAULT_TITLES: dict[ErrorKind, str] = {
    ErrorKind.INVALID_INPUT: "Invalid parameter",
    ErrorKind.MISSING_CREDENTIAL: "API key not configured",
    ErrorKind.UPSTREAM_UNAVAILABLE: "Service unavailable",
    ErrorKind.UPSTREAM_ERROR: "Upstream API error",
    ErrorKind.STILL_PROCESSING: "Still processing",
}


class CanonicalError(Exception):
    """与 provider 无关的统一错误"""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        title: str | None = None,
        raw: Any = None,
        status_code: int | None = None,
        provider: str = "",
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.title = title or _DEFAULT_TITLES[kind]
        self.raw = raw
        self.status_code = status_code
        self.provider = provider

    @property
    def http_status(self) -> int:
        if (
            self.kind is ErrorKind.UPSTREAM_ERROR
            and self.status_code is not None
            and self.status_code >= 400
        ):
            return self.status_code
        return HTTP_STATUS[self.kind]

    @property
    def transient(self) -> bool:
        """轮询时可以当作"仍在处理"吞掉的失败"""
        if self.kind is ErrorKind.UPSTREAM_UNAVAILABLE:
            return True
        return self.kind is ErrorKind.UPSTREAM_ERROR and self.status_code is not None and (
            self.status_code >= 500 or self.status_code == 429
        )

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.title, "message": self.message}
        if self.raw is not None:
            body["details"] = self.raw
        return body

    def __repr__(self) -> str:
        return (
            f"CanonicalError(kind={self.kind.value!r}, provider={self.provider!r}, "
            f"message={self.message!r})"
        )


def invalid_input(message: str, *, title: str | None = None) -> CanonicalError:
    return CanonicalError(ErrorKind.INVALID_INPUT, message, title=title)


def missing_credential(env_var: str, *, provider: str) -> CanonicalError:
    return CanonicalError(
        ErrorKind.MISSING_CREDENTIAL,
        f"{env_var} 未设置，请在环境变量中配置 API 密钥",
        provider=provider,
    )


def unavailable(
    message: str, *, provider: str, title: str | None = None, raw: Any = None
) -> CanonicalError:
    return CanonicalError(
        ErrorKind.UPSTREAM_UNAVAILABLE, message, title=title, raw=raw, provider=provider
    )


def upstream_error(
    message: str,
    *,
    provider: str,
    title: str | None = None,
    raw: Any = None,
    status_code: int | None = None,
) -> CanonicalError:
    return CanonicalError(
        ErrorKind.UPSTREAM_ERROR,
        message,
        title=title,
        raw=raw,
        status_code=status_code,
        provider=provider,
    )


def extract_error_message(payload: Any) -> str | None:
    """取出返回体中的结构化错误信息（error.message / error / message）"""
    if not isinstance(payload, dict):
        return None
    err = payload.get("error")
    if isinstance(err, dict):
        msg = err.get("message")
        if isinstance(msg, str) and msg:
            return msg
    elif isinstance(err, str) and err:
        return err
    msg = payload.get("message")
    if isinstance(msg, str) and msg:
        return msg
    return None


def response_payload(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return resp.text or None


def from_response(
    resp: httpx.Response,
    *,
    provider: str,
    title: str | None = None,
    fallback: str | None = None,
) -> CanonicalError:
    """非 2xx 响应 → UPSTREAM_ERROR，保留原始返回体"""
    raw = response_payload(resp)
    message = (
        extract_error_message(raw)
        or fallback
        or f"{provider} 请求失败: HTTP {resp.status_code}"
    )
    return upstream_error(
        message, provider=provider, title=title, raw=raw, status_code=resp.status_code
    )


def _describe(exc: Exception) -> str:
    return str(exc) or type(exc).__name__


def classify(
    exc: Exception, *, provider: str, title: str | None = None
) -> CanonicalError:
    """把传输层 / SDK 异常映射为 CanonicalError

    有响应的失败 → UPSTREAM_ERROR，没有响应的失败 → UPSTREAM_UNAVAILABLE。
    """
    if isinstance(exc, CanonicalError):
        return exc

    if isinstance(exc, httpx.HTTPStatusError):
        return from_response(
            exc.response, provider=provider, title=title, fallback=_describe(exc)
        )
    if isinstance(exc, httpx.TransportError):
        return unavailable(
            f"{provider} 服务无响应: {_describe(exc)}", provider=provider, title=title
        )

    if isinstance(exc, openai.APIStatusError):
        return upstream_error(
            extract_error_message(exc.body) or exc.message,
            provider=provider,
            title=title,
            raw=exc.body,
            status_code=exc.status_code,
        )
    if isinstance(exc, openai.APIConnectionError):
        return unavailable(
            f"{provider} 服务无响应: {_describe(exc)}", provider=provider, title=title
        )

    if isinstance(exc, genai_errors.APIError):
        return upstream_error(
            exc.message or _describe(exc),
            provider=provider,
            title=title,
            raw=exc.details,
            status_code=exc.code,
        )

    if isinstance(exc, BotoClientError):
        error = exc.response.get("Error", {})
        return upstream_error(
            error.get("Message") or _describe(exc),
            provider=provider,
            title=title,
            raw=exc.response,
            status_code=exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode"),
        )
    if isinstance(exc, BotoCoreError):
        return unavailable(
            f"{provider} 存储无响应: {_describe(exc)}", provider=provider, title=title
        )

    # provider 返回的图片数据无法解码
    if isinstance(exc, (binascii.Error, UnidentifiedImageError)):
        return upstream_error(
            f"{provider} 返回的图片数据无效: {_describe(exc)}",
            provider=provider,
            title=title,
        )

    logger.warning("未识别的 %s 异常: %r", provider, exc)
    return upstream_error(_describe(exc), provider=provider, title=title)
