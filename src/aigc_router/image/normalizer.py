"""结果归一化

多图 provider 总是返回 MultiPanel（哪怕只有一张），单图 provider 返回 SingleImage。
"""

import re
from urllib.parse import urlparse

from .base import GenerationResult, MultiPanel, SingleImage

_URL_PATTERN = re.compile(r"https?://[^\s\)\]\}\"'<>]+")


def clean_urls(values: list) -> list[str]:
    """去掉空值、非字符串和非 http(s) 的条目，保持顺序"""
    result: list[str] = []
    for value in values:
        if not isinstance(value, str):
            continue
        url = value.strip()
        if url and urlparse(url).scheme in ("http", "https"):
            result.append(url)
    return result


def find_url(text: str) -> str | None:
    """从自由文本里取出第一个 URL，去掉句尾标点"""
    match = _URL_PATTERN.search(text)
    if not match:
        return None
    return match.group(0).rstrip(".,;:!?")


def normalize(
    urls: list[str],
    *,
    multi_image: bool,
    provider: str = "",
    job_id: str | None = None,
) -> GenerationResult:
    if not urls:
        # 空列表应在上游就被处理掉
        raise ValueError(f"{provider or 'provider'} 没有可归一化的图片")
    if multi_image:
        return MultiPanel(panels=tuple(urls), provider=provider, job_id=job_id)
    return SingleImage(url=urls[0], provider=provider)
