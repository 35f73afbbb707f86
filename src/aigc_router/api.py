"""HTTP 边界

    POST /api/generate                 生成图片（provider 由请求体选择）
    GET  /api/jobs/{provider}/{job_id} 凭任务 ID 补查异步任务
    POST /api/prompt/enhance           提示词扩写
    GET  /health                       健康检查

CanonicalError 在这里统一转换为 {error, message, details?} 响应。
"""

import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings
from .errors import CanonicalError
from .image import (
    GenerationRequest,
    GenerationResult,
    ImageClient,
    MultiPanel,
    StillProcessing,
)
from .llm import EnhanceClient

logger = logging.getLogger(__name__)


class GenerateBody(BaseModel):
    prompt: str = ""
    model: str | None = None
    size: str | None = None
    count: int | None = None
    provider: str | None = None


class EnhanceBody(BaseModel):
    keywords: str = ""
    provider: str | None = None


def result_payload(result: GenerationResult | StillProcessing) -> tuple[int, dict[str, Any]]:
    """把归一化结果转为 (HTTP 状态码, 响应体)"""
    if isinstance(result, StillProcessing):
        return 202, {
            "imageId": result.handle.id,
            "provider": result.handle.provider.value,
            "status": "processing",
            "message": result.message,
        }

    body: dict[str, Any] = {
        "status": "success",
        "kind": result.kind,
        "provider": result.provider,
        "imageUrl": result.primary,
    }
    if isinstance(result, MultiPanel):
        body["panels"] = list(result.panels)
        if result.job_id:
            body["imageId"] = result.job_id
    return 200, body


def create_app(
    settings: Settings | None = None,
    *,
    image_client: ImageClient | None = None,
    enhance_client: EnhanceClient | None = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    image_client = image_client or ImageClient.from_settings(settings)
    enhance_client = enhance_client or EnhanceClient.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        settings.warn_missing()
        logger.info(
            "AIGC Router 已启动: providers=%s, 默认=%s",
            [p.value for p in image_client.providers],
            image_client.default_provider.value,
        )
        yield
        await image_client.aclose()
        await enhance_client.aclose()
        logger.info("AIGC Router 已关闭")

    app = FastAPI(title="AIGC Router", lifespan=lifespan)
    app.state.settings = settings
    app.state.image_client = image_client
    app.state.enhance_client = enhance_client

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.allowed_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def _log_requests(request: Request, call_next):
        logger.info("%s %s", request.method, request.url.path)
        return await call_next(request)

    @app.exception_handler(CanonicalError)
    async def _canonical_error_handler(request: Request, exc: CanonicalError):
        level = logging.WARNING if exc.http_status < 500 else logging.ERROR
        logger.log(
            level,
            "%s %s -> %d %s: %s",
            request.method,
            request.url.path,
            exc.http_status,
            exc.kind.value,
            exc.message,
        )
        return JSONResponse(status_code=exc.http_status, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def _validation_error_handler(request: Request, exc: RequestValidationError):
        message = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', '')}"
            for err in exc.errors()
        )
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid parameter", "message": message},
        )

    @app.exception_handler(StarletteHTTPException)
    async def _http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            content = {"error": "Not Found", "message": "请求的接口不存在"}
        else:
            content = {"error": str(exc.detail), "message": str(exc.detail)}
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(
            "Unhandled %s on %s %s",
            type(exc).__name__,
            request.method,
            request.url.path,
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "message": "服务器内部错误"},
        )

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "message": "AIGC Router is running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.post("/api/generate")
    async def generate(body: GenerateBody):
        request = GenerationRequest(
            prompt=body.prompt, model=body.model, size=body.size, count=body.count
        )
        result = await image_client.generate(request, body.provider)
        status_code, payload = result_payload(result)
        return JSONResponse(status_code=status_code, content=payload)

    @app.get("/api/jobs/{provider}/{job_id}")
    async def check_job(provider: str, job_id: str):
        result = await image_client.check_job(provider, job_id)
        status_code, payload = result_payload(result)
        return JSONResponse(status_code=status_code, content=payload)

    @app.post("/api/prompt/enhance")
    async def enhance(body: EnhanceBody):
        result = await enhance_client.enhance(body.keywords, body.provider)
        return {
            "enhancedPrompt": result.text,
            "provider": result.provider,
            "status": "success",
        }

    return app


def main() -> None:
    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    logger.info("Starting on port %d", settings.port)
    uvicorn.run(
        create_app(settings),
        host="0.0.0.0",
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
