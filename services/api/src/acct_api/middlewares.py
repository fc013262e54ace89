"""应用中间件注册。

请求依次经过：CORS → 请求追踪与调用指标 → 安全响应头 → 严格 JSON 解析。
"""

import json
import logging
from time import perf_counter
import uuid

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from acct_api.exceptions import InvalidInput
from acct_api.utils.response import apply_security_headers, error_payload

logger = logging.getLogger(__name__)


def _is_json_content_type(content_type: str) -> bool:
    media_type = content_type.split(";")[0].strip().lower()
    return media_type == "application/json" or media_type.endswith("+json")


def _record_call_metrics(request: Request, elapsed_ms: float) -> None:
    """按路由名记录调用次数与耗时。"""
    route = request.scope.get("route")
    name = getattr(route, "name", None) or "unmatched"
    metrics = request.app.state.registry.metrics
    metrics.incr(f"api.{name}.count")
    metrics.timing(f"api.{name}.latency", elapsed_ms)


async def request_id_middleware(request: Request, call_next):
    """注入请求追踪 ID，通过响应头返回，并上报调用指标。"""
    request.state.request_id = str(uuid.uuid4())
    request.state.request_started_at = perf_counter()
    response = await call_next(request)
    elapsed_ms = (perf_counter() - request.state.request_started_at) * 1000
    response.headers["X-Request-Id"] = request.state.request_id
    response.headers["X-Process-Time-Ms"] = str(round(elapsed_ms, 2))
    _record_call_metrics(request, elapsed_ms)
    logger.info(
        "%s %s status=%s ms=%.2f request_id=%s",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
        request.state.request_id,
    )
    return response


async def security_headers_middleware(request: Request, call_next):
    """所有响应统一禁止缓存与内容嗅探。"""
    response = await call_next(request)
    return apply_security_headers(response)


async def strict_json_middleware(request: Request, call_next):
    """JSON 请求体必须可解析，否则在进入路由前直接返回 400。"""
    if _is_json_content_type(request.headers.get("content-type", "")):
        body = await request.body()
        if body.strip():
            try:
                json.loads(body)
            except ValueError:
                return JSONResponse(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    content=error_payload(
                        request,
                        code=InvalidInput.code,
                        message="请求体不是合法的 JSON。",
                        details={"status_code": status.HTTP_400_BAD_REQUEST, "reason": "malformed_json"},
                    ),
                )
    return await call_next(request)


def register_middlewares(app: FastAPI, cors_origins: list[str]) -> None:
    """集中注册中间件（后注册者位于外层）。"""
    app.middleware("http")(strict_json_middleware)
    app.middleware("http")(security_headers_middleware)
    app.middleware("http")(request_id_middleware)
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
