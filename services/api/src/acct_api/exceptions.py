"""业务异常分类与应用异常处理注册。"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from acct_api.utils.response import DEFAULT_ERROR_MESSAGE, apply_security_headers, error_payload

logger = logging.getLogger(__name__)


class AppError(Exception):
    """业务异常基类，携带状态码与机器可识别错误码。"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "APP_ERROR"

    def __init__(self, detail: str | None = None, *, status_code: int | None = None, headers: dict[str, str] | None = None):
        super().__init__(detail or self.code.lower())
        self.detail = detail or self.code.lower()
        if status_code is not None:
            self.status_code = status_code
        self.headers = headers


class InvalidInput(AppError):
    """请求字段缺失、非法或携带多余参数。"""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "INVALID_INPUT"


class Unauthenticated(AppError):
    """凭据缺失、格式错误或不匹配。"""

    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"

    def __init__(self, detail: str | None = None):
        super().__init__(detail or "unauthorized", headers={"WWW-Authenticate": "Basic"})


class Forbidden(AppError):
    """凭据正确但邮箱尚未验证。"""

    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class MethodNotAllowed(AppError):
    status_code = status.HTTP_405_METHOD_NOT_ALLOWED
    code = "METHOD_NOT_ALLOWED"


class Conflict(AppError):
    """资源已存在。状态码由调用端点决定（注册为 400，头像上传为 409）。"""

    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"


class UpstreamFailure(AppError):
    """数据库或对象存储不可用。"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "UPSTREAM_FAILURE"


_CODE_BY_STATUS = {
    status.HTTP_400_BAD_REQUEST: InvalidInput.code,
    status.HTTP_401_UNAUTHORIZED: Unauthenticated.code,
    status.HTTP_403_FORBIDDEN: Forbidden.code,
    status.HTTP_404_NOT_FOUND: NotFound.code,
    status.HTTP_405_METHOD_NOT_ALLOWED: MethodNotAllowed.code,
    status.HTTP_409_CONFLICT: Conflict.code,
}


def _default_http_message(status_code: int) -> str:
    if status_code == status.HTTP_400_BAD_REQUEST:
        return "请求参数不合法。"
    if status_code == status.HTTP_401_UNAUTHORIZED:
        return "认证失败，请检查邮箱与密码。"
    if status_code == status.HTTP_403_FORBIDDEN:
        return "邮箱尚未验证，请先完成邮箱验证。"
    if status_code == status.HTTP_404_NOT_FOUND:
        return "请求资源不存在。"
    if status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        return "不支持该请求方法。"
    if status_code == status.HTTP_409_CONFLICT:
        return "请求与当前数据状态冲突。"
    return "请求处理失败。"


async def app_error_handler(request: Request, exc: AppError):
    """将业务异常统一包装为标准错误结构。"""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_payload(
            request,
            code=exc.code,
            message=_default_http_message(exc.status_code),
            details={"status_code": exc.status_code, "reason": exc.detail},
        ),
        headers=exc.headers,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """将框架层协议异常（404/405 等）统一包装为标准错误结构。"""
    code = _CODE_BY_STATUS.get(exc.status_code, "HTTP_ERROR")
    reason = exc.detail if isinstance(exc.detail, str) else code.lower()
    return JSONResponse(
        status_code=exc.status_code,
        content=error_payload(
            request,
            code=code,
            message=_default_http_message(exc.status_code),
            details={"status_code": exc.status_code, "reason": reason},
        ),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """请求参数校验错误统一按 400 返回。"""
    normalized_errors = [
        {
            "field": ".".join(str(item) for item in err.get("loc", []) if item != "body"),
            "message": err.get("msg"),
            "type": err.get("type"),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_payload(
            request,
            code=InvalidInput.code,
            message="请求参数校验失败。",
            details={
                "status_code": status.HTTP_400_BAD_REQUEST,
                "reason": "validation_error",
                "errors": normalized_errors,
            },
        ),
    )


async def unexpected_exception_handler(request: Request, exc: Exception):
    """处理未捕获异常，避免内部细节泄露。"""
    logger.exception("unhandled error method=%s path=%s", request.method, request.url.path)
    response = JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_payload(
            request,
            code="INTERNAL_ERROR",
            message=DEFAULT_ERROR_MESSAGE,
            details={
                "status_code": status.HTTP_500_INTERNAL_SERVER_ERROR,
                "reason": "unexpected_exception",
            },
        ),
    )
    # 该处理器位于中间件链之外，需要自行补齐安全头。
    return apply_security_headers(response)


def register_exception_handlers(app: FastAPI) -> None:
    """集中注册异常处理器。"""
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(RequestValidationError)(validation_exception_handler)
    app.exception_handler(Exception)(unexpected_exception_handler)
