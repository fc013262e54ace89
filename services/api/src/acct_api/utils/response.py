"""统一响应头与错误结构工具。"""

from datetime import datetime, timezone
from typing import Any

from fastapi import Request, Response

DEFAULT_ERROR_MESSAGE = "internal server error"

# 所有响应统一携带的禁止缓存与内容嗅探头。
SECURITY_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "X-Content-Type-Options": "nosniff",
}


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def apply_security_headers(response: Response) -> Response:
    """为响应写入统一安全头。"""
    for name, value in SECURITY_HEADERS.items():
        response.headers[name] = value
    return response


def error_payload(
    request: Request,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """构造统一错误响应结构。"""
    final_details = {
        "method": request.method.upper(),
        "path": request.url.path,
        "timestamp": _utc_now_iso(),
    }
    if details:
        final_details.update(details)
    return {
        "request_id": getattr(request.state, "request_id", None),
        "error": {
            "code": code,
            "message": message,
            "details": final_details,
        },
    }
