"""邮箱验证接口，结果以 HTML 页面呈现。"""

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session

from acct_api.db.session import get_db
from acct_api.exceptions import InvalidInput, NotFound, UpstreamFailure
from acct_api.services import verify_email_token

router = APIRouter(tags=["verification"])

_PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head><meta charset="utf-8"><title>{title}</title></head>
<body style="font-family:Arial,sans-serif;text-align:center;margin-top:15vh">
  <h1>{title}</h1>
  <p>{message}</p>
</body>
</html>
"""


def _page(title: str, message: str, status_code: int) -> HTMLResponse:
    return HTMLResponse(_PAGE_TEMPLATE.format(title=title, message=message), status_code=status_code)


@router.get(
    "/verify-email",
    name="verify_email",
    summary="验证邮箱",
    description="消费验证链接中的令牌；缺少令牌返回 400，令牌无效或过期返回 404，数据库不可用返回 500。",
    status_code=status.HTTP_200_OK,
    response_class=HTMLResponse,
)
def verify_email(
    token: str | None = Query(default=None, description="验证令牌。"),
    db: Session = Depends(get_db),
):
    """验证邮箱并渲染结果页面。"""
    try:
        verify_email_token(db, token)
    except InvalidInput:
        return _page("Verification failed", "The verification link is missing its token.", status.HTTP_400_BAD_REQUEST)
    except NotFound:
        return _page(
            "Verification failed",
            "This verification link is invalid or has expired.",
            status.HTTP_404_NOT_FOUND,
        )
    except UpstreamFailure as exc:
        return _page(
            "Verification unavailable",
            "We could not verify your email right now. Please try the link again later.",
            exc.status_code,
        )
    return _page("Email verified", "Your email address has been verified. You can now use the API.", status.HTTP_200_OK)
