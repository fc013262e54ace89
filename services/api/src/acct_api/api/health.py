"""健康检查接口。"""

import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from acct_api.db.session import get_db
from acct_api.dependencies import reject_query_params, reject_request_body
from acct_api.exceptions import UpstreamFailure
from acct_api.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get(
    "/healthz",
    name="healthz",
    summary="健康检查",
    description="通过数据库连通性检测服务是否可用；不允许携带查询参数或请求体。",
    status_code=status.HTTP_200_OK,
    response_class=Response,
    responses={400: {"model": ErrorResponse}, 405: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
def healthz(
    _query: None = Depends(reject_query_params),
    _body: None = Depends(reject_request_body),
    db: Session = Depends(get_db),
):
    """执行轻量数据库探活语句。"""
    try:
        db.execute(text("select 1"))
    except SQLAlchemyError as exc:
        logger.error("database unreachable during health check", exc_info=True)
        raise UpstreamFailure("database unavailable", status_code=status.HTTP_503_SERVICE_UNAVAILABLE) from exc
    return Response(status_code=status.HTTP_200_OK)
