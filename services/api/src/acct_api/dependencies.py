"""请求上下文依赖。

职责:
1. 从 `app.state.registry` 取出启动时构造的共享依赖。
2. 解析 Basic 认证头并解析出当前账号（认证闸门）。
3. 拒绝不允许携带查询参数或请求体的请求。
"""

import json

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from acct_api.core.security import authenticate
from acct_api.db.session import get_db
from acct_api.exceptions import InvalidInput
from acct_api.models.account import Account
from acct_api.registry import ServiceRegistry


def get_registry(request: Request) -> ServiceRegistry:
    return request.app.state.registry


def get_current_account(request: Request, db: Session = Depends(get_db)) -> Account:
    """认证当前请求，并将账号挂到请求上下文供下游使用。"""
    account = authenticate(db, request.headers.get("Authorization"))
    request.state.account = account
    return account


def reject_query_params(request: Request) -> None:
    if request.url.query:
        raise InvalidInput("query parameters are not allowed")


async def reject_request_body(request: Request) -> None:
    body = (await request.body()).strip()
    if not body:
        return
    try:
        parsed = json.loads(body)
    except ValueError:
        parsed = None
    # 空 JSON 对象（含空白）与空请求体等价。
    if parsed != {}:
        raise InvalidInput("request body is not allowed")
