"""Basic 认证解析与身份校验。

每个请求独立完成认证，不创建会话，也不缓存认证结果。
"""

import base64
import binascii
import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from acct_api.core.passwords import verify_password
from acct_api.exceptions import Forbidden, Unauthenticated, UpstreamFailure
from acct_api.models.account import Account
from acct_api.services.accounts import get_account_by_email, normalize_email

logger = logging.getLogger(__name__)


@dataclass
class BasicCredentials:
    """从认证头解出的邮箱与口令。"""

    email: str
    password: str


def parse_basic_authorization(authorization: str | None) -> BasicCredentials:
    """解析 `Authorization: Basic <base64(email:password)>`。"""
    if not authorization:
        raise Unauthenticated("missing authorization header")

    scheme, _, param = authorization.strip().partition(" ")
    if scheme.lower() != "basic" or not param.strip():
        raise Unauthenticated("basic authorization required")

    try:
        decoded = base64.b64decode(param.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError, ValueError) as exc:
        raise Unauthenticated("malformed basic credentials") from exc

    # 口令中允许出现冒号，只按第一个冒号切分。
    email, separator, password = decoded.partition(":")
    if not separator or not email.strip():
        raise Unauthenticated("malformed basic credentials")
    return BasicCredentials(email=normalize_email(email), password=password)


def authenticate(db: Session, authorization: str | None) -> Account:
    """校验凭据并返回账号。

    - 认证头缺失/格式错误、账号不存在、口令不匹配：401
    - 邮箱未验证：403
    """
    credentials = parse_basic_authorization(authorization)
    try:
        account = get_account_by_email(db, credentials.email)
    except SQLAlchemyError as exc:
        logger.error("account lookup failed", exc_info=True)
        raise UpstreamFailure("database unavailable") from exc

    if account is None:
        raise Unauthenticated("invalid credentials")
    if not verify_password(credentials.password, account.password_hash):
        raise Unauthenticated("invalid credentials")
    if not account.email_verified:
        raise Forbidden("email not verified")
    return account
