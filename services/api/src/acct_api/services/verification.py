"""邮箱验证令牌签发与消费。"""

import hashlib
import logging
import secrets
from datetime import datetime, timedelta
from urllib.parse import urlencode

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from acct_api.exceptions import InvalidInput, NotFound, UpstreamFailure
from acct_api.models.account import Account
from acct_api.utils.clock import as_utc, next_update_time, utcnow

logger = logging.getLogger(__name__)


def new_token() -> str:
    return secrets.token_urlsafe(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def token_expiration(ttl_seconds: int, *, now: datetime | None = None) -> datetime:
    return (now or utcnow()) + timedelta(seconds=ttl_seconds)


def verification_link(base_url: str, token: str) -> str:
    return f"{base_url.rstrip('/')}/verify-email?{urlencode({'token': token})}"


def verify_email_token(db: Session, token: str | None, *, now: datetime | None = None) -> Account:
    """消费验证令牌并将账号标记为已验证。

    令牌在成功后不清除，过期前重复提交视为成功且不再修改账号；
    过期时间是唯一的失效条件。
    """
    raw = (token or "").strip()
    if not raw:
        raise InvalidInput("token is required")

    try:
        account = db.execute(
            select(Account).where(Account.verification_token == hash_token(raw))
        ).scalar_one_or_none()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("verification token lookup failed", exc_info=True)
        raise UpstreamFailure("database unavailable") from exc
    if account is None:
        raise NotFound("verification token not found")

    expires_at = as_utc(account.verification_token_expiration)
    current = now or utcnow()
    # 过期时间必须严格晚于当前时间。
    if expires_at is None or expires_at <= current:
        raise NotFound("verification token expired")

    if account.email_verified:
        return account

    account.email_verified = True
    account.account_updated = next_update_time(account.account_updated)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("email verification commit failed account_id=%s", account.id, exc_info=True)
        raise UpstreamFailure("database unavailable") from exc
    logger.info("email verified account_id=%s", account.id)
    return account
