"""账号生命周期服务：创建、查询与更新。"""

import logging
from dataclasses import dataclass
from typing import Any
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from acct_api.core.passwords import hash_password, verify_password
from acct_api.exceptions import Conflict, InvalidInput, UpstreamFailure
from acct_api.models.account import Account
from acct_api.schemas.user import AccountCreateRequest, AccountUpdateRequest
from acct_api.services.verification import hash_token, new_token, token_expiration
from acct_api.utils.clock import as_utc, next_update_time, utcnow

logger = logging.getLogger(__name__)

# 注册冲突沿用 400，而不是 409。
ACCOUNT_CONFLICT_STATUS = 400


def normalize_email(email: str) -> str:
    """统一邮箱格式，避免大小写与空白导致重复账号。"""
    return email.strip().lower()


def get_account_by_email(db: Session, email: str) -> Account | None:
    normalized = normalize_email(email)
    if not normalized:
        return None
    return db.execute(select(Account).where(Account.email == normalized)).scalar_one_or_none()


def public_account(account: Account) -> dict[str, Any]:
    """账号公开视图，不含口令哈希与验证令牌。"""
    return {
        "id": account.id,
        "email": account.email,
        "firstName": account.first_name,
        "lastName": account.last_name,
        "account_created": as_utc(account.account_created),
        "account_updated": as_utc(account.account_updated),
    }


@dataclass
class CreatedAccount:
    account: Account
    # 原始验证令牌，仅用于拼接验证链接，不落库。
    verification_token: str


def create_account(
    db: Session,
    payload: AccountCreateRequest,
    *,
    password_hash_iterations: int,
    token_ttl_seconds: int,
) -> CreatedAccount:
    """创建未验证账号并签发一次性验证令牌。"""
    email = normalize_email(payload.email)
    try:
        existing = get_account_by_email(db, email)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("account lookup failed email=%s", email, exc_info=True)
        raise UpstreamFailure("database unavailable") from exc
    if existing is not None:
        raise Conflict("email already registered", status_code=ACCOUNT_CONFLICT_STATUS)

    now = utcnow()
    token = new_token()
    account = Account(
        id=uuid4(),
        email=email,
        password_hash=hash_password(payload.password, iterations=password_hash_iterations),
        first_name=payload.first_name,
        last_name=payload.last_name,
        email_verified=False,
        verification_token=hash_token(token),
        verification_token_expiration=token_expiration(token_ttl_seconds, now=now),
        account_created=now,
        account_updated=now,
    )
    db.add(account)
    try:
        db.commit()
    except IntegrityError as exc:
        # 并发注册时由唯一约束兜底，整条记录回滚。
        db.rollback()
        raise Conflict("email already registered", status_code=ACCOUNT_CONFLICT_STATUS) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("account create failed email=%s", email, exc_info=True)
        raise UpstreamFailure("database unavailable") from exc

    logger.info("account created account_id=%s", account.id)
    return CreatedAccount(account=account, verification_token=token)


def update_account(
    db: Session,
    account: Account,
    payload: AccountUpdateRequest,
    *,
    password_hash_iterations: int,
) -> Account:
    """按提供的字段子集更新当前账号。"""
    provided = payload.model_fields_set
    if not provided:
        raise InvalidInput("at least one field is required")

    if "email" in provided and normalize_email(payload.email or "") != account.email:
        raise InvalidInput("email cannot be changed")

    # 与当前值相同的字段不算变更，不刷新 account_updated。
    changed: list[str] = []
    if payload.first_name is not None and payload.first_name != account.first_name:
        account.first_name = payload.first_name
        changed.append("firstName")
    if payload.last_name is not None and payload.last_name != account.last_name:
        account.last_name = payload.last_name
        changed.append("lastName")
    if payload.password is not None and not verify_password(payload.password, account.password_hash):
        account.password_hash = hash_password(payload.password, iterations=password_hash_iterations)
        changed.append("password")

    if not changed:
        return account

    account.account_updated = next_update_time(account.account_updated)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("account update failed account_id=%s", account.id, exc_info=True)
        raise UpstreamFailure("database unavailable") from exc

    logger.info("account updated account_id=%s fields=%s", account.id, changed)
    return account


def account_created_message(created: CreatedAccount, *, verify_url: str) -> dict[str, Any]:
    """账号创建事件消息体。"""
    account = created.account
    return {
        "id": str(account.id),
        "email": account.email,
        "first_name": account.first_name,
        "last_name": account.last_name,
        "verification_token": created.verification_token,
        "verification_link": verify_url,
    }
