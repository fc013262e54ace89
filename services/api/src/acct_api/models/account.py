"""账号模型。"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from acct_api.models.base import Base, UUIDPrimaryKeyMixin
from acct_api.utils.clock import utcnow


class Account(Base, UUIDPrimaryKeyMixin):
    """用户账号，邮箱全局唯一且创建后不可修改。"""

    __tablename__ = "accounts"

    # 登录邮箱（已规范化为小写），由唯一约束保证不重复。
    email: Mapped[str] = mapped_column(String(256), nullable=False, unique=True)
    # 口令哈希，不存明文，也不对外返回。
    password_hash: Mapped[str] = mapped_column(String(256), nullable=False)
    first_name: Mapped[str] = mapped_column(String(128), nullable=False)
    last_name: Mapped[str] = mapped_column(String(128), nullable=False)
    # 未验证邮箱的账号无法通过认证。
    email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # 验证令牌的 SHA-256 摘要，原始令牌只出现在验证链接中。
    verification_token: Mapped[str | None] = mapped_column(String(64), index=True)
    verification_token_expiration: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    account_created: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    # 仅在字段变更成功后刷新，读取不会修改。
    account_updated: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
