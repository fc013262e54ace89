"""账号相关请求与响应结构。"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class AccountCreateRequest(BaseModel):
    """创建账号请求体，四个字段均必填且去除首尾空白后非空。"""

    email: str = Field(
        min_length=5,
        max_length=256,
        pattern=EMAIL_PATTERN,
        description="登录邮箱，创建后不可修改。",
        examples=["jane.doe@example.com"],
    )
    password: str = Field(min_length=1, max_length=128, description="登录密码。", examples=["Secret1"])
    first_name: str = Field(alias="firstName", min_length=1, max_length=128, description="名。", examples=["Jane"])
    last_name: str = Field(alias="lastName", min_length=1, max_length=128, description="姓。", examples=["Doe"])

    @field_validator("email", "first_name", "last_name", mode="before")
    @classmethod
    def strip_text(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @field_validator("password")
    @classmethod
    def reject_blank_password(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("password must not be blank")
        return value


class AccountUpdateRequest(BaseModel):
    """更新账号请求体。

    仅允许 email/firstName/lastName/password；出现其它字段直接拒绝。
    email 只允许与当前值一致（不可修改）。
    """

    model_config = ConfigDict(extra="forbid")

    email: str | None = Field(default=None, min_length=5, max_length=256, pattern=EMAIL_PATTERN)
    password: str | None = Field(default=None, min_length=1, max_length=128)
    first_name: str | None = Field(default=None, alias="firstName", min_length=1, max_length=128)
    last_name: str | None = Field(default=None, alias="lastName", min_length=1, max_length=128)

    @field_validator("email", "password", "first_name", "last_name", mode="before")
    @classmethod
    def reject_null_and_strip(cls, value: object, info: ValidationInfo) -> object:
        # 仅在字段显式出现时触发；显式传 null 与空串同样视为非法。
        if value is None:
            raise ValueError(f"{info.field_name} must not be null")
        if isinstance(value, str) and info.field_name != "password":
            return value.strip()
        return value

    @field_validator("password")
    @classmethod
    def reject_blank_password(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            raise ValueError("password must not be blank")
        return value


class AccountData(BaseModel):
    """账号公开视图，不包含口令哈希与验证令牌。"""

    model_config = ConfigDict(populate_by_name=True)

    id: UUID = Field(description="账号 ID。")
    email: str = Field(description="登录邮箱。")
    first_name: str = Field(alias="firstName", description="名。")
    last_name: str = Field(alias="lastName", description="姓。")
    account_created: datetime = Field(description="创建时间（UTC）。")
    account_updated: datetime = Field(description="最后更新时间（UTC）。")
