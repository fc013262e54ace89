"""头像图片模型。"""

from datetime import date
from uuid import UUID

from sqlalchemy import Date, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from acct_api.models.base import Base, UUIDPrimaryKeyMixin


class ProfileImage(Base, UUIDPrimaryKeyMixin):
    """账号头像，每个账号至多一张。"""

    __tablename__ = "images"
    __table_args__ = (UniqueConstraint("user_id", name="uk_images_user"),)

    # 生成的文件名，保留上传时的扩展名。
    file_name: Mapped[str] = mapped_column(String(256), nullable=False)
    # 对象存储中的完整访问地址。
    url: Mapped[str] = mapped_column(String(1024), nullable=False)
    # 对象键（user_id/file_name），仅内部使用。
    object_key: Mapped[str] = mapped_column(String(512), nullable=False)
    # 上传日期，不保留时分秒。
    upload_date: Mapped[date] = mapped_column(Date, nullable=False)
    # 所属账号 ID（逻辑关联 accounts.id，不声明数据库外键）。
    user_id: Mapped[UUID] = mapped_column(nullable=False)
