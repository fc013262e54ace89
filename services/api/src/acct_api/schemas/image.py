"""头像响应结构。"""

from datetime import date
from uuid import UUID

from pydantic import Field

from acct_api.schemas.common import BaseSchema


class ImageData(BaseSchema):
    """头像公开视图。"""

    id: UUID = Field(description="图片 ID。")
    file_name: str = Field(description="生成的文件名。")
    url: str = Field(description="对象存储访问地址。")
    upload_date: date = Field(description="上传日期。")
    user_id: UUID = Field(description="所属账号 ID。")
