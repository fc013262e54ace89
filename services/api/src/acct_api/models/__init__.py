"""ORM 模型导出集合。"""

from acct_api.models.account import Account
from acct_api.models.image import ProfileImage

__all__ = [
    "Account",
    "ProfileImage",
]
