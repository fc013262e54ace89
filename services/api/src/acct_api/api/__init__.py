"""路由模块导出集合。"""

from . import (
    health,
    images,
    users,
    verification,
)

__all__ = [
    "health",
    "images",
    "users",
    "verification",
]
