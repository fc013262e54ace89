"""数据库基础模型导出。

仅提供 Base 定义；建表由应用启动时按 `db_auto_create` 配置决定。
"""

from acct_api.models.base import Base

__all__ = ["Base"]
