"""进程级依赖集合。

数据库会话工厂、对象存储、指标、通知与邮件客户端在应用启动时构造一次，
挂载到 `app.state.registry`，请求处理通过依赖注入按引用取用。
"""

from dataclasses import dataclass

from sqlalchemy.orm import Session, sessionmaker

from acct_api.core.config import Settings
from acct_api.services.mailer import Mailer
from acct_api.services.metrics import MetricsSink
from acct_api.services.notifier import Notifier
from acct_api.services.storage import ObjectStore


@dataclass
class ServiceRegistry:
    settings: Settings
    session_factory: sessionmaker[Session]
    object_store: ObjectStore
    metrics: MetricsSink
    notifier: Notifier
    mailer: Mailer

    def close(self) -> None:
        self.metrics.close()
        bind = self.session_factory.kw.get("bind")
        if bind is not None:
            bind.dispose()
