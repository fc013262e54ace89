"""FastAPI 应用入口点。"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from sqlalchemy.orm import Session, sessionmaker
import uvicorn

from acct_api.api.router import api_router
from acct_api.core.config import Settings, get_settings
from acct_api.core.logging import setup_logging
from acct_api.db.base import Base
from acct_api.db.session import build_engine, build_session_factory
from acct_api.exceptions import register_exception_handlers
import acct_api.models  # noqa: F401
from acct_api.middlewares import register_middlewares
from acct_api.registry import ServiceRegistry
from acct_api.services.mailer import Mailer, build_mailer
from acct_api.services.metrics import MetricsSink, build_metrics
from acct_api.services.notifier import Notifier, build_notifier
from acct_api.services.storage import ObjectStore, build_object_store

logger = logging.getLogger(__name__)


def build_registry(
    settings: Settings,
    *,
    session_factory: sessionmaker[Session] | None = None,
    object_store: ObjectStore | None = None,
    metrics: MetricsSink | None = None,
    notifier: Notifier | None = None,
    mailer: Mailer | None = None,
) -> ServiceRegistry:
    """构造进程级共享依赖；未显式传入的按配置创建。"""
    if session_factory is None:
        session_factory = build_session_factory(build_engine(settings))
    return ServiceRegistry(
        settings=settings,
        session_factory=session_factory,
        object_store=object_store or build_object_store(settings),
        metrics=metrics or build_metrics(settings),
        notifier=notifier or build_notifier(settings),
        mailer=mailer or build_mailer(settings),
    )


def create_app(settings: Settings | None = None, *, registry: ServiceRegistry | None = None) -> FastAPI:
    """创建并配置 FastAPI 应用实例。"""
    settings = settings or (registry.settings if registry else get_settings())
    setup_logging(settings.log_level)
    registry = registry or build_registry(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if settings.db_auto_create:
            Base.metadata.create_all(bind=registry.session_factory.kw["bind"])
        logger.info("%s started env=%s", settings.app_name, settings.app_env)
        yield
        registry.close()

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        debug=settings.app_debug,
        lifespan=lifespan,
        description=(
            "账号与头像服务。\n\n"
            "除创建账号、邮箱验证与健康检查外，接口均使用 HTTP Basic 认证（邮箱:密码）。"
        ),
        openapi_tags=[
            {"name": "health", "description": "服务健康检查。"},
            {"name": "verification", "description": "邮箱验证。"},
            {"name": "users", "description": "账号创建、查询与更新。"},
            {"name": "images", "description": "头像上传、查询与删除。"},
        ],
    )
    app.state.registry = registry

    register_middlewares(app, settings.cors_origins)
    register_exception_handlers(app)
    app.include_router(api_router)
    return app


app = create_app()


def serve() -> None:
    """命令行入口：按配置的地址与端口启动服务。"""
    settings = get_settings()
    uvicorn.run("acct_api.main:app", host=settings.app_host, port=settings.app_port)
