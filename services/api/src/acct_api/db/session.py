"""数据库会话管理。"""

from collections.abc import Generator

from fastapi import Request
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from acct_api.core.config import Settings


def build_engine(settings: Settings) -> Engine:
    """按配置创建数据库引擎，开启连接预检查以减少僵尸连接影响。"""
    url = settings.resolved_database_url
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, future=True, pool_pre_ping=True, connect_args=connect_args)


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    """创建统一会话工厂，路由层通过依赖注入获取短生命周期会话。"""
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, class_=Session)


def get_db(request: Request) -> Generator[Session, None, None]:
    """为每个请求提供独立数据库会话。"""
    db = request.app.state.registry.session_factory()
    try:
        yield db
    finally:
        db.close()
