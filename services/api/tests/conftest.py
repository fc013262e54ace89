from collections.abc import Callable, Generator
from typing import Any
from urllib.parse import parse_qs, urlparse
import base64

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import Engine, create_engine
from sqlalchemy.pool import StaticPool

import acct_api.models  # noqa: F401
from acct_api.core.config import Settings
from acct_api.db.session import build_session_factory
from acct_api.main import create_app
from acct_api.models.base import Base
from acct_api.registry import ServiceRegistry
from acct_api.services.storage import LocalObjectStore

TEST_PASSWORD = "Secret1"


class RecordingMetrics:
    """记录指标调用，便于断言。"""

    def __init__(self) -> None:
        self.counts: list[tuple[str, int]] = []
        self.timings: list[tuple[str, float]] = []
        self.closed = False

    def incr(self, name: str, value: int = 1) -> None:
        self.counts.append((name, value))

    def timing(self, name: str, milliseconds: float) -> None:
        self.timings.append((name, milliseconds))

    def close(self) -> None:
        self.closed = True


class RecordingNotifier:
    def __init__(self) -> None:
        self.messages: list[dict[str, Any]] = []

    def publish_account_created(self, message: dict[str, Any]) -> None:
        self.messages.append(message)


class RecordingMailer:
    def __init__(self) -> None:
        self.sent: list[dict[str, str]] = []

    def send_verification_email(self, *, to_email: str, first_name: str, verify_url: str) -> None:
        self.sent.append({"to_email": to_email, "first_name": first_name, "verify_url": verify_url})


def basic_auth(email: str, password: str = TEST_PASSWORD) -> dict[str, str]:
    raw = base64.b64encode(f"{email}:{password}".encode("utf-8")).decode("ascii")
    return {"Authorization": f"Basic {raw}"}


def token_from_link(verify_url: str) -> str:
    return parse_qs(urlparse(verify_url).query)["token"][0]


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        database_url="sqlite+pysqlite://",
        app_base_url="http://testserver",
        storage_root=str(tmp_path / "storage"),
        auth_password_hash_iterations=1000,
        verification_token_ttl_seconds=120,
        log_level="WARNING",
    )


@pytest.fixture
def sqlite_engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def object_store(tmp_path) -> LocalObjectStore:
    return LocalObjectStore(tmp_path / "blobs")


@pytest.fixture
def registry(settings, sqlite_engine, object_store) -> ServiceRegistry:
    return ServiceRegistry(
        settings=settings,
        session_factory=build_session_factory(sqlite_engine),
        object_store=object_store,
        metrics=RecordingMetrics(),
        notifier=RecordingNotifier(),
        mailer=RecordingMailer(),
    )


@pytest.fixture
def api_client(registry) -> Generator[TestClient, None, None]:
    app = create_app(registry=registry)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def create_account(api_client) -> Callable[..., dict[str, Any]]:
    """创建未验证账号并返回响应体。"""

    def _create(email: str = "a@b.com", password: str = TEST_PASSWORD, **overrides: str) -> dict[str, Any]:
        payload = {"email": email, "password": password, "firstName": "A", "lastName": "B", **overrides}
        response = api_client.post("/v1/user", json=payload)
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def verified_account(api_client, registry, create_account) -> Callable[..., dict[str, Any]]:
    """创建账号并通过验证邮件中的链接完成验证。"""

    def _create(email: str = "a@b.com", password: str = TEST_PASSWORD) -> dict[str, Any]:
        created = create_account(email=email, password=password)
        verify_url = registry.mailer.sent[-1]["verify_url"]
        response = api_client.get("/verify-email", params={"token": token_from_link(verify_url)})
        assert response.status_code == 200, response.text
        return created

    return _create
