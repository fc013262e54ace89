import json
import logging

import pytest
from botocore.exceptions import ClientError
from pydantic import ValidationError

from acct_api.core.config import Settings
from acct_api.services.mailer import LoggingMailer, build_mailer, deliver_verification_email, render_verification_email
from acct_api.services.metrics import CloudWatchMetrics, LoggingMetrics, build_metrics, timed
from acct_api.services.notifier import (
    LoggingNotifier,
    NotificationError,
    SnsNotifier,
    build_notifier,
    publish_account_created,
)
from acct_api.services.storage import LocalObjectStore, ObjectStoreError, S3ObjectStore

_CLIENT_ERROR = ClientError({"Error": {"Code": "500", "Message": "boom"}}, "Operation")


class FakeCloudWatchClient:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[dict] = []

    def put_metric_data(self, **kwargs) -> None:
        if self.fail:
            raise _CLIENT_ERROR
        self.calls.append(kwargs)


class FakeSnsClient:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[dict] = []

    def publish(self, **kwargs) -> dict:
        if self.fail:
            raise _CLIENT_ERROR
        self.calls.append(kwargs)
        return {"MessageId": "m-1"}


class FakeS3Client:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.objects: dict[str, bytes] = {}

    def put_object(self, *, Bucket: str, Key: str, Body: bytes, ContentType: str) -> None:
        if self.fail:
            raise _CLIENT_ERROR
        self.objects[Key] = Body

    def delete_object(self, *, Bucket: str, Key: str) -> None:
        if self.fail:
            raise _CLIENT_ERROR
        self.objects.pop(Key, None)


class ExplodingMailer:
    def send_verification_email(self, *, to_email: str, first_name: str, verify_url: str) -> None:
        raise RuntimeError("smtp down")


def test_cloudwatch_metrics_flushes_on_close():
    client = FakeCloudWatchClient()
    metrics = CloudWatchMetrics(namespace="acct-api", region="us-east-1", client=client)
    metrics.incr("api.healthz.count")
    metrics.timing("api.healthz.latency", 12.5)
    metrics.close()

    assert len(client.calls) == 2
    by_name = {call["MetricData"][0]["MetricName"]: call["MetricData"][0] for call in client.calls}
    assert by_name["api.healthz.count"]["Unit"] == "Count"
    assert by_name["api.healthz.count"]["Value"] == 1.0
    assert by_name["api.healthz.latency"]["Unit"] == "Milliseconds"
    assert all(call["Namespace"] == "acct-api" for call in client.calls)


def test_cloudwatch_metrics_failures_are_only_logged(caplog):
    metrics = CloudWatchMetrics(namespace="acct-api", region="us-east-1", client=FakeCloudWatchClient(fail=True))
    with caplog.at_level(logging.WARNING, logger="acct_api.services.metrics"):
        metrics.incr("api.user_create.count")
        metrics.close()
    assert "metric emission failed" in caplog.text

    # 关闭后的上报直接丢弃。
    metrics.incr("api.user_create.count")


def test_timed_records_even_when_block_raises():
    recorded = []

    class Sink(LoggingMetrics):
        def timing(self, name: str, milliseconds: float) -> None:
            recorded.append((name, milliseconds))

    with pytest.raises(ValueError):
        with timed(Sink(), "db.query.latency"):
            raise ValueError("boom")
    assert recorded and recorded[0][0] == "db.query.latency"
    assert recorded[0][1] >= 0


def test_sns_notifier_publishes_json_message():
    client = FakeSnsClient()
    notifier = SnsNotifier(topic_arn="arn:aws:sns:us-east-1:123:acct", region="us-east-1", client=client)
    notifier.publish_account_created({"id": "1", "email": "a@b.com"})

    assert client.calls[0]["TopicArn"] == "arn:aws:sns:us-east-1:123:acct"
    assert client.calls[0]["Subject"] == "account_created"
    assert json.loads(client.calls[0]["Message"]) == {"id": "1", "email": "a@b.com"}


def test_publish_failure_policy():
    notifier = SnsNotifier(topic_arn="arn", region="us-east-1", client=FakeSnsClient(fail=True))

    publish_account_created(notifier, {"id": "1"}, fail_request=False)
    with pytest.raises(NotificationError):
        publish_account_created(notifier, {"id": "1"}, fail_request=True)


def test_account_creation_fails_when_notification_policy_is_strict(api_client, registry):
    registry.settings = registry.settings.model_copy(update={"notify_fail_request_on_publish_error": True})
    registry.notifier = SnsNotifier(topic_arn="arn", region="us-east-1", client=FakeSnsClient(fail=True))

    response = api_client.post(
        "/v1/user",
        json={"email": "a@b.com", "password": "Secret1", "firstName": "A", "lastName": "B"},
    )
    assert response.status_code == 500
    assert registry.mailer.sent == []


def test_account_creation_survives_notification_failure_by_default(api_client, registry):
    registry.notifier = SnsNotifier(topic_arn="arn", region="us-east-1", client=FakeSnsClient(fail=True))
    response = api_client.post(
        "/v1/user",
        json={"email": "a@b.com", "password": "Secret1", "firstName": "A", "lastName": "B"},
    )
    assert response.status_code == 201
    assert len(registry.mailer.sent) == 1


def test_account_creation_survives_mail_failure(api_client, registry):
    registry.mailer = ExplodingMailer()
    response = api_client.post(
        "/v1/user",
        json={"email": "a@b.com", "password": "Secret1", "firstName": "A", "lastName": "B"},
    )
    assert response.status_code == 201


def test_deliver_verification_email_logs_failures(caplog):
    with caplog.at_level(logging.ERROR, logger="acct_api.services.mailer"):
        deliver_verification_email(ExplodingMailer(), to_email="a@b.com", first_name="A", verify_url="http://x")
    assert "verification email failed" in caplog.text


def test_render_verification_email_contains_link():
    html = render_verification_email("Jane", "http://host/verify-email?token=t")
    assert "Hi Jane" in html
    assert 'href="http://host/verify-email?token=t"' in html


def test_s3_object_store_urls_and_errors():
    client = FakeS3Client()
    store = S3ObjectStore(bucket="pics", region="us-west-2", client=client)
    url = store.put_object(key="u1/f.png", content=b"data", content_type="image/png")
    assert url == "https://pics.s3.us-west-2.amazonaws.com/u1/f.png"
    assert client.objects == {"u1/f.png": b"data"}
    store.delete_object(key="u1/f.png")
    assert client.objects == {}

    cdn = S3ObjectStore(bucket="pics", region="us-west-2", public_base_url="https://cdn.example.com/", client=client)
    assert cdn.url_for("u1/f.png") == "https://cdn.example.com/u1/f.png"

    broken = S3ObjectStore(bucket="pics", region="us-west-2", client=FakeS3Client(fail=True))
    with pytest.raises(ObjectStoreError):
        broken.put_object(key="k", content=b"x", content_type="image/png")
    with pytest.raises(ObjectStoreError):
        broken.delete_object(key="k")


def test_local_object_store_rejects_escaping_keys(tmp_path):
    store = LocalObjectStore(tmp_path / "root")
    with pytest.raises(ObjectStoreError):
        store.put_object(key="../outside.png", content=b"x", content_type="image/png")
    # 删除不存在的对象视为成功。
    store.delete_object(key="u1/missing.png")


def test_settings_defaults_and_builders(monkeypatch):
    monkeypatch.delenv("ACCT_DATABASE_URL", raising=False)
    settings = Settings(_env_file=None, db_username="app", db_password="p@ss", db_host="db", db_name="webapp")
    assert settings.resolved_database_url == "postgresql+psycopg://app:p%40ss@db:5432/webapp"
    assert settings.cors_origins == []
    assert isinstance(build_metrics(settings), LoggingMetrics)
    assert isinstance(build_notifier(settings), LoggingNotifier)
    assert isinstance(build_mailer(settings), LoggingMailer)


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("ACCT_STORAGE_BACKEND", " S3 ")
    monkeypatch.setenv("ACCT_CORS_ALLOW_ORIGINS", "https://a.example.com, https://b.example.com")
    settings = Settings(_env_file=None)
    assert settings.storage_backend == "s3"
    assert settings.cors_origins == ["https://a.example.com", "https://b.example.com"]


def test_settings_reject_unknown_storage_backend():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, storage_backend="ftp")
