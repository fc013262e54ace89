"""账号创建事件通知。"""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from acct_api.core.config import Settings

logger = logging.getLogger(__name__)


class NotificationError(Exception):
    """通知发布失败。"""


class Notifier(Protocol):
    def publish_account_created(self, message: dict[str, Any]) -> None: ...


class LoggingNotifier:
    """未配置通知主题时，仅记录事件日志。"""

    def publish_account_created(self, message: dict[str, Any]) -> None:
        logger.info("account created event (no topic configured) id=%s", message.get("id"))


class SnsNotifier:
    """发布到 SNS 主题。"""

    def __init__(self, *, topic_arn: str, region: str, client: Any | None = None) -> None:
        self.topic_arn = topic_arn
        self._client = client or boto3.session.Session().client("sns", region_name=region)

    def publish_account_created(self, message: dict[str, Any]) -> None:
        try:
            self._client.publish(
                TopicArn=self.topic_arn,
                Message=json.dumps(message, default=str),
                Subject="account_created",
            )
        except (BotoCoreError, ClientError) as exc:
            raise NotificationError(f"publish failed topic={self.topic_arn}") from exc


def publish_account_created(notifier: Notifier, message: dict[str, Any], *, fail_request: bool) -> None:
    """按配置策略发布账号创建事件。

    `fail_request` 为 False 时失败只记录日志；为 True 时向上抛出，由调用方让请求失败。
    """
    try:
        notifier.publish_account_created(message)
    except NotificationError:
        logger.error("account created notification failed id=%s", message.get("id"), exc_info=True)
        if fail_request:
            raise


def build_notifier(settings: Settings) -> Notifier:
    """按配置构造通知实现。"""
    if settings.sns_topic_arn:
        return SnsNotifier(topic_arn=settings.sns_topic_arn, region=settings.aws_region)
    return LoggingNotifier()
