"""接口调用指标上报。

上报采用发后即忘：失败只记录告警日志，绝不影响业务响应。
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from datetime import datetime, timezone
from time import perf_counter
from typing import Any, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from acct_api.core.config import Settings

logger = logging.getLogger(__name__)


class MetricsSink(Protocol):
    def incr(self, name: str, value: int = 1) -> None: ...

    def timing(self, name: str, milliseconds: float) -> None: ...

    def close(self) -> None: ...


class LoggingMetrics:
    """仅写日志的指标实现，未开启云端上报时使用。"""

    def incr(self, name: str, value: int = 1) -> None:
        logger.debug("metric count name=%s value=%s", name, value)

    def timing(self, name: str, milliseconds: float) -> None:
        logger.debug("metric timing name=%s ms=%.2f", name, milliseconds)

    def close(self) -> None:
        return None


class CloudWatchMetrics:
    """向 CloudWatch 上报计数与耗时，上报在后台线程执行。"""

    def __init__(self, *, namespace: str, region: str, client: Any | None = None, max_workers: int = 2) -> None:
        self.namespace = namespace
        self._client = client or boto3.session.Session().client("cloudwatch", region_name=region)
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="metrics")

    def _put(self, name: str, value: float, unit: str) -> None:
        try:
            self._client.put_metric_data(
                Namespace=self.namespace,
                MetricData=[
                    {
                        "MetricName": name,
                        "Value": value,
                        "Unit": unit,
                        "Timestamp": datetime.now(timezone.utc),
                    }
                ],
            )
        except (BotoCoreError, ClientError):
            logger.warning("metric emission failed name=%s", name, exc_info=True)

    def _submit(self, name: str, value: float, unit: str) -> None:
        try:
            self._executor.submit(self._put, name, value, unit)
        except RuntimeError:
            # 执行器已关闭（进程退出阶段）。
            logger.warning("metric dropped after shutdown name=%s", name)

    def incr(self, name: str, value: int = 1) -> None:
        self._submit(name, float(value), "Count")

    def timing(self, name: str, milliseconds: float) -> None:
        self._submit(name, float(milliseconds), "Milliseconds")

    def close(self) -> None:
        self._executor.shutdown(wait=True)


@contextmanager
def timed(metrics: MetricsSink, name: str) -> Iterator[None]:
    """记录代码块耗时（毫秒），异常同样计时。"""
    started_at = perf_counter()
    try:
        yield
    finally:
        metrics.timing(name, (perf_counter() - started_at) * 1000)


def build_metrics(settings: Settings) -> MetricsSink:
    """按配置构造指标实现。"""
    if settings.metrics_enabled:
        return CloudWatchMetrics(namespace=settings.metrics_namespace, region=settings.aws_region)
    return LoggingMetrics()
