"""对象存储服务（S3 与本地文件系统两种实现）。"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Protocol

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from acct_api.core.config import Settings

logger = logging.getLogger(__name__)


class ObjectStoreError(Exception):
    """对象存储调用失败。"""


class ObjectStore(Protocol):
    def put_object(self, *, key: str, content: bytes, content_type: str) -> str:
        """写入对象并返回完整访问地址。"""

    def delete_object(self, *, key: str) -> None:
        """删除对象；对象不存在视为成功。"""


class S3ObjectStore:
    """基于 S3（或兼容 S3 的服务）的对象存储。"""

    def __init__(
        self,
        *,
        bucket: str,
        region: str,
        endpoint_url: str | None = None,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        public_base_url: str | None = None,
        client: Any | None = None,
    ) -> None:
        self.bucket = bucket
        self.region = region
        self.public_base_url = public_base_url.rstrip("/") if public_base_url else None
        if client is None:
            session = boto3.session.Session()
            client = session.client(
                "s3",
                region_name=region,
                endpoint_url=endpoint_url,
                aws_access_key_id=access_key_id,
                aws_secret_access_key=secret_access_key,
                config=Config(signature_version="s3v4"),
            )
        self._client = client

    def url_for(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def put_object(self, *, key: str, content: bytes, content_type: str) -> str:
        try:
            self._client.put_object(Bucket=self.bucket, Key=key, Body=content, ContentType=content_type)
        except (BotoCoreError, ClientError) as exc:
            raise ObjectStoreError(f"put_object failed key={key}") from exc
        return self.url_for(key)

    def delete_object(self, *, key: str) -> None:
        try:
            self._client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            raise ObjectStoreError(f"delete_object failed key={key}") from exc


class LocalObjectStore:
    """本地文件系统对象存储，用于开发与测试。"""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def _target(self, key: str) -> Path:
        # 对象键由服务端生成，这里仍拒绝越出根目录的路径。
        target = self.root.joinpath(key).resolve()
        if self.root.resolve() not in target.parents:
            raise ObjectStoreError(f"invalid object key: {key}")
        return target

    def path_for(self, key: str) -> Path:
        return self._target(key)

    def put_object(self, *, key: str, content: bytes, content_type: str) -> str:
        target = self._target(key)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        except OSError as exc:
            raise ObjectStoreError(f"put_object failed key={key}") from exc
        return target.as_uri()

    def delete_object(self, *, key: str) -> None:
        try:
            self._target(key).unlink(missing_ok=True)
        except OSError as exc:
            raise ObjectStoreError(f"delete_object failed key={key}") from exc


def build_object_store(settings: Settings) -> ObjectStore:
    """按配置构造对象存储实现。"""
    if settings.storage_backend == "s3":
        if not settings.s3_bucket_name:
            raise RuntimeError("ACCT_S3_BUCKET_NAME is not set")
        return S3ObjectStore(
            bucket=settings.s3_bucket_name,
            region=settings.aws_region,
            endpoint_url=settings.s3_endpoint_url,
            access_key_id=settings.aws_access_key_id,
            secret_access_key=settings.aws_secret_access_key,
            public_base_url=settings.s3_public_base_url,
        )
    logger.info("using local object store root=%s", settings.storage_root)
    return LocalObjectStore(settings.storage_root)
