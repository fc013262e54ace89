"""应用运行配置。"""

from functools import lru_cache
from urllib.parse import quote_plus

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """账号服务共享配置。"""

    model_config = SettingsConfigDict(env_file=".env", env_prefix="ACCT_", extra="ignore")

    app_name: str = Field(default="Account Profile Service", description="应用名称。")
    app_env: str = Field(default="dev", description="运行环境标识。")
    app_debug: bool = Field(default=False, description="是否开启调试模式。")
    app_host: str = Field(default="0.0.0.0", description="监听地址。")
    app_port: int = Field(default=8082, description="监听端口。")
    app_base_url: str = Field(default="http://localhost:8082", description="对外访问地址，用于拼接验证链接。")
    log_level: str = Field(default="INFO", description="日志级别。")
    cors_allow_origins: str = Field(default="", description="允许跨域的来源列表，逗号分隔；为空时不启用跨域。")

    database_url: str | None = Field(default=None, description="完整数据库连接地址，优先级高于分项配置。")
    db_host: str = Field(default="localhost", description="数据库主机。")
    db_port: int = Field(default=5432, description="数据库端口。")
    db_name: str = Field(default="webapp", description="数据库名称。")
    db_username: str = Field(default="postgres", description="数据库用户名。")
    db_password: str = Field(default="postgres", description="数据库密码。")
    db_auto_create: bool = Field(default=True, description="启动时是否按模型自动建表。")

    auth_password_hash_iterations: int = Field(default=390000, description="PBKDF2 密码哈希迭代次数。")
    verification_token_ttl_seconds: int = Field(default=120, description="邮箱验证令牌有效期（秒）。")

    storage_backend: str = Field(default="local", description="对象存储后端（s3/local）。")
    storage_root: str = Field(default="./.storage", description="本地对象存储根目录。")
    s3_bucket_name: str | None = Field(default=None, description="对象存储桶名称。")
    aws_region: str = Field(default="us-east-1", description="云服务区域。")
    aws_access_key_id: str | None = Field(default=None, description="访问密钥 ID，为空时使用默认凭据链。")
    aws_secret_access_key: str | None = Field(default=None, description="访问密钥。")
    s3_endpoint_url: str | None = Field(default=None, description="兼容 S3 的自定义端点。")
    s3_public_base_url: str | None = Field(default=None, description="对象公开访问前缀。")

    metrics_enabled: bool = Field(default=False, description="是否向 CloudWatch 上报指标。")
    metrics_namespace: str = Field(default="acct-api", description="指标命名空间。")

    resend_api_key: str | None = Field(default=None, description="邮件发送服务密钥，为空时仅记录日志。")
    mail_from: str = Field(default="no-reply@example.com", description="发件人地址。")

    sns_topic_arn: str | None = Field(default=None, description="账号创建事件通知主题，为空时仅记录日志。")
    notify_fail_request_on_publish_error: bool = Field(
        default=False,
        description="通知发布失败时是否让注册请求整体失败。",
    )

    @field_validator("storage_backend")
    @classmethod
    def normalize_storage_backend(cls, value: str) -> str:
        """规范化对象存储后端并校验取值。"""
        backend = value.strip().lower()
        if backend not in {"s3", "local"}:
            raise ValueError("storage_backend must be one of: s3, local")
        return backend

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"

    @property
    def resolved_database_url(self) -> str:
        """返回最终使用的数据库连接地址。"""
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+psycopg://{quote_plus(self.db_username)}:{quote_plus(self.db_password)}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    @property
    def cors_origins(self) -> list[str]:
        """返回规范化后的跨域来源数组。"""
        return [item.strip() for item in self.cors_allow_origins.split(",") if item.strip()]


@lru_cache
def get_settings() -> Settings:
    """返回缓存后的配置单例。"""
    return Settings()
