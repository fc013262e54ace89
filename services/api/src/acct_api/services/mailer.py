"""验证邮件发送。"""

from __future__ import annotations

import logging
from typing import Protocol

import resend

from acct_api.core.config import Settings

logger = logging.getLogger(__name__)


class Mailer(Protocol):
    def send_verification_email(self, *, to_email: str, first_name: str, verify_url: str) -> None: ...


def render_verification_email(first_name: str, verify_url: str) -> str:
    return f"""
    <div style="font-family:Arial,sans-serif;line-height:1.5">
      <h2>Verify your email</h2>
      <p>Hi {first_name},</p>
      <p>Click the link below to verify your email address. The link expires shortly.</p>
      <p><a href="{verify_url}">{verify_url}</a></p>
      <p style="color:#666;font-size:12px">If you didn't create this account, ignore this email.</p>
    </div>
    """


class LoggingMailer:
    """未配置邮件服务密钥时，仅记录日志。"""

    def send_verification_email(self, *, to_email: str, first_name: str, verify_url: str) -> None:
        logger.info("verification email skipped (no api key) to=%s", to_email)


class ResendMailer:
    def __init__(self, *, api_key: str, mail_from: str) -> None:
        self.mail_from = mail_from
        resend.api_key = api_key

    def send_verification_email(self, *, to_email: str, first_name: str, verify_url: str) -> None:
        resend.Emails.send(
            {
                "from": self.mail_from,
                "to": [to_email],
                "subject": "Verify your email",
                "html": render_verification_email(first_name, verify_url),
            }
        )


def deliver_verification_email(mailer: Mailer, *, to_email: str, first_name: str, verify_url: str) -> None:
    """后台任务入口：发送失败只记录日志，不影响已返回的响应。"""
    try:
        mailer.send_verification_email(to_email=to_email, first_name=first_name, verify_url=verify_url)
    except Exception:
        logger.exception("verification email failed to=%s", to_email)


def build_mailer(settings: Settings) -> Mailer:
    """按配置构造邮件实现。"""
    if settings.resend_api_key:
        return ResendMailer(api_key=settings.resend_api_key, mail_from=settings.mail_from)
    return LoggingMailer()
