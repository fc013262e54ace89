"""时间工具。"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """返回带时区的当前 UTC 时间。"""
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """将数据库读出的时间统一为 UTC 感知时间（SQLite 会丢失时区）。"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def next_update_time(previous: datetime | None) -> datetime:
    """返回新的更新时间，保证不早于上一次更新时间。"""
    now = utcnow()
    last = as_utc(previous)
    if last is not None and last > now:
        return last
    return now
