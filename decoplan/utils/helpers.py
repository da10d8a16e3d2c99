"""工具函数模块

包含一些常用的工具函数
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """返回不带时区信息的 UTC 当前时间（与数据库中 DateTime 列保持一致）"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def elapsed_seconds_between(start: datetime, end: datetime) -> int:
    """两个时间点之间的整秒数，end 早于 start 时返回 0"""
    if not start or not end:
        return 0
    return max(0, int((end - start).total_seconds()))


def format_duration_minutes(minutes) -> str:
    """将分钟数格式化为 '1h 05min'"""
    if minutes is None:
        return '-'
    hours, mins = divmod(int(minutes), 60)
    if hours:
        return f"{hours}h {mins:02d}min"
    return f"{mins}min"


def format_display_order_number(prefix: str, year: int, number: int) -> str:
    """INT-2025-1000"""
    return f"{prefix}-{year}-{number}"
