"""时间网格工具

在墙钟分钟数与固定 15 分钟网格之间转换，并把区间限制在工作时间窗口内。
除 validate_placement 外都是无副作用的纯函数，不读取数据库。
"""

from ..config.settings import settings
from .exceptions import InvalidRangeError

GRID_MIN = settings.GRID_MIN
WORKDAY_START_MIN = settings.WORKDAY_START_MIN
WORKDAY_END_MIN = settings.WORKDAY_END_MIN


def snap_to_grid(minutes: int) -> int:
    """四舍五入到最近的网格点（正好在中间时向上取）"""
    return int((minutes + GRID_MIN // 2) // GRID_MIN * GRID_MIN)


def is_grid_aligned(minutes: int) -> bool:
    return minutes % GRID_MIN == 0


def slot_end(start_min: int, length_min: int) -> int:
    return start_min + length_min


def clamp_to_working_hours(start_min: int, length_min: int) -> int:
    """调整开始时间，使区间落在 [07:00, 18:00) 内

    结束时间超出窗口时把开始时间向前拉回溢出的分钟数，但不会早于 07:00。
    """
    start = max(start_min, WORKDAY_START_MIN)
    overflow = start + length_min - WORKDAY_END_MIN
    if overflow > 0:
        start = max(WORKDAY_START_MIN, start - overflow)
    return start


def minutes_to_hhmm(minutes: int) -> str:
    """420 -> '07:00'"""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def hhmm_to_minutes(value: str) -> int:
    """'07:30' -> 450"""
    hours, _, mins = value.partition(":")
    return int(hours) * 60 + int(mins or 0)


def validate_placement(start_min: int, length_min: int) -> None:
    """校验调用方传入的原始值，不合规则抛 InvalidRangeError，不做静默修正

    不在网格上，或按工作时间窗口规整后与原值不同，即说明原值不合规。
    """
    details = {"start_min": start_min, "length_min": length_min}
    if not (is_grid_aligned(start_min) and is_grid_aligned(length_min)):
        raise InvalidRangeError(f"Start and length must be multiples of {GRID_MIN} minutes", details)
    if length_min < GRID_MIN:
        raise InvalidRangeError(f"Length must be at least {GRID_MIN} minutes", details)
    end_min = slot_end(start_min, length_min)
    if clamp_to_working_hours(start_min, length_min) != start_min or end_min > WORKDAY_END_MIN:
        raise InvalidRangeError(
            f"Time slot {minutes_to_hhmm(start_min)}-{minutes_to_hhmm(end_min)} is outside working hours "
            f"{minutes_to_hhmm(WORKDAY_START_MIN)}-{minutes_to_hhmm(WORKDAY_END_MIN)}",
            details,
        )
