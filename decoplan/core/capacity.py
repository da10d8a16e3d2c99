"""工位容量校验

判断把一个时间槽放到（或移动到）某工位某天的某个区间，是否会超出该工位的并发容量。
这里是容量规则的唯一实现，写入前总是在同一事务中对最新读取的占用重新执行。

existing_slots 中的元素只需要具备 id、date、start_min、length_min、work_center_id 属性，
ORM 对象和批量操作中的内存快照都可以直接传入。
"""

from datetime import date as date_type
from typing import Iterable, List, Optional


def overlaps(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """半开区间 [start, end) 是否重叠"""
    return start_a < end_b and end_a > start_b


def _same_day_slots(slot_id_to_ignore, day: date_type, work_center_id, existing_slots: Iterable) -> List:
    return [
        s for s in existing_slots
        if s.work_center_id == work_center_id
        and s.date == day
        and (slot_id_to_ignore is None or s.id != slot_id_to_ignore)
    ]


def peak_occupancy(start_min: int, end_min: int, intervals: Iterable) -> int:
    """计算 [start_min, end_min) 内任一时刻同时占用的最大区间数（不含候选区间本身）

    扫描线：把与候选区间重叠的部分裁剪后生成 +1/-1 事件，同一时刻先处理结束再处理开始。
    """
    events = []
    for s_start, s_end in intervals:
        if overlaps(start_min, end_min, s_start, s_end):
            events.append((max(s_start, start_min), 1))
            events.append((min(s_end, end_min), -1))
    events.sort(key=lambda e: (e[0], e[1]))

    current = peak = 0
    for _, delta in events:
        current += delta
        peak = max(peak, current)
    return peak


def conflicting_slots(slot_id_to_ignore, day: date_type, start_min: int, length_min: int,
                      work_center_id, existing_slots: Iterable) -> List:
    """返回与候选区间重叠的同工位同日时间槽"""
    end_min = start_min + length_min
    return [
        s for s in _same_day_slots(slot_id_to_ignore, day, work_center_id, existing_slots)
        if overlaps(start_min, end_min, s.start_min, s.start_min + s.length_min)
    ]


def check_capacity(slot_id_to_ignore, day: date_type, start_min: int, length_min: int,
                   work_center_id, existing_slots: Iterable, capacity: int) -> bool:
    """返回 True 表示冲突（候选区间放入后某一时刻的占用数超过 capacity）"""
    end_min = start_min + length_min
    others = conflicting_slots(slot_id_to_ignore, day, start_min, length_min, work_center_id, existing_slots)
    if capacity <= 1:
        return len(others) > 0
    peak = peak_occupancy(start_min, end_min, [(s.start_min, s.start_min + s.length_min) for s in others])
    return peak + 1 > capacity


def used_minutes(day: date_type, work_center_id, existing_slots: Iterable,
                 include_blockers: bool = True) -> int:
    """某工位某天已计划的分钟数合计，用于负荷展示"""
    total = 0
    for s in _same_day_slots(None, day, work_center_id, existing_slots):
        if not include_blockers and getattr(s, "order_id", None) is None:
            continue
        total += s.length_min
    return total


def max_concurrency(day: date_type, work_center_id, existing_slots: Iterable,
                    window: Optional[tuple] = None) -> int:
    """某工位某天全天（或指定窗口内）的最大并发数"""
    slots = _same_day_slots(None, day, work_center_id, existing_slots)
    if not slots:
        return 0
    start = window[0] if window else min(s.start_min for s in slots)
    end = window[1] if window else max(s.start_min + s.length_min for s in slots)
    return peak_occupancy(start, end, [(s.start_min, s.start_min + s.length_min) for s in slots])
