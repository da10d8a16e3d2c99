"""时间槽排程核心逻辑

负责时间槽的创建、移动/调整和删除。每个操作都在一个数据库事务内完成：
先锁定目标工位行（事务的第一条语句），再重新读取当天的占用、重新执行容量校验，
全部通过后才提交，避免两个客户端基于过期的占用同时通过校验。

执行顺序：存在性 -> 流程闸门 -> 网格/工作时间 -> 容量 -> 写入。
"""

import logging
from datetime import date as date_type
from typing import List, Optional

from sqlalchemy.orm import Session

from .. import models
from ..models.enums import TimeSlotStatus
from . import capacity, grid, workflow
from .exceptions import ConflictError, NotFoundError, PreconditionFailedError

logger = logging.getLogger(__name__)


def require_work_center(db: Session, work_center_id: int, lock: bool = False) -> models.WorkCenter:
    """读取工位；lock=True 时加行锁并刷新会话中已有的对象"""
    query = db.query(models.WorkCenter).filter(models.WorkCenter.id == work_center_id)
    if lock:
        query = query.with_for_update().populate_existing()
    work_center = query.first()
    if not work_center:
        raise NotFoundError("WorkCenter", work_center_id)
    return work_center


def touch_work_center(db: Session, work_center_id: int) -> bool:
    """对工位行做一次空写，返回该工位是否存在

    MySQL 上空写即持有行锁；SQLite 在写语句前才开启事务并取得写锁，
    所以它必须先于本事务里的任何读取执行。
    """
    touched = (
        db.query(models.WorkCenter)
        .filter(models.WorkCenter.id == work_center_id)
        .update({models.WorkCenter.concurrent_capacity: models.WorkCenter.concurrent_capacity},
                synchronize_session=False)
    )
    return touched > 0


def lock_work_center(db: Session, work_center_id: int) -> models.WorkCenter:
    """锁定工位并读出最新状态，同一工位上的排程写入由此串行化"""
    if not touch_work_center(db, work_center_id):
        raise NotFoundError("WorkCenter", work_center_id)
    return require_work_center(db, work_center_id, lock=True)


def require_time_slot(db: Session, slot_id: int, lock: bool = False) -> models.TimeSlot:
    query = db.query(models.TimeSlot).filter(models.TimeSlot.id == slot_id)
    if lock:
        query = query.with_for_update().populate_existing()
    slot = query.first()
    if not slot:
        raise NotFoundError("TimeSlot", slot_id)
    return slot


def load_occupancy(db: Session, work_center_id: int, day: date_type) -> List[models.TimeSlot]:
    """读取某工位某天的全部时间槽；加锁读取，拿到的是已提交的最新状态而不是事务快照"""
    return (
        db.query(models.TimeSlot)
        .filter(models.TimeSlot.work_center_id == work_center_id, models.TimeSlot.date == day)
        .order_by(models.TimeSlot.start_min)
        .with_for_update()
        .populate_existing()
        .all()
    )


def ensure_capacity(slot_id_to_ignore, day: date_type, start_min: int, length_min: int,
                    work_center: models.WorkCenter, existing_slots) -> None:
    """容量校验，冲突时抛 ConflictError 并附上重叠的时间槽"""
    if capacity.check_capacity(slot_id_to_ignore, day, start_min, length_min,
                               work_center.id, existing_slots, work_center.concurrent_capacity):
        overlapping = capacity.conflicting_slots(slot_id_to_ignore, day, start_min, length_min,
                                                 work_center.id, existing_slots)
        logger.warning(
            "capacity exceeded on work center %s at %s %s (+%s min)",
            work_center.id, day, grid.minutes_to_hhmm(start_min), length_min,
        )
        raise ConflictError(
            f"Capacity of work center {work_center.name!r} ({work_center.concurrent_capacity}) exceeded "
            f"on {day.isoformat()} between {grid.minutes_to_hhmm(start_min)} and "
            f"{grid.minutes_to_hhmm(grid.slot_end(start_min, length_min))}",
            {
                "work_center_id": work_center.id,
                "concurrent_capacity": work_center.concurrent_capacity,
                "overlapping_slot_ids": [s.id for s in overlapping],
            },
        )


def check_eligibility(db: Session, work_center: models.WorkCenter, order_id: Optional[int]) -> Optional[models.Order]:
    """工位启用状态与订单流程闸门；阻塞槽（order_id 为空）跳过流程闸门"""
    if not work_center.active:
        raise PreconditionFailedError(
            f"Work center {work_center.name!r} is inactive",
            {"work_center_id": work_center.id, "rule": "active"},
        )
    if order_id is None:
        return None
    order = workflow.require_order(db, order_id)
    workflow.ensure_can_receive_time_slot(order, work_center)
    return order


def create_time_slot(db: Session, work_center_id: int, date: date_type, start_min: int, length_min: int,
                     order_id: Optional[int] = None, blocked: Optional[bool] = None,
                     note: Optional[str] = None) -> models.TimeSlot:
    """创建时间槽（订单槽或阻塞槽）"""
    if blocked and order_id is not None:
        raise PreconditionFailedError("A blocker slot cannot reference an order", {"order_id": order_id})

    try:
        work_center = lock_work_center(db, work_center_id)
        check_eligibility(db, work_center, order_id)
        grid.validate_placement(start_min, length_min)
        ensure_capacity(None, date, start_min, length_min, work_center, load_occupancy(db, work_center.id, date))

        is_blocker = order_id is None
        slot = models.TimeSlot(
            date=date,
            start_min=start_min,
            length_min=length_min,
            work_center_id=work_center.id,
            order_id=order_id,
            blocked=is_blocker,
            note=note,
            status=TimeSlotStatus.BLOCKED if is_blocker else TimeSlotStatus.PLANNED,
        )
        db.add(slot)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(slot)
    logger.info(
        "created time slot %s on work center %s %s %s (+%s min, order %s)",
        slot.id, work_center_id, date, grid.minutes_to_hhmm(start_min), length_min, order_id,
    )
    return slot


def update_time_slot(db: Session, slot_id: int, date: Optional[date_type] = None,
                     start_min: Optional[int] = None, length_min: Optional[int] = None,
                     work_center_id: Optional[int] = None, note: Optional[str] = None) -> models.TimeSlot:
    """移动/调整时间槽，容量校验时排除该槽自身原来的占用"""
    try:
        # 先不加锁地看一眼槽所在工位，锁定目标工位之后再加锁重读
        seen_wc_id = require_time_slot(db, slot_id).work_center_id
        new_wc_id = work_center_id if work_center_id is not None else seen_wc_id
        work_center = lock_work_center(db, new_wc_id)

        slot = require_time_slot(db, slot_id, lock=True)
        if work_center_id is None and slot.work_center_id != seen_wc_id:
            raise ConflictError(
                f"Time slot {slot_id} was moved to another work center meanwhile",
                {"slot_id": slot_id, "work_center_id": slot.work_center_id},
            )
        new_date = date if date is not None else slot.date
        new_start = start_min if start_min is not None else slot.start_min
        new_length = length_min if length_min is not None else slot.length_min

        check_eligibility(db, work_center, slot.order_id)
        grid.validate_placement(new_start, new_length)
        ensure_capacity(slot.id, new_date, new_start, new_length, work_center,
                        load_occupancy(db, work_center.id, new_date))

        slot.date = new_date
        slot.start_min = new_start
        slot.length_min = new_length
        slot.work_center_id = work_center.id
        if note is not None:
            slot.note = note
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(slot)
    logger.info("moved time slot %s to work center %s %s %s (+%s min)",
                slot.id, slot.work_center_id, slot.date, grid.minutes_to_hhmm(slot.start_min), slot.length_min)
    return slot


def delete_time_slot(db: Session, slot_id: int) -> None:
    """删除时间槽，不影响订单流程状态"""
    slot = require_time_slot(db, slot_id)
    try:
        db.delete(slot)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("deleted time slot %s", slot_id)


def list_time_slots(db: Session, date_from: date_type, date_to: date_type,
                    work_center_id: Optional[int] = None, department=None) -> List[models.TimeSlot]:
    """按日期范围（含两端）列出时间槽，可按工位或部门过滤"""
    query = db.query(models.TimeSlot).filter(
        models.TimeSlot.date >= date_from,
        models.TimeSlot.date <= date_to,
    )
    if work_center_id is not None:
        query = query.filter(models.TimeSlot.work_center_id == work_center_id)
    if department is not None:
        query = query.join(models.WorkCenter).filter(models.WorkCenter.department == department)
    return query.order_by(models.TimeSlot.date, models.TimeSlot.start_min, models.TimeSlot.id).all()
