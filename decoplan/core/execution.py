"""时间槽执行状态机

合法的状态边只有：
    PLANNED -> RUNNING, RUNNING -> PAUSED, PAUSED -> RUNNING,
    RUNNING -> DONE, PAUSED -> DONE
BLOCKED 是阻塞槽的终态，不参与任何转换。

每次转换都是一条带状态前置条件的单行 UPDATE（compare-and-transition），
两个并发的 start 只有一个会成功，另一个得到 InvalidTransitionError。
运行时长在暂停/结束时累加到 elapsed_seconds，恢复运行不会清零。
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from .. import models
from ..models.enums import QCState, TimeSlotStatus
from ..utils.helpers import elapsed_seconds_between, format_duration_minutes, utcnow
from . import workflow
from .exceptions import InvalidTransitionError, NotFoundError
from .scheduler import require_time_slot

logger = logging.getLogger(__name__)

# 动作 -> (允许的起始状态, 目标状态)
TRANSITIONS = {
    "start": ({TimeSlotStatus.PLANNED, TimeSlotStatus.PAUSED}, TimeSlotStatus.RUNNING),
    "pause": ({TimeSlotStatus.RUNNING}, TimeSlotStatus.PAUSED),
    "stop": ({TimeSlotStatus.RUNNING, TimeSlotStatus.PAUSED}, TimeSlotStatus.DONE),
}

LEGAL_EDGES = frozenset(
    (source, target)
    for sources, target in TRANSITIONS.values()
    for source in sources
)


def is_legal_edge(source: TimeSlotStatus, target: TimeSlotStatus) -> bool:
    return (TimeSlotStatus(source), TimeSlotStatus(target)) in LEGAL_EDGES


def _guarded_update(db: Session, slot: models.TimeSlot, action: str, values: dict) -> models.TimeSlot:
    """以 slot 读取时的状态为前置条件更新；行已被并发修改则抛 InvalidTransitionError"""
    sources, target = TRANSITIONS[action]
    observed = TimeSlotStatus(slot.status)
    values["status"] = target
    updated = (
        db.query(models.TimeSlot)
        .filter(
            models.TimeSlot.id == slot.id,
            models.TimeSlot.status == observed,
            models.TimeSlot.status.in_(sources),
        )
        .update(values, synchronize_session=False)
    )
    if updated != 1:
        db.rollback()
        current = db.query(models.TimeSlot.status).filter(models.TimeSlot.id == slot.id).scalar()
        if current is None:
            raise NotFoundError("TimeSlot", slot.id)
        logger.warning("rejected %s on slot %s: status is %s", action, slot.id, current)
        raise InvalidTransitionError(action, current, target)
    return slot


def _check_source(slot: models.TimeSlot, action: str) -> None:
    _, target = TRANSITIONS[action]
    current = TimeSlotStatus(slot.status)
    if not is_legal_edge(current, target):
        logger.warning("rejected %s on slot %s: status is %s", action, slot.id, current.value)
        raise InvalidTransitionError(action, current, target)


def start_slot(db: Session, slot_id: int, now: Optional[datetime] = None) -> models.TimeSlot:
    """开工或从暂停恢复；started_at 记录当前运行段的开始"""
    now = now or utcnow()
    slot = require_time_slot(db, slot_id)
    _check_source(slot, "start")
    if slot.order_id is None:
        raise InvalidTransitionError(
            "start", slot.status, TimeSlotStatus.RUNNING,
            message="Cannot start a time slot without an order",
        )
    resumed = TimeSlotStatus(slot.status) == TimeSlotStatus.PAUSED
    _guarded_update(db, slot, "start", {"started_at": now})
    try:
        if not resumed:
            workflow.on_slot_started(db, slot.order_id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(slot)
    logger.info("%s time slot %s", "resumed" if resumed else "started", slot.id)
    return slot


def pause_slot(db: Session, slot_id: int, now: Optional[datetime] = None) -> models.TimeSlot:
    """暂停，把当前运行段累加到 elapsed_seconds"""
    now = now or utcnow()
    slot = require_time_slot(db, slot_id)
    _check_source(slot, "pause")
    elapsed = (slot.elapsed_seconds or 0) + elapsed_seconds_between(slot.started_at, now)
    _guarded_update(db, slot, "pause", {"elapsed_seconds": elapsed})
    db.commit()
    db.refresh(slot)
    logger.info("paused time slot %s after %ss", slot.id, elapsed)
    return slot


def stop_slot(db: Session, slot_id: int, now: Optional[datetime] = None) -> models.TimeSlot:
    """结束，冻结实际用时（分钟，向下取整）"""
    now = now or utcnow()
    slot = require_time_slot(db, slot_id)
    _check_source(slot, "stop")
    elapsed = slot.elapsed_seconds or 0
    if TimeSlotStatus(slot.status) == TimeSlotStatus.RUNNING:
        elapsed += elapsed_seconds_between(slot.started_at, now)
    _guarded_update(db, slot, "stop", {
        "elapsed_seconds": elapsed,
        "stopped_at": now,
        "actual_duration_min": elapsed // 60,
    })
    try:
        if slot.order_id is not None:
            workflow.on_slot_done(db, slot.order_id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(slot)
    logger.info("stopped time slot %s, actual duration %s", slot.id, format_duration_minutes(slot.actual_duration_min))
    return slot


def set_qc(db: Session, slot_id: int, outcome, note: Optional[str] = None) -> models.TimeSlot:
    """记录质检结果，只允许在 DONE 之后；结果同步到订单的 qc 字段"""
    slot = require_time_slot(db, slot_id)
    current = TimeSlotStatus(slot.status)
    if current != TimeSlotStatus.DONE:
        raise InvalidTransitionError(
            "record QC for", current,
            message=f"QC can only be recorded once the time slot is DONE (current status {current.value})",
        )
    outcome = QCState(outcome)
    slot.qc = outcome
    slot.qc_note = note
    if slot.order is not None:
        slot.order.qc = outcome
    db.commit()
    db.refresh(slot)
    logger.info("QC %s recorded on time slot %s", outcome.value, slot.id)
    return slot


def report_qc_failure(db: Session, slot_id: int, note: str) -> models.TimeSlot:
    """质检不合格的快捷入口"""
    return set_qc(db, slot_id, QCState.NIO, note)
