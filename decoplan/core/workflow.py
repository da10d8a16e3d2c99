"""订单流程闸门

订单流程状态的转换表与所有写 order.workflow 的操作都集中在这里：
- 判断订单能否接收时间槽（排程前检查）
- 提交、缺件、解除缺件、交付、结算
- 时间槽执行带来的联动（开工 -> IN_PROD，最后一个槽完成 -> FERTIG）

状态写入使用带前置条件的单行 UPDATE（WHERE workflow = 当前状态），并发修改时只有一方成功。
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from .. import models
from ..config.settings import settings
from ..models.enums import TimeSlotStatus, WorkflowState
from ..utils.helpers import utcnow
from .exceptions import NotFoundError, PreconditionFailedError

logger = logging.getLogger(__name__)

# 可以挂时间槽的流程状态
SCHEDULABLE_STATES = frozenset({
    WorkflowState.FUER_PROD,
    WorkflowState.IN_PROD,
    WorkflowState.WARTET_FEHLTEILE,
})

# 可以提交到生产的来源状态
SUBMITTABLE_STATES = frozenset({
    WorkflowState.ENTWURF,
    WorkflowState.NEU,
    WorkflowState.PRUEFUNG,
})

DELIVERABLE_STATES = frozenset({WorkflowState.FERTIG, WorkflowState.FUER_PROD})

ALLOWED_TRANSITIONS = {
    WorkflowState.ENTWURF: {WorkflowState.NEU, WorkflowState.PRUEFUNG, WorkflowState.FUER_PROD},
    WorkflowState.NEU: {WorkflowState.PRUEFUNG, WorkflowState.FUER_PROD},
    WorkflowState.PRUEFUNG: {WorkflowState.NEU, WorkflowState.FUER_PROD},
    WorkflowState.FUER_PROD: {WorkflowState.IN_PROD, WorkflowState.WARTET_FEHLTEILE, WorkflowState.ZUR_ABRECHNUNG},
    WorkflowState.IN_PROD: {WorkflowState.WARTET_FEHLTEILE, WorkflowState.FERTIG},
    WorkflowState.WARTET_FEHLTEILE: {WorkflowState.FUER_PROD},
    WorkflowState.FERTIG: {WorkflowState.ZUR_ABRECHNUNG},
    WorkflowState.ZUR_ABRECHNUNG: {WorkflowState.ABGERECHNET},
    WorkflowState.ABGERECHNET: set(),
}


def _value(v):
    return getattr(v, "value", v)


def can_transition(current: WorkflowState, target: WorkflowState) -> bool:
    return target in ALLOWED_TRANSITIONS.get(WorkflowState(current), set())


def require_order(db: Session, order_id: int, lock: bool = False) -> models.Order:
    """按ID读取订单，不存在时抛 NotFoundError"""
    query = db.query(models.Order).filter(models.Order.id == order_id)
    if lock:
        query = query.with_for_update()
    order = query.first()
    if not order:
        raise NotFoundError("Order", order_id)
    return order


def transition(db: Session, order: models.Order, target: WorkflowState, **values) -> models.Order:
    """把订单从当前状态转到 target，values 为同一条 UPDATE 中一起写入的其他列

    不在转换表中的边抛 PreconditionFailedError；订单在读取后被并发修改时同样失败。
    调用方负责提交事务。
    """
    current = WorkflowState(order.workflow)
    if not can_transition(current, target):
        raise PreconditionFailedError(
            f"Order workflow cannot change from {current.value} to {target.value}",
            {"order_id": order.id, "workflow": current.value, "target": target.value},
        )
    values["workflow"] = target
    updated = (
        db.query(models.Order)
        .filter(models.Order.id == order.id, models.Order.workflow == current)
        .update(values, synchronize_session=False)
    )
    if updated != 1:
        raise PreconditionFailedError(
            "Order workflow was changed concurrently, please reload",
            {"order_id": order.id, "expected_workflow": current.value},
        )
    db.refresh(order)
    logger.info("order %s workflow %s -> %s", order.id, current.value, target.value)
    return order


def can_receive_time_slot(order: models.Order, work_center: models.WorkCenter) -> bool:
    """订单处于可排程状态，且与工位属于同一部门"""
    return (
        WorkflowState(order.workflow) in SCHEDULABLE_STATES
        and order.department == work_center.department
    )


def ensure_can_receive_time_slot(order: models.Order, work_center: models.WorkCenter) -> None:
    """同 can_receive_time_slot，但以不同的错误信息区分部门不符与流程状态不符"""
    if order.department != work_center.department:
        raise PreconditionFailedError(
            f"Department mismatch: order belongs to {_value(order.department)}, "
            f"work center {work_center.name!r} to {_value(work_center.department)}",
            {"order_id": order.id, "work_center_id": work_center.id, "rule": "department"},
        )
    if WorkflowState(order.workflow) not in SCHEDULABLE_STATES:
        raise PreconditionFailedError(
            f"Order in workflow state {WorkflowState(order.workflow).value} cannot be scheduled; "
            f"allowed: {', '.join(sorted(s.value for s in SCHEDULABLE_STATES))}",
            {"order_id": order.id, "workflow": WorkflowState(order.workflow).value, "rule": "workflow"},
        )


def open_slot_count(db: Session, order_id: int) -> int:
    """订单下尚未完成（非 DONE）的时间槽数量"""
    return (
        db.query(models.TimeSlot)
        .filter(models.TimeSlot.order_id == order_id, models.TimeSlot.status != TimeSlotStatus.DONE)
        .count()
    )


def submit(db: Session, order: models.Order) -> models.Order:
    """提交订单到生产

    需要至少一个必需的印刷文件；尺码敏感部门（默认 TEAMSPORT）还需要尺码表。
    """
    if WorkflowState(order.workflow) not in SUBMITTABLE_STATES:
        raise PreconditionFailedError(
            f"Order in workflow state {WorkflowState(order.workflow).value} cannot be submitted",
            {"order_id": order.id, "workflow": WorkflowState(order.workflow).value},
        )
    if not any(asset.required for asset in order.print_assets):
        raise PreconditionFailedError("Required print asset missing", {"order_id": order.id, "rule": "print_asset"})
    if _value(order.department) == settings.SIZE_SENSITIVE_DEPARTMENT and order.size_table is None:
        raise PreconditionFailedError(
            f"Size table required for {settings.SIZE_SENSITIVE_DEPARTMENT} department",
            {"order_id": order.id, "rule": "size_table"},
        )
    transition(db, order, WorkflowState.FUER_PROD)
    db.commit()
    db.refresh(order)
    return order


def mark_missing_parts(db: Session, slot: models.TimeSlot, note: str,
                       update_order_workflow: bool = False, actor_id: Optional[str] = None) -> models.TimeSlot:
    """在时间槽上登记缺件，可选地把订单置为 WARTET_FEHLTEILE"""
    if slot.order_id is None:
        raise PreconditionFailedError(
            "Missing parts can only be reported on a time slot with an order",
            {"time_slot_id": slot.id},
        )
    if not note or not note.strip():
        raise PreconditionFailedError("A note describing the missing parts is required", {"time_slot_id": slot.id})

    slot.missing_parts_note = note.strip()
    slot.missing_parts_reported_at = utcnow()
    slot.missing_parts_reported_by = actor_id
    slot.missing_parts_resolved_at = None
    slot.missing_parts_resolved_by = None

    try:
        if update_order_workflow:
            order = require_order(db, slot.order_id, lock=True)
            if WorkflowState(order.workflow) != WorkflowState.WARTET_FEHLTEILE:
                transition(db, order, WorkflowState.WARTET_FEHLTEILE)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(slot)
    logger.info("missing parts reported on slot %s (order %s)", slot.id, slot.order_id)
    return slot


def release_from_missing_parts(db: Session, order: models.Order, actor_id: Optional[str] = None) -> models.Order:
    """缺件到齐，订单回到 FUER_PROD（重新进入待排程池）"""
    if WorkflowState(order.workflow) != WorkflowState.WARTET_FEHLTEILE:
        raise PreconditionFailedError(
            f"Order is not waiting for missing parts (workflow {WorkflowState(order.workflow).value})",
            {"order_id": order.id, "workflow": WorkflowState(order.workflow).value},
        )
    now = utcnow()
    pending = (
        db.query(models.TimeSlot)
        .filter(
            models.TimeSlot.order_id == order.id,
            models.TimeSlot.missing_parts_note.isnot(None),
            models.TimeSlot.missing_parts_resolved_at.is_(None),
        )
        .all()
    )
    try:
        for slot in pending:
            slot.missing_parts_resolved_at = now
            slot.missing_parts_resolved_by = actor_id
        transition(db, order, WorkflowState.FUER_PROD)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(order)
    return order


def deliver(db: Session, order: models.Order, delivered_at: Optional[datetime] = None,
            qty: Optional[int] = None, note: Optional[str] = None) -> models.Order:
    """登记交付，订单进入 ZUR_ABRECHNUNG（待结算）"""
    if WorkflowState(order.workflow) not in DELIVERABLE_STATES:
        raise PreconditionFailedError(
            f"Order in workflow state {WorkflowState(order.workflow).value} cannot be delivered",
            {"order_id": order.id, "workflow": WorkflowState(order.workflow).value},
        )
    open_slots = open_slot_count(db, order.id)
    if open_slots:
        raise PreconditionFailedError(
            f"Order still has {open_slots} open time slot(s)",
            {"order_id": order.id, "open_slots": open_slots},
        )
    if qty is not None and qty < 0:
        raise PreconditionFailedError("Delivered quantity must not be negative", {"order_id": order.id})
    transition(
        db,
        order,
        WorkflowState.ZUR_ABRECHNUNG,
        delivered_at=delivered_at or utcnow(),
        delivered_qty=qty,
        delivery_note=note,
    )
    db.commit()
    db.refresh(order)
    return order


def settle(db: Session, order: models.Order, actor_id: str) -> models.Order:
    """结算，记录结算人"""
    if WorkflowState(order.workflow) != WorkflowState.ZUR_ABRECHNUNG:
        raise PreconditionFailedError(
            f"Only orders in ZUR_ABRECHNUNG can be settled (workflow {WorkflowState(order.workflow).value})",
            {"order_id": order.id, "workflow": WorkflowState(order.workflow).value},
        )
    if not actor_id:
        raise PreconditionFailedError("Settling requires an actor", {"order_id": order.id})
    transition(db, order, WorkflowState.ABGERECHNET, settled_at=utcnow(), settled_by=actor_id)
    db.commit()
    db.refresh(order)
    return order


def on_slot_started(db: Session, order_id: int) -> None:
    """时间槽开工：订单 FUER_PROD -> IN_PROD，其他状态不变"""
    order = require_order(db, order_id)
    if WorkflowState(order.workflow) == WorkflowState.FUER_PROD:
        transition(db, order, WorkflowState.IN_PROD)


def on_slot_done(db: Session, order_id: int) -> None:
    """时间槽完成：订单的时间槽全部 DONE 且处于 IN_PROD 时转为 FERTIG"""
    order = require_order(db, order_id)
    if WorkflowState(order.workflow) == WorkflowState.IN_PROD and open_slot_count(db, order_id) == 0:
        transition(db, order, WorkflowState.FERTIG)
