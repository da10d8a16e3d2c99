"""数据库操作（CRUD）- 订单相关

封装订单、尺码表和印刷文件的读写操作。
- create_order 在同一事务中发放内部订单编号并写入订单
- next_display_order_number 按年份递增计数，并发创建时编号唯一、连续且不跳号
"""

import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from .. import models, schemas
from ..config.settings import settings
from ..core.exceptions import PreconditionFailedError
from ..core.workflow import require_order
from ..models.enums import OrderSource, WorkflowState
from ..utils.helpers import format_display_order_number, utcnow

logger = logging.getLogger(__name__)

# 编号计数器首次插入或死锁时的重试次数
MAX_NUMBER_ATTEMPTS = 5


def next_display_order_number(db: Session, year: int) -> str:
    """在当前事务中发放 year 年的下一个编号

    必须是事务中的第一条语句：先 UPDATE 计数行拿到写锁，
    当年第一次使用时插入起始值；并发插入的唯一约束冲突由 create_order 重试。
    """
    updated = (
        db.query(models.OrderSequence)
        .filter(models.OrderSequence.year == year)
        .update({models.OrderSequence.current: models.OrderSequence.current + 1}, synchronize_session=False)
    )
    if updated:
        number = (
            db.query(models.OrderSequence.current)
            .filter(models.OrderSequence.year == year)
            .scalar()
        )
    else:
        number = settings.DISPLAY_NUMBER_START
        db.add(models.OrderSequence(year=year, current=number))
        db.flush()
    return format_display_order_number(settings.DISPLAY_NUMBER_PREFIX, year, number)


def create_order(db: Session, order: schemas.OrderCreate) -> models.Order:
    """创建内部订单，流程状态为 NEU"""
    year = utcnow().year
    for attempt in range(1, MAX_NUMBER_ATTEMPTS + 1):
        try:
            number = next_display_order_number(db, year)
            db_order = models.Order(
                display_order_number=number,
                source=OrderSource.INTERNAL,
                department=order.department,
                title=order.title,
                customer=order.customer,
                due_date=order.due_date,
                notes=order.notes,
                location=order.location,
                workflow=WorkflowState.NEU,
            )
            db.add(db_order)
            db.commit()
        except (IntegrityError, OperationalError):
            db.rollback()
            if attempt == MAX_NUMBER_ATTEMPTS:
                raise
            logger.warning("display number allocation for %s collided, retrying (%s)", year, attempt)
            continue
        db.refresh(db_order)
        logger.info("created order %s (%s)", db_order.id, number)
        return db_order


def get_order(db: Session, order_id: int) -> Optional[models.Order]:
    return db.query(models.Order).filter(models.Order.id == order_id).first()


def list_orders(db: Session, workflow: Optional[WorkflowState] = None, department=None,
                skip: int = 0, limit: int = 100) -> List[models.Order]:
    """获取订单列表，按创建顺序倒序"""
    query = db.query(models.Order)
    if workflow is not None:
        query = query.filter(models.Order.workflow == workflow)
    if department is not None:
        query = query.filter(models.Order.department == department)
    return query.order_by(models.Order.id.desc()).offset(skip).limit(limit).all()


def list_accounting_orders(db: Session) -> List[models.Order]:
    """待结算（ZUR_ABRECHNUNG）的订单，按交付时间排序"""
    return (
        db.query(models.Order)
        .filter(models.Order.workflow == WorkflowState.ZUR_ABRECHNUNG)
        .order_by(models.Order.delivered_at, models.Order.id)
        .all()
    )


def delete_order(db: Session, order_id: int) -> None:
    """删除订单及其尺码表和印刷文件；仍被时间槽引用时拒绝"""
    order = require_order(db, order_id)
    slot_count = db.query(models.TimeSlot).filter(models.TimeSlot.order_id == order_id).count()
    if slot_count:
        raise PreconditionFailedError(
            f"Order is referenced by {slot_count} time slot(s) and cannot be deleted",
            {"order_id": order_id, "time_slots": slot_count},
        )
    db.delete(order)
    db.commit()
    logger.info("deleted order %s", order_id)


def upsert_size_table(db: Session, order_id: int, size_table: schemas.SizeTableCreate) -> models.SizeTable:
    """新建或替换订单的尺码表"""
    order = require_order(db, order_id)
    db_table = order.size_table
    if db_table is None:
        db_table = models.SizeTable(order_id=order.id)
        db.add(db_table)
    db_table.scheme = size_table.scheme
    db_table.rows = size_table.rows
    db_table.comment = size_table.comment
    db.commit()
    db.refresh(db_table)
    return db_table


def add_print_asset(db: Session, order_id: int, asset: schemas.PrintAssetCreate) -> models.PrintAsset:
    order = require_order(db, order_id)
    db_asset = models.PrintAsset(order_id=order.id, label=asset.label, url=asset.url, required=asset.required)
    db.add(db_asset)
    db.commit()
    db.refresh(db_asset)
    return db_asset
