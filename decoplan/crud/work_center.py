"""工位数据操作

定义对工位的增删改查操作，以及日历负荷视图的汇总
"""

import logging
from datetime import date as date_type, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from .. import models, schemas
from ..core import capacity
from ..core.exceptions import ConflictError, PreconditionFailedError
from ..core.scheduler import lock_work_center

logger = logging.getLogger(__name__)


def create_work_center(db: Session, work_center: schemas.WorkCenterCreate) -> models.WorkCenter:
    """创建工位"""
    db_wc = models.WorkCenter(
        name=work_center.name,
        department=work_center.department,
        capacity_min=work_center.capacity_min,
        concurrent_capacity=work_center.concurrent_capacity,
        active=work_center.active,
    )
    db.add(db_wc)
    db.commit()
    db.refresh(db_wc)
    logger.info("created work center %s (%s)", db_wc.id, db_wc.name)
    return db_wc


def get_work_center(db: Session, work_center_id: int) -> Optional[models.WorkCenter]:
    return db.query(models.WorkCenter).filter(models.WorkCenter.id == work_center_id).first()


def list_work_centers(db: Session, department=None, active: Optional[bool] = None) -> List[models.WorkCenter]:
    """获取工位列表，可按部门和启用状态过滤"""
    query = db.query(models.WorkCenter)
    if department is not None:
        query = query.filter(models.WorkCenter.department == department)
    if active is not None:
        query = query.filter(models.WorkCenter.active == active)
    return query.order_by(models.WorkCenter.department, models.WorkCenter.name).all()


def update_work_center(db: Session, work_center_id: int, work_center_update: schemas.WorkCenterUpdate,
                       today: Optional[date_type] = None) -> models.WorkCenter:
    """更新工位；降低并发容量时，今天及以后任何一天的峰值并发超过新容量则拒绝"""
    today = today or date_type.today()
    update_data = work_center_update.dict(exclude_unset=True)
    try:
        db_wc = lock_work_center(db, work_center_id)
        new_capacity = update_data.get("concurrent_capacity")
        if new_capacity is not None and new_capacity < db_wc.concurrent_capacity:
            ensure_capacity_covers_upcoming(db, db_wc, new_capacity, today)
        for field, value in update_data.items():
            setattr(db_wc, field, value)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(db_wc)
    logger.info("updated work center %s: %s", work_center_id, ", ".join(sorted(update_data)))
    return db_wc


def ensure_capacity_covers_upcoming(db: Session, db_wc: models.WorkCenter, new_capacity: int,
                                    today: date_type) -> None:
    slots = (
        db.query(models.TimeSlot)
        .filter(models.TimeSlot.work_center_id == db_wc.id, models.TimeSlot.date >= today)
        .with_for_update()
        .all()
    )
    days = sorted({s.date for s in slots})
    for day in days:
        peak = capacity.max_concurrency(day, db_wc.id, slots)
        if peak > new_capacity:
            logger.warning("refused to lower capacity of work center %s to %s: peak %s on %s",
                           db_wc.id, new_capacity, peak, day)
            raise ConflictError(
                f"Work center {db_wc.name!r} already runs {peak} slots at once on {day.isoformat()}, "
                f"more than the requested capacity {new_capacity}",
                {
                    "work_center_id": db_wc.id,
                    "date": day.isoformat(),
                    "peak_concurrency": peak,
                    "concurrent_capacity": new_capacity,
                },
            )


def delete_work_center(db: Session, work_center_id: int, today: Optional[date_type] = None) -> None:
    """删除工位；今天及以后还有时间槽时拒绝，历史时间槽一并删除"""
    today = today or date_type.today()
    try:
        db_wc = lock_work_center(db, work_center_id)
        future = (
            db.query(models.TimeSlot)
            .filter(models.TimeSlot.work_center_id == work_center_id, models.TimeSlot.date >= today)
            .count()
        )
        if future:
            raise PreconditionFailedError(
                f"Work center {db_wc.name!r} still has {future} upcoming time slot(s)",
                {"work_center_id": work_center_id, "future_slots": future},
            )
        db.query(models.TimeSlot).filter(models.TimeSlot.work_center_id == work_center_id).delete(
            synchronize_session=False
        )
        db.delete(db_wc)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("deleted work center %s", work_center_id)


def calendar(db: Session, date_from: date_type, date_to: date_type, department=None) -> List[dict]:
    """按工位和日期汇总计划分钟数、利用率和峰值并发"""
    work_centers = list_work_centers(db, department=department)
    if not work_centers:
        return []
    slots = (
        db.query(models.TimeSlot)
        .filter(
            models.TimeSlot.date >= date_from,
            models.TimeSlot.date <= date_to,
            models.TimeSlot.work_center_id.in_([wc.id for wc in work_centers]),
        )
        .all()
    )

    days = []
    day = date_from
    while day <= date_to:
        days.append(day)
        day += timedelta(days=1)

    result = []
    for wc in work_centers:
        for day in days:
            day_slots = [s for s in slots if s.work_center_id == wc.id and s.date == day]
            used = capacity.used_minutes(day, wc.id, day_slots)
            result.append({
                "work_center_id": wc.id,
                "work_center_name": wc.name,
                "department": wc.department,
                "date": day,
                "slot_count": len(day_slots),
                "used_minutes": used,
                "capacity_min": wc.capacity_min,
                "utilization": round(used / wc.capacity_min, 3) if wc.capacity_min else 0.0,
                "peak_concurrency": capacity.max_concurrency(day, wc.id, day_slots),
                "concurrent_capacity": wc.concurrent_capacity,
            })
    return result
