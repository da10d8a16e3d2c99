"""时间槽查询

排程写操作在 core.scheduler 中，这里只放只读的列表查询
"""

from typing import List, Optional

from sqlalchemy.orm import Session

from .. import models


def list_missing_parts(db: Session, department=None) -> List[models.TimeSlot]:
    """登记了缺件且尚未解除的时间槽，按登记时间排序"""
    query = db.query(models.TimeSlot).filter(
        models.TimeSlot.missing_parts_note.isnot(None),
        models.TimeSlot.missing_parts_resolved_at.is_(None),
    )
    if department is not None:
        query = query.join(models.WorkCenter).filter(models.WorkCenter.department == department)
    return query.order_by(models.TimeSlot.missing_parts_reported_at, models.TimeSlot.id).all()


def list_order_time_slots(db: Session, order_id: int, status: Optional[models.TimeSlotStatus] = None):
    query = db.query(models.TimeSlot).filter(models.TimeSlot.order_id == order_id)
    if status is not None:
        query = query.filter(models.TimeSlot.status == status)
    return query.order_by(models.TimeSlot.date, models.TimeSlot.start_min).all()
