"""批量排程操作

把一组有序的 create / update / delete 变更作为一个原子单元执行：
1. 逐个校验存在性、流程闸门和网格（基于工作快照，前面成员删除的槽后面不能再引用）
2. 把全部变更应用到受影响工位/日期的内存快照
3. 对每个新建或移动的槽，用包含其他待定变更的最终快照做容量校验
4. 全部通过后一次提交；任一成员失败则整批回滚并报告成员序号与失败规则
"""

import logging
from dataclasses import dataclass, field
from datetime import date as date_type
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from .. import models
from ..models.enums import TimeSlotStatus
from . import grid
from .exceptions import BatchOperationError, NotFoundError, PreconditionFailedError, SchedulingError
from .scheduler import check_eligibility, ensure_capacity, load_occupancy, lock_work_center, touch_work_center

logger = logging.getLogger(__name__)

CREATE = "create"
UPDATE = "update"
DELETE = "delete"


@dataclass
class SlotMutation:
    """一条批量变更；create 需要完整的位置信息，update 只带要修改的字段，delete 只需要 slot_id"""
    op: str
    slot_id: Optional[int] = None
    work_center_id: Optional[int] = None
    date: Optional[date_type] = None
    start_min: Optional[int] = None
    length_min: Optional[int] = None
    order_id: Optional[int] = None
    blocked: Optional[bool] = None
    note: Optional[str] = None


@dataclass
class _SnapshotSlot:
    """快照中的时间槽，字段与容量校验所需的属性一致"""
    key: str
    id: Optional[int]
    work_center_id: int
    date: date_type
    start_min: int
    length_min: int
    order_id: Optional[int] = None


@dataclass
class BatchResult:
    created: List[models.TimeSlot] = field(default_factory=list)
    updated: List[models.TimeSlot] = field(default_factory=list)
    deleted: List[int] = field(default_factory=list)


class _WorkingSnapshot:
    """受影响工位/日期的占用快照，按需从数据库加载（先锁工位再读占用）"""

    def __init__(self, db: Session):
        self.db = db
        self.work_centers: Dict[int, models.WorkCenter] = {}
        self.slots: Dict[str, _SnapshotSlot] = {}
        self.loaded: set = set()

    def lock_all(self, mutations: List[SlotMutation]) -> None:
        """按ID升序预先锁定本批次涉及的工位，锁是事务里的第一条语句"""
        ids = set()
        for m in mutations:
            if m.work_center_id is not None:
                ids.add(m.work_center_id)
            if m.slot_id is not None:
                current = (
                    self.db.query(models.TimeSlot.work_center_id)
                    .filter(models.TimeSlot.id == m.slot_id)
                    .scalar()
                )
                if current is not None:
                    ids.add(current)
        for work_center_id in sorted(ids):
            # 不存在的工位留给成员校验报告
            touch_work_center(self.db, work_center_id)

    def work_center(self, work_center_id: int) -> models.WorkCenter:
        if work_center_id not in self.work_centers:
            self.work_centers[work_center_id] = lock_work_center(self.db, work_center_id)
        return self.work_centers[work_center_id]

    def load(self, work_center_id: int, day: date_type) -> None:
        if (work_center_id, day) in self.loaded:
            return
        self.work_center(work_center_id)
        self.loaded.add((work_center_id, day))
        for slot in load_occupancy(self.db, work_center_id, day):
            key = f"db:{slot.id}"
            if key not in self.slots:
                self.slots[key] = _SnapshotSlot(key, slot.id, slot.work_center_id, slot.date,
                                                slot.start_min, slot.length_min, slot.order_id)

    def existing(self, slot_id: int) -> Tuple[_SnapshotSlot, models.TimeSlot]:
        """按ID取槽；已被本批次删除的视为不存在"""
        key = f"db:{slot_id}"
        row = (
            self.db.query(models.TimeSlot)
            .filter(models.TimeSlot.id == slot_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if row is None or (key not in self.slots and (row.work_center_id, row.date) in self.loaded):
            raise NotFoundError("TimeSlot", slot_id)
        self.load(row.work_center_id, row.date)
        if key not in self.slots:
            raise NotFoundError("TimeSlot", slot_id)
        return self.slots[key], row

    def occupancy(self) -> List[_SnapshotSlot]:
        return list(self.slots.values())


def _validate_create(snapshot: _WorkingSnapshot, index: int, m: SlotMutation) -> _SnapshotSlot:
    if m.work_center_id is None or m.date is None or m.start_min is None or m.length_min is None:
        raise PreconditionFailedError("create requires work_center_id, date, start_min and length_min")
    if m.blocked and m.order_id is not None:
        raise PreconditionFailedError("A blocker slot cannot reference an order", {"order_id": m.order_id})
    work_center = snapshot.work_center(m.work_center_id)
    check_eligibility(snapshot.db, work_center, m.order_id)
    grid.validate_placement(m.start_min, m.length_min)
    snapshot.load(work_center.id, m.date)
    entry = _SnapshotSlot(f"new:{index}", None, work_center.id, m.date, m.start_min, m.length_min, m.order_id)
    snapshot.slots[entry.key] = entry
    return entry


def _validate_update(snapshot: _WorkingSnapshot, m: SlotMutation) -> _SnapshotSlot:
    if m.slot_id is None:
        raise PreconditionFailedError("update requires slot_id")
    entry, row = snapshot.existing(m.slot_id)
    new_wc_id = m.work_center_id if m.work_center_id is not None else entry.work_center_id
    new_date = m.date if m.date is not None else entry.date
    new_start = m.start_min if m.start_min is not None else entry.start_min
    new_length = m.length_min if m.length_min is not None else entry.length_min

    work_center = snapshot.work_center(new_wc_id)
    check_eligibility(snapshot.db, work_center, row.order_id)
    grid.validate_placement(new_start, new_length)
    snapshot.load(work_center.id, new_date)
    entry.work_center_id = work_center.id
    entry.date = new_date
    entry.start_min = new_start
    entry.length_min = new_length
    return entry


def _validate_delete(snapshot: _WorkingSnapshot, m: SlotMutation) -> None:
    if m.slot_id is None:
        raise PreconditionFailedError("delete requires slot_id")
    entry, _ = snapshot.existing(m.slot_id)
    del snapshot.slots[entry.key]


def apply_batch(db: Session, mutations: List[SlotMutation]) -> BatchResult:
    """原子地执行一组时间槽变更"""
    snapshot = _WorkingSnapshot(db)
    placed: List[Tuple[int, SlotMutation, _SnapshotSlot]] = []

    try:
        snapshot.lock_all(mutations)
        for index, m in enumerate(mutations):
            try:
                if m.op == CREATE:
                    placed.append((index, m, _validate_create(snapshot, index, m)))
                elif m.op == UPDATE:
                    placed.append((index, m, _validate_update(snapshot, m)))
                elif m.op == DELETE:
                    _validate_delete(snapshot, m)
                else:
                    raise PreconditionFailedError(f"Unknown batch operation {m.op!r}")
            except SchedulingError as exc:
                raise BatchOperationError(index, m.op, exc) from exc

        # 最终快照包含本批次所有变更，逐个复核容量
        final = snapshot.occupancy()
        for index, m, entry in placed:
            if entry.key not in snapshot.slots:
                continue
            try:
                ensure_capacity(None, entry.date, entry.start_min, entry.length_min,
                                snapshot.work_center(entry.work_center_id),
                                [s for s in final if s.key != entry.key])
            except SchedulingError as exc:
                raise BatchOperationError(index, m.op, exc) from exc

        result = _persist(db, mutations, placed, snapshot)
        db.commit()
    except Exception:
        db.rollback()
        raise

    for slot in result.created + result.updated:
        db.refresh(slot)
    logger.info("applied batch of %s mutations (%s created, %s updated, %s deleted)",
                len(mutations), len(result.created), len(result.updated), len(result.deleted))
    return result


def _persist(db: Session, mutations: List[SlotMutation], placed, snapshot: _WorkingSnapshot) -> BatchResult:
    result = BatchResult()
    for m in mutations:
        if m.op == DELETE:
            row = db.query(models.TimeSlot).filter(models.TimeSlot.id == m.slot_id).first()
            if row is not None:
                db.delete(row)
                result.deleted.append(m.slot_id)

    updated_rows: Dict[int, models.TimeSlot] = {}
    for _, m, entry in placed:
        if entry.key not in snapshot.slots:
            # 先移动后又在本批次中删除
            continue
        if m.op == CREATE:
            is_blocker = m.order_id is None
            slot = models.TimeSlot(
                date=entry.date,
                start_min=entry.start_min,
                length_min=entry.length_min,
                work_center_id=entry.work_center_id,
                order_id=m.order_id,
                blocked=is_blocker,
                note=m.note,
                status=TimeSlotStatus.BLOCKED if is_blocker else TimeSlotStatus.PLANNED,
            )
            db.add(slot)
            result.created.append(slot)
        elif entry.id in updated_rows:
            # 同一个槽被多次更新：位置取最终快照，备注以最后一次给出的为准
            if m.note is not None:
                updated_rows[entry.id].note = m.note
        else:
            row = db.query(models.TimeSlot).filter(models.TimeSlot.id == entry.id).first()
            row.date = entry.date
            row.start_min = entry.start_min
            row.length_min = entry.length_min
            row.work_center_id = entry.work_center_id
            if m.note is not None:
                row.note = m.note
            updated_rows[entry.id] = row
            result.updated.append(row)
    db.flush()
    return result
