"""时间槽API路由

排程（创建/移动/删除/批量）与执行（开工/暂停/结束/质检/缺件）端点
"""

from datetime import date as date_type
from typing import List, Optional

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ... import crud, schemas
from ...core import batch, execution, scheduler, workflow
from ...database.connection import get_db
from ...models.enums import Department

router = APIRouter(tags=["timeslots"])


@router.get("/timeslots", response_model=List[schemas.TimeSlotRead])
def list_time_slots(
    date_from: date_type,
    date_to: date_type,
    work_center_id: Optional[int] = None,
    department: Optional[Department] = None,
    db: Session = Depends(get_db),
):
    """按日期范围列出时间槽（含两端）"""
    return scheduler.list_time_slots(db, date_from, date_to, work_center_id=work_center_id, department=department)


@router.get("/timeslots/missing-parts", response_model=List[schemas.TimeSlotRead])
def list_missing_parts(department: Optional[Department] = None, db: Session = Depends(get_db)):
    """登记了缺件且尚未解除的时间槽"""
    return crud.list_missing_parts(db, department=department)


@router.post("/timeslots", response_model=schemas.TimeSlotRead, status_code=201)
def create_time_slot(slot: schemas.TimeSlotCreate, db: Session = Depends(get_db)):
    """创建订单槽或阻塞槽"""
    return scheduler.create_time_slot(
        db,
        work_center_id=slot.work_center_id,
        date=slot.date,
        start_min=slot.start_min,
        length_min=slot.length_min,
        order_id=slot.order_id,
        blocked=slot.blocked,
        note=slot.note,
    )


@router.post("/timeslots/batch", response_model=schemas.BatchResponse)
def apply_batch(request: schemas.BatchRequest, db: Session = Depends(get_db)):
    """原子地执行一组变更，任一失败整批回滚"""
    mutations = [batch.SlotMutation(**op.dict()) for op in request.operations]
    result = batch.apply_batch(db, mutations)
    return {"created": result.created, "updated": result.updated, "deleted": result.deleted}


@router.get("/timeslots/{slot_id}", response_model=schemas.TimeSlotRead)
def get_time_slot(slot_id: int, db: Session = Depends(get_db)):
    return scheduler.require_time_slot(db, slot_id)


@router.patch("/timeslots/{slot_id}", response_model=schemas.TimeSlotRead)
def update_time_slot(slot_id: int, slot_update: schemas.TimeSlotUpdate, db: Session = Depends(get_db)):
    """移动或调整时间槽"""
    return scheduler.update_time_slot(db, slot_id, **slot_update.dict(exclude_unset=True))


@router.delete("/timeslots/{slot_id}", status_code=204)
def delete_time_slot(slot_id: int, db: Session = Depends(get_db)):
    scheduler.delete_time_slot(db, slot_id)
    return Response(status_code=204)


@router.post("/timeslots/{slot_id}/start", response_model=schemas.TimeSlotRead)
def start_time_slot(slot_id: int, db: Session = Depends(get_db)):
    return execution.start_slot(db, slot_id)


@router.post("/timeslots/{slot_id}/pause", response_model=schemas.TimeSlotRead)
def pause_time_slot(slot_id: int, db: Session = Depends(get_db)):
    return execution.pause_slot(db, slot_id)


@router.post("/timeslots/{slot_id}/stop", response_model=schemas.TimeSlotRead)
def stop_time_slot(slot_id: int, db: Session = Depends(get_db)):
    return execution.stop_slot(db, slot_id)


@router.post("/timeslots/{slot_id}/qc", response_model=schemas.TimeSlotRead)
def record_qc(slot_id: int, request: schemas.QCRequest, db: Session = Depends(get_db)):
    """记录质检结果（仅 DONE 之后）"""
    return execution.set_qc(db, slot_id, request.outcome, request.note)


@router.post("/timeslots/{slot_id}/qc-fail", response_model=schemas.TimeSlotRead)
def report_qc_failure(slot_id: int, request: schemas.QCFailRequest, db: Session = Depends(get_db)):
    return execution.report_qc_failure(db, slot_id, request.note)


@router.post("/timeslots/{slot_id}/missing-parts", response_model=schemas.TimeSlotRead)
def report_missing_parts(slot_id: int, request: schemas.MissingPartsRequest, db: Session = Depends(get_db)):
    """登记缺件，可选地把订单置为 WARTET_FEHLTEILE"""
    slot = scheduler.require_time_slot(db, slot_id)
    return workflow.mark_missing_parts(
        db,
        slot,
        request.note,
        update_order_workflow=request.update_order_workflow,
        actor_id=request.actor_id,
    )
