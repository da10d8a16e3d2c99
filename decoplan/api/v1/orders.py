"""订单API路由

订单的创建、查询、删除，尺码表与印刷文件，以及流程操作（提交、解除缺件、交付、结算）
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ... import crud, schemas
from ...core import workflow
from ...database.connection import get_db
from ...models.enums import Department, TimeSlotStatus, WorkflowState

router = APIRouter(tags=["orders"])


@router.post("/orders", response_model=schemas.OrderRead, status_code=201)
def create_order_endpoint(order: schemas.OrderCreate, db: Session = Depends(get_db)):
    """创建内部订单"""
    return crud.create_order(db, order)


@router.get("/orders", response_model=List[schemas.OrderRead])
def list_orders_endpoint(
    workflow_state: Optional[WorkflowState] = None,
    department: Optional[Department] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
):
    return crud.list_orders(db, workflow=workflow_state, department=department, skip=skip, limit=limit)


@router.get("/orders/{order_id}", response_model=schemas.OrderRead)
def get_order_endpoint(order_id: int, db: Session = Depends(get_db)):
    return workflow.require_order(db, order_id)


@router.delete("/orders/{order_id}", status_code=204)
def delete_order_endpoint(order_id: int, db: Session = Depends(get_db)):
    """删除订单，仍有时间槽引用时返回 412"""
    crud.delete_order(db, order_id)
    return Response(status_code=204)


@router.get("/orders/{order_id}/timeslots", response_model=List[schemas.TimeSlotRead])
def list_order_time_slots(order_id: int, status: Optional[TimeSlotStatus] = None, db: Session = Depends(get_db)):
    """订单的时间槽，可按执行状态过滤"""
    workflow.require_order(db, order_id)
    return crud.list_order_time_slots(db, order_id, status=status)


@router.post("/orders/{order_id}/size", response_model=schemas.SizeTableRead)
def upsert_size_table(order_id: int, size_table: schemas.SizeTableCreate, db: Session = Depends(get_db)):
    return crud.upsert_size_table(db, order_id, size_table)


@router.post("/orders/{order_id}/assets", response_model=schemas.PrintAssetRead, status_code=201)
def add_print_asset(order_id: int, asset: schemas.PrintAssetCreate, db: Session = Depends(get_db)):
    return crud.add_print_asset(db, order_id, asset)


@router.post("/orders/{order_id}/submit", response_model=schemas.OrderRead)
def submit_order(order_id: int, db: Session = Depends(get_db)):
    """提交到生产（-> FUER_PROD）"""
    order = workflow.require_order(db, order_id)
    return workflow.submit(db, order)


@router.post("/orders/{order_id}/release-from-missing-parts", response_model=schemas.OrderRead)
def release_from_missing_parts(order_id: int, request: Optional[schemas.ReleaseRequest] = None,
                               db: Session = Depends(get_db)):
    """缺件到齐（WARTET_FEHLTEILE -> FUER_PROD）"""
    order = workflow.require_order(db, order_id)
    actor_id = request.actor_id if request else None
    return workflow.release_from_missing_parts(db, order, actor_id=actor_id)


@router.post("/orders/{order_id}/deliver", response_model=schemas.OrderRead)
def deliver_order(order_id: int, request: schemas.DeliverRequest, db: Session = Depends(get_db)):
    order = workflow.require_order(db, order_id)
    return workflow.deliver(db, order, delivered_at=request.delivered_at, qty=request.qty, note=request.note)


@router.post("/orders/{order_id}/settle", response_model=schemas.OrderRead)
def settle_order(order_id: int, request: schemas.SettleRequest, db: Session = Depends(get_db)):
    order = workflow.require_order(db, order_id)
    return workflow.settle(db, order, request.actor_id)


@router.get("/accounting/orders", response_model=List[schemas.OrderRead])
def list_accounting_orders(db: Session = Depends(get_db)):
    """待结算订单"""
    return crud.list_accounting_orders(db)
