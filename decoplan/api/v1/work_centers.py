"""工位API路由

工位的增删改查以及日历负荷视图
"""

from datetime import date as date_type
from typing import List, Optional

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ... import crud, schemas
from ...core.exceptions import InvalidRangeError
from ...core.scheduler import require_work_center
from ...database.connection import get_db
from ...models.enums import Department

router = APIRouter(tags=["workcenters"])

# 日历视图一次最多查询的天数
MAX_CALENDAR_DAYS = 62


@router.post("/workcenters", response_model=schemas.WorkCenterRead, status_code=201)
def create_work_center(work_center: schemas.WorkCenterCreate, db: Session = Depends(get_db)):
    """创建工位"""
    return crud.create_work_center(db, work_center)


@router.get("/workcenters", response_model=List[schemas.WorkCenterRead])
def list_work_centers(department: Optional[Department] = None, active: Optional[bool] = None,
                      db: Session = Depends(get_db)):
    return crud.list_work_centers(db, department=department, active=active)


@router.get("/workcenters/{work_center_id}", response_model=schemas.WorkCenterRead)
def get_work_center(work_center_id: int, db: Session = Depends(get_db)):
    return require_work_center(db, work_center_id)


@router.patch("/workcenters/{work_center_id}", response_model=schemas.WorkCenterRead)
def update_work_center(work_center_id: int, work_center_update: schemas.WorkCenterUpdate,
                       db: Session = Depends(get_db)):
    """更新工位，把并发容量降到已排峰值以下时返回 409"""
    return crud.update_work_center(db, work_center_id, work_center_update)


@router.delete("/workcenters/{work_center_id}", status_code=204)
def delete_work_center(work_center_id: int, db: Session = Depends(get_db)):
    """删除工位，今天及以后仍有时间槽时返回 412"""
    crud.delete_work_center(db, work_center_id)
    return Response(status_code=204)


@router.get("/calendar", response_model=List[schemas.CalendarDay])
def get_calendar(date_from: date_type, date_to: date_type, department: Optional[Department] = None,
                 db: Session = Depends(get_db)):
    """每个工位每天的计划分钟数、利用率和峰值并发"""
    if date_to < date_from or (date_to - date_from).days >= MAX_CALENDAR_DAYS:
        raise InvalidRangeError(
            f"date_to must not be before date_from and the range is limited to {MAX_CALENDAR_DAYS} days",
            {"date_from": date_from.isoformat(), "date_to": date_to.isoformat()},
        )
    return crud.calendar(db, date_from, date_to, department=department)
