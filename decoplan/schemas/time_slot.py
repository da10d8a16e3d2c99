"""时间槽数据结构定义

定义时间槽、批量操作以及执行/质检/缺件请求的 Pydantic 模型
"""

from pydantic import BaseModel, Field, field_validator
from typing import List, Literal, Optional
from datetime import date as date_type, datetime

from ..models.enums import QCState, TimeSlotStatus


class TimeSlotCreate(BaseModel):
    """创建时间槽；不带 order_id 即为阻塞槽"""
    work_center_id: int
    date: date_type
    start_min: int
    length_min: int
    order_id: Optional[int] = None
    blocked: Optional[bool] = None
    note: Optional[str] = None


class TimeSlotUpdate(BaseModel):
    """移动/调整时间槽，只需提供要修改的字段"""
    work_center_id: Optional[int] = None
    date: Optional[date_type] = None
    start_min: Optional[int] = None
    length_min: Optional[int] = None
    note: Optional[str] = None


class TimeSlotRead(BaseModel):
    """读取时间槽时的模型"""
    id: int
    date: date_type
    start_min: int
    length_min: int
    end_min: int
    work_center_id: int
    order_id: Optional[int] = None
    blocked: bool
    note: Optional[str] = None
    status: TimeSlotStatus
    started_at: Optional[datetime] = None
    stopped_at: Optional[datetime] = None
    elapsed_seconds: int = 0
    actual_duration_min: Optional[int] = None
    qc: Optional[QCState] = None
    qc_note: Optional[str] = None
    missing_parts_note: Optional[str] = None
    missing_parts_reported_at: Optional[datetime] = None
    missing_parts_reported_by: Optional[str] = None
    missing_parts_resolved_at: Optional[datetime] = None
    missing_parts_resolved_by: Optional[str] = None

    class Config:
        from_attributes = True


class BatchMutation(BaseModel):
    """批量操作中的一条变更"""
    op: Literal["create", "update", "delete"]
    slot_id: Optional[int] = None
    work_center_id: Optional[int] = None
    date: Optional[date_type] = None
    start_min: Optional[int] = None
    length_min: Optional[int] = None
    order_id: Optional[int] = None
    blocked: Optional[bool] = None
    note: Optional[str] = None


class BatchRequest(BaseModel):
    operations: List[BatchMutation] = Field(min_length=1)


class BatchResponse(BaseModel):
    created: List[TimeSlotRead]
    updated: List[TimeSlotRead]
    deleted: List[int]


class QCRequest(BaseModel):
    """质检结果，接受 IO/NIO/UNGEPRUEFT 以及 OK/NOK 写法"""
    outcome: str
    note: Optional[str] = None

    @field_validator("outcome")
    @classmethod
    def normalize_outcome(cls, v):
        return QCState(v).value


class QCFailRequest(BaseModel):
    note: str = Field(min_length=1)


class MissingPartsRequest(BaseModel):
    """缺件登记"""
    note: str
    update_order_workflow: bool = False
    actor_id: Optional[str] = None
