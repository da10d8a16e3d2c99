"""工位数据结构定义

定义工位以及日历负荷视图的 Pydantic 模型
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import date as date_type

from ..models.enums import Department


class WorkCenterBase(BaseModel):
    """工位基础模型"""
    name: str
    department: Department
    capacity_min: int = Field(default=660, ge=0)
    concurrent_capacity: int = Field(default=2, ge=1)
    active: bool = True


class WorkCenterCreate(WorkCenterBase):
    """创建工位时的模型"""
    pass


class WorkCenterUpdate(BaseModel):
    """更新工位时的模型"""
    name: Optional[str] = None
    department: Optional[Department] = None
    capacity_min: Optional[int] = Field(default=None, ge=0)
    concurrent_capacity: Optional[int] = Field(default=None, ge=1)
    active: Optional[bool] = None


class WorkCenterRead(WorkCenterBase):
    """读取工位时的模型"""
    id: int

    class Config:
        from_attributes = True


class CalendarDay(BaseModel):
    """某工位某天的负荷"""
    work_center_id: int
    work_center_name: str
    department: Department
    date: date_type
    slot_count: int
    used_minutes: int
    capacity_min: int
    utilization: float
    peak_concurrency: int
    concurrent_capacity: int
