"""订单数据结构定义

定义订单、尺码表、印刷文件以及流程操作请求的 Pydantic 模型
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import datetime
from decimal import Decimal

from ..models.enums import Department, OrderSource, QCState, WorkflowState


class SizeTableBase(BaseModel):
    """尺码表基础模型"""
    scheme: str
    rows: List[Dict[str, Any]]
    comment: Optional[str] = None


class SizeTableCreate(SizeTableBase):
    pass


class SizeTableRead(SizeTableBase):
    id: int
    order_id: int

    class Config:
        from_attributes = True


class PrintAssetBase(BaseModel):
    label: str
    url: str
    required: bool = True


class PrintAssetCreate(PrintAssetBase):
    pass


class PrintAssetRead(PrintAssetBase):
    id: int
    order_id: int

    class Config:
        from_attributes = True


class OrderBase(BaseModel):
    """订单基础模型"""
    title: str
    customer: str
    department: Department
    due_date: Optional[datetime] = None
    notes: Optional[str] = None
    location: Optional[str] = None


class OrderCreate(OrderBase):
    """创建内部订单时的模型，编号和流程状态由服务端生成"""
    pass


class OrderRead(OrderBase):
    """读取订单时的模型"""
    id: int
    display_order_number: Optional[str] = None
    ext_id: Optional[str] = None
    source: OrderSource
    workflow: WorkflowState
    qc: QCState
    total_net: Optional[Decimal] = None
    total_vat: Optional[Decimal] = None
    total_gross: Optional[Decimal] = None
    delivered_at: Optional[datetime] = None
    delivered_qty: Optional[int] = None
    delivery_note: Optional[str] = None
    settled_at: Optional[datetime] = None
    settled_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    size_table: Optional[SizeTableRead] = None
    print_assets: List[PrintAssetRead] = []

    class Config:
        from_attributes = True


class ReleaseRequest(BaseModel):
    actor_id: Optional[str] = None


class DeliverRequest(BaseModel):
    """交付登记"""
    delivered_at: Optional[datetime] = None
    qty: Optional[int] = Field(default=None, ge=0)
    note: Optional[str] = None


class SettleRequest(BaseModel):
    actor_id: str = Field(min_length=1)
