"""数据库模型模块

定义所有 SQLAlchemy ORM 模型
"""

from ..database.connection import Base
from .enums import Department, OrderSource, QCState, TimeSlotStatus, WorkflowState
from .order import Order, OrderSequence, PrintAsset, SizeTable
from .work_center import WorkCenter
from .time_slot import TimeSlot

__all__ = [
    "Base",
    "Department",
    "OrderSource",
    "QCState",
    "TimeSlotStatus",
    "WorkflowState",
    "Order",
    "OrderSequence",
    "PrintAsset",
    "SizeTable",
    "WorkCenter",
    "TimeSlot",
]
