"""时间槽数据库模型

一条时间槽占用某工位某天的 [start_min, start_min + length_min) 区间，
order_id 为空时即为阻塞槽（维护等非生产占用）
"""

from sqlalchemy import Boolean, Column, Date, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..database.connection import Base
from .enums import QCState, TimeSlotStatus


class TimeSlot(Base):
    """时间槽表"""
    __tablename__ = "time_slots"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, nullable=False, index=True)
    start_min = Column(Integer, nullable=False)   # 自午夜起的分钟数
    length_min = Column(Integer, nullable=False)
    work_center_id = Column(Integer, ForeignKey("work_centers.id"), nullable=False, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=True, index=True)
    blocked = Column(Boolean, nullable=False, default=False)
    note = Column(Text, nullable=True)

    # 执行状态
    status = Column(Enum(TimeSlotStatus, native_enum=False), nullable=False, default=TimeSlotStatus.PLANNED)
    started_at = Column(DateTime, nullable=True)  # 当前运行段的开始时间
    stopped_at = Column(DateTime, nullable=True)
    elapsed_seconds = Column(Integer, nullable=False, default=0)  # 暂停/结束时累计的运行秒数
    actual_duration_min = Column(Integer, nullable=True)

    # 质检
    qc = Column(Enum(QCState, native_enum=False), nullable=True)
    qc_note = Column(Text, nullable=True)

    # 缺件
    missing_parts_note = Column(Text, nullable=True)
    missing_parts_reported_at = Column(DateTime, nullable=True)
    missing_parts_reported_by = Column(String(64), nullable=True)
    missing_parts_resolved_at = Column(DateTime, nullable=True)
    missing_parts_resolved_by = Column(String(64), nullable=True)

    created_at = Column(DateTime, server_default=func.now())

    work_center = relationship("WorkCenter", back_populates="time_slots")
    order = relationship("Order", back_populates="time_slots")

    @property
    def end_min(self):
        return self.start_min + self.length_min
