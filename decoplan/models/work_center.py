"""工位数据库模型

定义生产工位（物理工作站）及其并发容量
"""

from sqlalchemy import Boolean, CheckConstraint, Column, Enum, Integer, String
from sqlalchemy.orm import relationship
from ..database.connection import Base
from .enums import Department


class WorkCenter(Base):
    """工位表"""
    __tablename__ = "work_centers"
    __table_args__ = (
        CheckConstraint("concurrent_capacity >= 1", name="ck_work_centers_concurrent_capacity"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)  # 工位名称
    department = Column(Enum(Department, native_enum=False), nullable=False)  # 所属部门
    capacity_min = Column(Integer, nullable=False, default=660)  # 每日计划分钟数，仅用于负荷展示
    concurrent_capacity = Column(Integer, nullable=False, default=2)  # 同一时刻可并行的时间槽数
    active = Column(Boolean, nullable=False, default=True)

    time_slots = relationship("TimeSlot", back_populates="work_center")
