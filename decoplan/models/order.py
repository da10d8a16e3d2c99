"""订单模型定义

订单本身、尺码表、印刷文件以及按年份递增的订单编号序列
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..database.connection import Base
from .enums import Department, OrderSource, QCState, WorkflowState


class Order(Base):
    """订单模型"""
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    # 内部订单显示编号，格式 INT-<year>-<n>
    display_order_number = Column(String(32), unique=True, nullable=True)
    # JTL 导入订单的外部编号
    ext_id = Column(String(64), unique=True, nullable=True)
    source = Column(Enum(OrderSource, native_enum=False), nullable=False, default=OrderSource.INTERNAL)
    department = Column(Enum(Department, native_enum=False), nullable=False)
    title = Column(String(255), nullable=False)
    customer = Column(String(255), nullable=False)
    due_date = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
    location = Column(String(255), nullable=True)
    workflow = Column(Enum(WorkflowState, native_enum=False), nullable=False, default=WorkflowState.NEU)
    qc = Column(Enum(QCState, native_enum=False), nullable=False, default=QCState.UNGEPRUEFT)

    # 金额由财务模块汇总写入，排程不计算
    total_net = Column(Numeric(12, 2), nullable=True)
    total_vat = Column(Numeric(12, 2), nullable=True)
    total_gross = Column(Numeric(12, 2), nullable=True)

    # 交付与结算
    delivered_at = Column(DateTime, nullable=True)
    delivered_qty = Column(Integer, nullable=True)
    delivery_note = Column(Text, nullable=True)
    settled_at = Column(DateTime, nullable=True)
    settled_by = Column(String(64), nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    size_table = relationship("SizeTable", back_populates="order", uselist=False, cascade="all, delete-orphan")
    print_assets = relationship("PrintAsset", back_populates="order", cascade="all, delete-orphan")
    time_slots = relationship("TimeSlot", back_populates="order")


class SizeTable(Base):
    """尺码表（每个订单最多一张）"""
    __tablename__ = "size_tables"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), unique=True, nullable=False)
    scheme = Column(String(64), nullable=False)
    # [{"size": "M", "qty": 3, "name": ..., "number": ...}, ...]
    rows = Column(JSON, nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    order = relationship("Order", back_populates="size_table")


class PrintAsset(Base):
    """印刷文件"""
    __tablename__ = "print_assets"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False)
    label = Column(String(255), nullable=False)
    url = Column(String(1024), nullable=False)
    required = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, server_default=func.now())

    order = relationship("Order", back_populates="print_assets")


class OrderSequence(Base):
    """按年份的订单编号计数器，current 为最近一次发放的编号"""
    __tablename__ = "order_sequences"

    id = Column(Integer, primary_key=True, index=True)
    year = Column(Integer, unique=True, nullable=False)
    current = Column(Integer, nullable=False)
