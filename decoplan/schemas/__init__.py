from .order import (
    SizeTableCreate,
    SizeTableRead,
    PrintAssetCreate,
    PrintAssetRead,
    OrderCreate,
    OrderRead,
    ReleaseRequest,
    DeliverRequest,
    SettleRequest,
)
from .work_center import (
    WorkCenterCreate,
    WorkCenterUpdate,
    WorkCenterRead,
    CalendarDay,
)
from .time_slot import (
    TimeSlotCreate,
    TimeSlotUpdate,
    TimeSlotRead,
    BatchMutation,
    BatchRequest,
    BatchResponse,
    QCRequest,
    QCFailRequest,
    MissingPartsRequest,
)

__all__ = [
    # Order schemas
    "SizeTableCreate",
    "SizeTableRead",
    "PrintAssetCreate",
    "PrintAssetRead",
    "OrderCreate",
    "OrderRead",
    "ReleaseRequest",
    "DeliverRequest",
    "SettleRequest",

    # Work center schemas
    "WorkCenterCreate",
    "WorkCenterUpdate",
    "WorkCenterRead",
    "CalendarDay",

    # Time slot schemas
    "TimeSlotCreate",
    "TimeSlotUpdate",
    "TimeSlotRead",
    "BatchMutation",
    "BatchRequest",
    "BatchResponse",
    "QCRequest",
    "QCFailRequest",
    "MissingPartsRequest",
]
