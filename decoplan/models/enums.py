"""枚举类型定义

订单、工位和时间槽共用的封闭枚举，ORM、Pydantic 模型与状态转换表都引用这里
"""

from enum import Enum


class Department(str, Enum):
    TEAMSPORT = "TEAMSPORT"
    TEXTILVEREDELUNG = "TEXTILVEREDELUNG"
    STICKEREI = "STICKEREI"
    DRUCK = "DRUCK"
    SONSTIGES = "SONSTIGES"


class OrderSource(str, Enum):
    JTL = "JTL"
    INTERNAL = "INTERNAL"


class WorkflowState(str, Enum):
    """订单业务流程状态"""
    ENTWURF = "ENTWURF"
    NEU = "NEU"
    PRUEFUNG = "PRUEFUNG"
    FUER_PROD = "FUER_PROD"
    IN_PROD = "IN_PROD"
    WARTET_FEHLTEILE = "WARTET_FEHLTEILE"
    FERTIG = "FERTIG"
    ZUR_ABRECHNUNG = "ZUR_ABRECHNUNG"
    ABGERECHNET = "ABGERECHNET"


class QCState(str, Enum):
    """质检结果：IO=合格，NIO=不合格，UNGEPRUEFT=未检验"""
    IO = "IO"
    NIO = "NIO"
    UNGEPRUEFT = "UNGEPRUEFT"

    @classmethod
    def _missing_(cls, value):
        # 兼容车间终端提交的 OK / NOK 写法
        aliases = {"OK": cls.IO, "NOK": cls.NIO, "NOT_OK": cls.NIO, "FAIL": cls.NIO}
        if isinstance(value, str):
            return aliases.get(value.upper())
        return None


class TimeSlotStatus(str, Enum):
    """时间槽执行状态"""
    PLANNED = "PLANNED"
    RUNNING = "RUNNING"
    PAUSED = "PAUSED"
    DONE = "DONE"
    BLOCKED = "BLOCKED"
