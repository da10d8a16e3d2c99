"""排程领域异常

所有排程、流程和执行状态相关的错误都从 SchedulingError 派生，
由 main.py 中注册的异常处理器统一转换为 HTTP 响应。
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorType(str, Enum):
    NOT_FOUND = "not_found"
    PRECONDITION_FAILED = "precondition_failed"
    CONFLICT = "conflict"
    INVALID_RANGE = "invalid_range"
    INVALID_TRANSITION = "invalid_transition"


class SchedulingError(Exception):
    """排程错误基类"""

    error_type: ErrorType = ErrorType.PRECONDITION_FAILED
    status_code: int = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.error_type.value,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(SchedulingError):
    """引用的订单、工位或时间槽不存在"""
    error_type = ErrorType.NOT_FOUND
    status_code = 404

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} not found", {"entity": entity, "id": entity_id})
        self.entity = entity
        self.entity_id = entity_id


class PreconditionFailedError(SchedulingError):
    """流程状态、部门或必需资料不满足"""
    error_type = ErrorType.PRECONDITION_FAILED
    status_code = 412


class ConflictError(SchedulingError):
    """工位并发容量被超出"""
    error_type = ErrorType.CONFLICT
    status_code = 409


class InvalidRangeError(SchedulingError):
    """超出工作时间或不在 15 分钟网格上"""
    error_type = ErrorType.INVALID_RANGE
    status_code = 422


class InvalidTransitionError(SchedulingError):
    """非法的时间槽执行状态转换"""
    error_type = ErrorType.INVALID_TRANSITION
    status_code = 409

    def __init__(self, action: str, current_status: Any, target_status: Any = None, message: Optional[str] = None):
        current = getattr(current_status, "value", current_status)
        target = getattr(target_status, "value", target_status)
        if message is None:
            if target:
                message = f"Cannot {action} time slot: transition {current} -> {target} is not allowed"
            else:
                message = f"Cannot {action} time slot in status {current}"
        super().__init__(message, {"action": action, "current_status": current, "target_status": target})
        self.action = action
        self.current_status = current
        self.target_status = target


class BatchOperationError(SchedulingError):
    """批量操作中某个成员失败，整批回滚"""

    def __init__(self, index: int, operation: str, cause: SchedulingError):
        super().__init__(
            f"Batch member #{index} ({operation}) failed: {cause.message}",
            {"index": index, "operation": operation, "rule": cause.error_type.value, "cause": cause.to_dict()},
        )
        self.index = index
        self.operation = operation
        self.cause = cause
        self.error_type = cause.error_type
        self.status_code = cause.status_code
