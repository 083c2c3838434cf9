"""
统一的异常定义
Unified Exception Definitions

作者: mrkingu
日期: 2025-06-20
描述: 阵容与战斗预估模块的统一异常体系，每个可预期的失败都携带稳定的字符串错误码
"""
from typing import Any, Optional


class ErrorCode:
    """统一错误码"""

    # 参数/校验错误
    INVALID_NAME = "INVALID_NAME"
    INVALID_FORMATION = "INVALID_FORMATION"
    INVALID_DIFFICULTY = "INVALID_DIFFICULTY"
    INVALID_STAGE = "INVALID_STAGE"

    # 容量错误
    MAX_FORMATIONS_REACHED = "MAX_FORMATIONS_REACHED"

    # 冲突错误
    DUPLICATE_NAME = "DUPLICATE_NAME"

    # 资源不存在
    PLAYER_NOT_FOUND = "PLAYER_NOT_FOUND"
    FORMATION_NOT_FOUND = "FORMATION_NOT_FOUND"
    NO_ACTIVE_FORMATION = "NO_ACTIVE_FORMATION"
    OPPONENT_NOT_FOUND = "OPPONENT_NOT_FOUND"

    # 状态错误
    EMPTY_FORMATION = "EMPTY_FORMATION"
    CANNOT_DELETE_ACTIVE = "CANNOT_DELETE_ACTIVE"


class GameException(Exception):
    """游戏异常基类"""

    status = 500

    def __init__(self, code: str, message: str, data: Any = None, validation: Any = None):
        self.code = code
        self.message = message
        self.data = data
        # 附带的校验结果，转换为失败结果时原样返回
        self.validation = validation
        super().__init__(message)

    def to_dict(self) -> dict:
        """转换为字典格式"""
        result = {
            "code": self.code,
            "status": self.status,
            "message": self.message,
        }
        if self.data is not None:
            result["data"] = self.data
        return result


class ValidationError(GameException):
    """参数验证错误：位置非法、位置/英雄重复、英雄不属于玩家、名称非法"""

    status = 400

    def __init__(self, code: str, message: str, data: Any = None, validation: Any = None):
        super().__init__(code=code, message=message, data=data, validation=validation)


class CapacityError(GameException):
    """容量错误：阵容数量已达上限"""

    status = 429

    def __init__(self, message: str, limit: int, current: int, validation: Any = None):
        super().__init__(
            code=ErrorCode.MAX_FORMATIONS_REACHED,
            message=message,
            data={"limit": limit, "current": current},
            validation=validation
        )


class ConflictError(GameException):
    """资源冲突错误"""

    status = 409

    def __init__(self, code: str, message: str, data: Any = None):
        super().__init__(code=code, message=message, data=data)


class NotFoundError(GameException):
    """资源不存在"""

    status = 404

    def __init__(self, code: str, resource: str, resource_id: Optional[str] = None):
        message = f"{resource} not found"
        data = None
        if resource_id is not None:
            message = f"{message}: {resource_id}"
            data = {"resource": resource, "resource_id": resource_id}
        super().__init__(code=code, message=message, data=data)


class StateError(GameException):
    """状态错误：非法的状态迁移"""

    status = 409

    def __init__(self, code: str, message: str, data: Any = None):
        super().__init__(code=code, message=message, data=data)


__all__ = [
    "ErrorCode",
    "GameException",
    "ValidationError",
    "CapacityError",
    "ConflictError",
    "NotFoundError",
    "StateError",
]
