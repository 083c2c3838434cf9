"""
统一错误处理工具
作者: lx
日期: 2025-06-20
描述: 业务层抛出的 GameException 转换为失败结果，其他异常记录后继续向上抛出
"""
import asyncio
import logging
from functools import wraps
from typing import Any, Callable, Dict, Optional, TypeVar

from common.exceptions import GameException

R = TypeVar("R")


class ErrorHandler:
    """统一错误处理器"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def handle_error(
        self,
        error: Exception,
        failure_factory: Callable[[GameException], R],
        context: Optional[Dict[str, Any]] = None
    ) -> R:
        """
        处理错误

        Args:
            error: 异常对象
            failure_factory: 将业务异常转换为失败结果的工厂
            context: 上下文信息

        Returns:
            业务异常对应的失败结果

        Raises:
            非业务异常原样抛出
        """
        context = context or {}

        if isinstance(error, GameException):
            self.logger.info(
                f"业务操作被拒绝: {context.get('function')} code={error.code} message={error.message}"
            )
            return failure_factory(error)

        self.logger.error(
            f"Error occurred: {type(error).__name__} - {error}",
            exc_info=error,
            extra={"error_context": context}
        )
        raise error


def service_result(failure_factory: Callable[[GameException], R]):
    """
    服务结果装饰器

    被装饰的方法正常返回结果对象，抛出 GameException 时转换为失败结果

    Args:
        failure_factory: 失败结果工厂，如 FormationResult.failure
    """
    def decorator(func: Callable) -> Callable:
        handler = ErrorHandler(logging.getLogger(func.__module__))

        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                return handler.handle_error(e, failure_factory, {"function": func.__qualname__})

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                return handler.handle_error(e, failure_factory, {"function": func.__qualname__})

        # 检查是否是异步函数
        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


__all__ = ["ErrorHandler", "service_result"]
