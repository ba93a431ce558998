"""
Base service class.

Session-bound services report expected outcomes (already attributed, not
configured, not found) as a ServiceResult instead of raising. Record store
errors either become a "store_error" result at the call site or propagate
through @transaction after a rollback.
"""

import functools
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession


T = TypeVar("T")


@dataclass
class ServiceResult:
    """Outcome of a service call."""

    success: bool
    data: Any = None
    error: str | None = None
    error_code: str | None = None

    @classmethod
    def ok(cls, data: Any = None) -> "ServiceResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error_code: str, error: str) -> "ServiceResult":
        return cls(success=False, error=error, error_code=error_code)


class BaseService:
    """
    Base class for services working on one database session.

    The session is owned by the caller; services only commit or roll back.
    """

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize base service.

        Args:
            session: Async database session
        """
        self.session = session
        self.logger = logger.bind(service=type(self).__name__)

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()


def transaction(
    func: Callable[..., Awaitable[T]],
) -> Callable[..., Awaitable[T]]:
    """
    Run a service method as one unit of work.

    Commits when the method returns a successful result, rolls back when it
    returns a failed ServiceResult, and rolls back then re-raises on error.
    """

    @functools.wraps(func)
    async def wrapper(self: BaseService, *args: Any, **kwargs: Any) -> T:
        try:
            result = await func(self, *args, **kwargs)
            if isinstance(result, ServiceResult) and not result.success:
                await self.rollback()
            else:
                await self.commit()
            return result
        except Exception as e:
            await self.rollback()
            self.logger.error(f"{func.__name__} rolled back: {e}")
            raise

    return wrapper


def log_operation(
    func: Callable[..., Awaitable[T]],
) -> Callable[..., Awaitable[T]]:
    """
    Log start, finish and duration of a long-running service method.

    The first positional argument (a month key, an invitee id) is used as
    the operation label.
    """

    @functools.wraps(func)
    async def wrapper(self: BaseService, *args: Any, **kwargs: Any) -> T:
        label = f"{func.__name__}({args[0]})" if args else func.__name__
        started = time.perf_counter()
        self.logger.info(f"{label} started")

        try:
            result = await func(self, *args, **kwargs)
        except Exception as e:
            self.logger.error(
                f"{label} failed after {time.perf_counter() - started:.2f}s: {e}"
            )
            raise

        self.logger.info(
            f"{label} finished in {time.perf_counter() - started:.2f}s"
        )
        return result

    return wrapper
