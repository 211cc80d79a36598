"""
Base service class.

Provides common functionality for all service classes: access to the
ledger store, a logger bound to the service name and an operation
logging decorator.
"""

import functools
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from loguru import logger

from earnhub.services.ledger.store import LedgerStore, LedgerTransaction


# Type variable for generic decorator return types
T = TypeVar("T")


class BaseService:
    """
    Base service class.

    Services never hold a session themselves. Every unit of work runs in
    its own ledger transaction through self.ledger.run().
    """

    def __init__(self, ledger: LedgerStore) -> None:
        """
        Initialize base service.

        Args:
            ledger: Ledger store
        """
        self.ledger = ledger
        self.logger = logger.bind(service=self.__class__.__name__)

    async def run(
        self, fn: Callable[[LedgerTransaction], Awaitable[T]]
    ) -> T:
        """Run fn in a ledger transaction with conflict retry."""
        return await self.ledger.run(fn)


def log_operation(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
    """
    Decorator to log method entry/exit with timing.

    Usage:
        @log_operation
        async def approve_deposit(self, deposit_id: int):
            ...

    Args:
        func: Async method to wrap

    Returns:
        Wrapped async method
    """
    @functools.wraps(func)
    async def wrapper(self: BaseService, *args: Any, **kwargs: Any) -> T:
        start_time = time.time()

        self.logger.debug(
            f"Starting {func.__name__}",
            extra={
                "function": func.__name__,
                "args_count": len(args),
                "kwargs_keys": list(kwargs.keys()),
            },
        )

        try:
            result = await func(self, *args, **kwargs)
        except Exception as e:
            duration = time.time() - start_time
            self.logger.warning(
                f"Failed {func.__name__}",
                extra={
                    "function": func.__name__,
                    "duration_seconds": round(duration, 3),
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )
            raise

        duration = time.time() - start_time
        self.logger.info(
            f"Completed {func.__name__}",
            extra={
                "function": func.__name__,
                "duration_seconds": round(duration, 3),
            },
        )
        return result

    return wrapper
