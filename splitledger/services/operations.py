"""
Result boundary for public ledger operations.

Service methods are written in plain raise-on-failure style. The
ledger_operation decorator turns them into Result-returning operations:

    LedgerError            -> Result.failure(error.kind, message)
    storage NotFoundError  -> Result.failure(NOT_FOUND, message)
    StorageError           -> Result.failure(STORE, message)
    return value           -> Result.success(value)

Nothing is retried here. Callers decide whether a store_error is worth
another attempt.
"""

import functools
import inspect

import structlog

from splitledger.errors import ErrorKind, LedgerError
from splitledger.models.result import Result
from splitledger.services.storage import NotFoundError, StorageError


logger = structlog.get_logger(__name__)


def ledger_operation(name: str):
    """Wrap an async service method so it returns a Result."""

    def decorator(func):
        signature = inspect.signature(func)

        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs) -> Result:
            try:
                value = await func(self, *args, **kwargs)
            except LedgerError as e:
                logger.info("operation_rejected", operation=name, kind=e.kind.value, reason=e.message)
                audit = getattr(self, "_audit_logger", None)
                if audit:
                    bound = signature.bind_partial(self, *args, **kwargs).arguments
                    principal = bound.get("principal") or bound.get("creator")
                    await audit.log_operation_rejected(
                        operation=name,
                        kind=e.kind.value,
                        message=e.message,
                        group_id=bound.get("group_id"),
                        actor_id=getattr(principal, "id", None),
                    )
                return Result.from_error(e)
            except NotFoundError as e:
                logger.warning("operation_target_missing", operation=name, error=str(e))
                return Result.failure(ErrorKind.NOT_FOUND, str(e))
            except StorageError as e:
                logger.error("operation_store_failed", operation=name, error=str(e))
                return Result.failure(ErrorKind.STORE, f"Storage failure during {name}: {e}")
            return Result.success(value)

        return wrapper

    return decorator
