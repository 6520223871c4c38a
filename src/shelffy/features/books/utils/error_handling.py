"""Error handling utilities for the books feature.

Repositories log driver failures with operation and key and raise
``DatabaseError``. Service operations are wrapped by
``book_error_handler`` so that only NotFound, validation and opaque internal
errors cross the service boundary.
"""

import functools
import logging
from typing import Any, Callable, Dict, NoReturn, Optional

from ....core.exceptions import (
    DatabaseError,
    InternalError,
    ResourceNotFoundError,
    ShelffyError,
    ValidationError,
)


logger = logging.getLogger(__name__)


def handle_book_repository_error(
    operation: str,
    key: Optional[Any],
    error: Exception,
    context: Optional[Dict[str, Any]] = None
) -> NoReturn:
    """Log a repository failure and re-raise it as a shelffy exception.
    
    Args:
        operation: Repository operation (e.g. 'create', 'get_by_id')
        key: Identifying key (book id, owner id, path)
        error: Original exception
        context: Additional context for logging
    
    Raises:
        The original error if it is already a ShelffyError, DatabaseError otherwise
    """
    if isinstance(error, ShelffyError):
        raise error
    
    key_str = str(key) if key is not None else "unknown"
    logger.error(
        f"Book repository {operation} failed for {key_str}: {error}",
        extra={
            "operation": operation,
            "key": key_str,
            "error_type": type(error).__name__,
            "context": context or {},
        },
    )
    raise DatabaseError(
        f"Database error during {operation}: {error}",
        details={"operation": operation, "key": key_str}
    ) from error


def book_error_handler(operation_name: str):
    """Decorator translating failures of a book service operation.
    
    NotFound errors, ``ValidationError`` for rejected caller input and
    ``InternalError`` pass through unchanged; anything else is logged with
    the operation context and re-raised as an opaque ``InternalError`` with
    the original chained.
    
    Usage:
        @book_error_handler("delete book")
        async def delete(self, book_id):
            ...
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            try:
                return await func(*args, **kwargs)
            except ResourceNotFoundError as e:
                logger.info(f"{operation_name}: {e.message}", extra={"details": e.details})
                raise
            except ValidationError as e:
                logger.info(f"{operation_name} rejected: {e.message}", extra={"details": e.details})
                raise
            except InternalError:
                raise
            except Exception as e:
                logger.error(
                    f"{operation_name} failed: {e}",
                    extra={
                        "operation": operation_name,
                        "function": func.__name__,
                        "error_type": type(e).__name__,
                    },
                    exc_info=True,
                )
                raise InternalError() from e
        return wrapper
    return decorator
