"""Database operations and utilities.

This module provides retry logic for transient database failures.
"""

import logging
import time
from functools import wraps
from typing import Any, Callable, TypeVar, cast

from sqlalchemy.exc import OperationalError

from .db_core import DatabaseError

logger = logging.getLogger(__name__)

# Type variable for generic return type
T = TypeVar('T')

def with_retry(
    max_attempts: int = 3,
    delay: float = 0.1,
    backoff: float = 2,
    exceptions: tuple = (OperationalError,)
) -> Callable:
    """
    Decorator that implements retry logic for database operations.

    The wrapped function blocks while sleeping between attempts, so it
    should run in a worker thread when called from async code.

    Args:
        max_attempts: Maximum number of retry attempts
        delay: Initial delay between retries in seconds
        backoff: Multiplier for delay between retries
        exceptions: Tuple of exceptions to catch and retry

    Example:
        @with_retry(max_attempts=3)
        def count_events(database: Database) -> int:
            with database.session() as session:
                return session.query(EventRecord).count()
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            last_exception = None
            current_delay = delay
            
            for attempt in range(max_attempts):
                try:
                    return cast(T, func(*args, **kwargs))
                except exceptions as e:
                    last_exception = e
                    if attempt + 1 == max_attempts:
                        logger.error(
                            f"Final attempt failed for {func.__name__}: {str(e)}"
                        )
                        raise
                    
                    logger.warning(
                        f"Attempt {attempt + 1}/{max_attempts} failed for "
                        f"{func.__name__}: {str(e)}. Retrying in {current_delay}s..."
                    )
                    
                    time.sleep(current_delay)
                    current_delay *= backoff
            
            # This should never happen due to the raise in the loop
            raise last_exception or DatabaseError("Unknown error in retry logic")
        
        return wrapper
    return decorator
