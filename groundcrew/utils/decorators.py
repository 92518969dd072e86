import asyncio
import functools
import logging
from typing import Any, Awaitable, Callable, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


def retry_with_backoff(
    retry_on: Tuple[Type[BaseException], ...],
    max_retries: int = 3,
    initial_delay: float = 1.0,
    exponential_base: float = 2.0,
    max_delay: float = 30.0
):
    """
    Retry an async infrastructure call with exponential backoff.

    Crew actions are never wrapped with this; a failed task write is
    surfaced to the crew member instead of being replayed.

    Args:
        retry_on: Exception types that trigger another attempt
        max_retries: Attempts after the first one
        initial_delay: Seconds to wait before the first retry
        exponential_base: Growth factor of the wait
        max_delay: Upper bound of a single wait
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        operation = func.__qualname__

        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except retry_on as e:
                    if attempt >= max_retries:
                        logger.error(
                            f"{operation} gave up after {attempt + 1} attempts",
                            extra={"operation": operation, "error": str(e)}
                        )
                        raise
                    delay = min(initial_delay * exponential_base ** attempt, max_delay)
                    attempt += 1
                    logger.warning(
                        f"{operation} failed, retry {attempt}/{max_retries} in {delay:.1f}s",
                        extra={"operation": operation, "error": str(e), "attempt": attempt}
                    )
                    await asyncio.sleep(delay)

        return wrapper
    return decorator
