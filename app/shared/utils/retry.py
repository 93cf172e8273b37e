"""
Retry utilities for handling transient failures
"""
import asyncio
import random
from typing import Any, Callable, List, Optional

from app.shared.utils.logger import get_logger

logger = get_logger(__name__)


class RetryConfig:
    """Configuration for retry behavior"""

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 0.5,
        max_delay: float = 10.0,
        exponential_base: float = 2.0,
        jitter: bool = True,
        retryable_exceptions: Optional[List[type]] = None,
    ):
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter
        self.retryable_exceptions = tuple(retryable_exceptions or [Exception])


def calculate_delay(attempt: int, config: RetryConfig) -> float:
    """Exponential backoff, capped, with optional jitter"""
    delay = config.base_delay * (config.exponential_base ** (attempt - 1))
    delay = min(delay, config.max_delay)
    if config.jitter:
        delay *= 0.5 + random.random() * 0.5
    return delay


async def retry_async(func: Callable, config: RetryConfig, *args, **kwargs) -> Any:
    """Await func(*args, **kwargs), retrying only on the configured exception types"""
    for attempt in range(1, config.max_attempts + 1):
        try:
            return await func(*args, **kwargs)
        except config.retryable_exceptions as e:
            if attempt == config.max_attempts:
                logger.error(
                    f"Max retry attempts ({config.max_attempts}) reached for {func.__name__}"
                )
                raise
            delay = calculate_delay(attempt, config)
            logger.warning(
                f"Attempt {attempt}/{config.max_attempts} failed for {func.__name__}: {e}. "
                f"Retrying in {delay:.2f}s"
            )
            await asyncio.sleep(delay)
