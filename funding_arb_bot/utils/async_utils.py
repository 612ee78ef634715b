"""
Async utilities adapted from Hummingbot.
Attribution: Based on Hummingbot's async utilities (Apache 2.0)
"""

import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

T = TypeVar("T")


class CallTimeoutError(asyncio.TimeoutError):
    """A bounded venue or collaborator call did not answer in time"""

    def __init__(self, label: str, timeout: float):
        super().__init__(f"{label} timed out after {timeout:g}s")
        self.label = label
        self.timeout = timeout


async def call_with_timeout(awaitable: Awaitable[T], timeout: Optional[float], label: str) -> T:
    """
    Await ``awaitable`` with its own deadline.

    A ``None`` or non-positive timeout awaits without a deadline.
    """
    if timeout is None or timeout <= 0:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError:
        logging.getLogger(__name__).warning(f"⏱️ {label} timed out after {timeout:g}s")
        raise CallTimeoutError(label, timeout) from None
