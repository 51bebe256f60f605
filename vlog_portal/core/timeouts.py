# vlog_portal/core/timeouts.py
import asyncio
import logging
from typing import Awaitable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Strong references to calls that lost the race and are still running
_background: set[asyncio.Future] = set()


def _discard(task: asyncio.Future) -> None:
    _background.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug("Late call failed after its deadline: %s", exc)


async def race(awaitable: Awaitable[T], timeout: float) -> T:
    """
    Wait for `awaitable` at most `timeout` seconds.

    The underlying call is not cancelled when the timer wins: it keeps
    running in the background and its outcome is dropped. Raises
    asyncio.TimeoutError on expiry.
    """
    task = asyncio.ensure_future(awaitable)
    try:
        return await asyncio.wait_for(asyncio.shield(task), timeout=timeout)
    except asyncio.TimeoutError:
        _background.add(task)
        task.add_done_callback(_discard)
        raise
