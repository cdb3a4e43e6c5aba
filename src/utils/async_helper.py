"""
Async Helper - Fire-and-forget task scheduling for qasync

Background coroutines started from Qt slots have nobody awaiting them, so any
exception they raise would only surface as "Task exception was never
retrieved". This module schedules them with a done-callback that logs the
failure instead.
"""

import asyncio
import logging
from typing import Any, Coroutine, Optional, Set

logger = logging.getLogger(__name__)

# Strong references so scheduled tasks are not garbage collected mid-flight
_background_tasks: Set[asyncio.Task] = set()


def _on_task_done(task: asyncio.Task):
    _background_tasks.discard(task)
    if task.cancelled():
        logger.debug(f"Task cancelled: {task.get_name()}")
        return
    exc = task.exception()
    if exc is not None:
        logger.error(f"Background task {task.get_name()} failed: {exc!r}", exc_info=exc)


def safe_ensure_future(coro: Coroutine[Any, Any, Any], name: Optional[str] = None) -> Optional[asyncio.Task]:
    """
    Schedule an async coroutine on the running loop

    Args:
        coro: Coroutine to schedule
        name: Optional task name used in log messages

    Returns:
        Task if scheduled successfully, None otherwise
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError as e:
        logger.error(f"Failed to schedule task: {e}")
        coro.close()
        return None

    task = loop.create_task(coro)

    if name:
        task.set_name(name)
    _background_tasks.add(task)
    task.add_done_callback(_on_task_done)
    return task
