"""
Delayed callbacks for the session state machine.

The PIN lockout returns the terminal to profile selection after a fixed
delay. The handle returned here is kept by the session so a newer
interaction can cancel a reset that no longer applies.
"""

import asyncio
from typing import Callable, Optional

from .interfaces import ScheduledTask


class AsyncioScheduler:
    """Schedules callbacks on the running asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledTask:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)
