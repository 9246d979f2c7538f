"""
Delayed-call scheduling used by the auto-conversation loop.

The engine only needs ``call_later(delay, callback, *args)`` returning a handle
with ``cancel()``; the asyncio event loop already satisfies that, so the
default scheduler just forwards to the running loop. Tests swap in a manual
clock instead of real timers.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle: ...


class LoopScheduler:
    """Schedules on an asyncio loop (the running one unless given)."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> asyncio.TimerHandle:
        return self.loop.call_later(max(0.0, delay), callback, *args)
