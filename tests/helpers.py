"""Test doubles for the auto-conversation engine."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from boardroom.agents import Utterance, UtteranceRequest
from boardroom.manager import AutoConversationEngine
from boardroom.states import ConversationTurn, EngineState


class FakeHandle:
    def __init__(self, when: float, seq: int, callback: Callable[..., Any], args: tuple) -> None:
        self.when = when
        self.seq = seq
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Manual clock: timers only fire when the test advances time."""

    def __init__(self) -> None:
        self.now = 0.0
        self._seq = 0
        self._handles: List[FakeHandle] = []

    def time(self) -> float:
        return self.now

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> FakeHandle:
        handle = FakeHandle(self.now + max(0.0, delay), self._seq, callback, args)
        self._seq += 1
        self._handles.append(handle)
        return handle

    @property
    def pending(self) -> List[FakeHandle]:
        return [h for h in self._handles if not h.cancelled]

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = sorted((h for h in self.pending if h.when <= target), key=lambda h: (h.when, h.seq))
            if not due:
                break
            handle = due[0]
            self._handles.remove(handle)
            self.now = max(self.now, handle.when)
            handle.callback(*handle.args)
        self.now = target


class ScriptedGenerator:
    """Stands in for PersonaResponder; records requests and can block or fail."""

    def __init__(self, replies: Optional[List[str]] = None) -> None:
        self.requests: List[UtteranceRequest] = []
        self.replies = list(replies or [])
        self.in_flight = 0
        self.max_in_flight = 0
        self.gate: Optional[asyncio.Event] = None
        self.fail_with: Optional[Exception] = None

    def hold(self) -> None:
        self.gate = asyncio.Event()

    def release(self) -> None:
        if self.gate is not None:
            self.gate.set()

    async def __call__(self, request: UtteranceRequest) -> Utterance:
        self.requests.append(request)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.gate is not None:
                await self.gate.wait()
            if self.fail_with is not None:
                raise self.fail_with
            if self.replies:
                text = self.replies.pop(0)
            else:
                text = f"• {request.persona.value} point #{len(self.requests)}"
            return Utterance(text=text, verified=request.verify)
        finally:
            self.in_flight -= 1


@dataclass
class Recorder:
    messages: List[ConversationTurn] = field(default_factory=list)
    states: List[EngineState] = field(default_factory=list)
    errors: List[BaseException] = field(default_factory=list)

    @property
    def speakers(self) -> List[str]:
        return [m.speaker.value for m in self.messages]


async def tick(scheduler: FakeScheduler, engine: AutoConversationEngine, seconds: float) -> None:
    """Advance the clock and let any generation it started resolve."""
    scheduler.advance(seconds)
    await asyncio.sleep(0)
    await engine.idle()
