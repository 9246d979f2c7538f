from __future__ import annotations

import asyncio
import random
import time
from dataclasses import replace
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Sequence, Tuple

from loguru import logger

from .agents import Utterance, UtteranceRequest
from .config import EngineConfig
from .factcheck import should_verify
from .scheduling import LoopScheduler, Scheduler, TimerHandle
from .states import DEFAULT_ROSTER, ConversationTurn, EngineState, Persona


TOPIC_EVOLUTIONS = (
    "Let's explore the potential risks and downsides",
    "What would be the long-term implications?",
    "How might this decision affect different stakeholders?",
    "What alternative approaches should we consider?",
    "What assumptions are we making that we should question?",
)
TOPIC_EVOLUTION_PREFIX = "🔄 **Topic Evolution**: "

# history length mod 4 -> speaker, when the previous turn came from a persona
_FLOW_SPEAKERS = {
    1: Persona.SYSTEM1,
    2: Persona.SYSTEM2,
    3: Persona.DEVILS_ADVOCATE,
}

GenerateFn = Callable[[UtteranceRequest], Awaitable[Utterance]]
MessageCallback = Callable[[ConversationTurn], Any]
StateCallback = Callable[[EngineState], Any]
ErrorCallback = Callable[[BaseException], Any]


class AutoConversationEngine:
    """Runs the boardroom without user input: picks who speaks next, when.

    One generation is in flight at most. Pause/stop never cancel it; they only
    decide whether the loop continues once it resolves. The caller receives
    turns through ``on_message`` and state snapshots through ``on_state_change``.
    """

    def __init__(
        self,
        generate: GenerateFn,
        config: Optional[EngineConfig] = None,
        *,
        roster: Optional[Sequence[Persona]] = None,
        scheduler: Optional[Scheduler] = None,
        clock: Callable[[], float] = time.time,
        rng: Optional[random.Random] = None,
        on_message: Optional[MessageCallback] = None,
        on_state_change: Optional[StateCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self._generate = generate
        self.config = config or EngineConfig()
        self.roster: Tuple[Persona, ...] = tuple(roster) if roster is not None else DEFAULT_ROSTER
        if not self.roster:
            raise ValueError("roster must contain at least one persona")
        if any(p.is_user for p in self.roster):
            raise ValueError("the user cannot be part of the speaking roster")
        self._scheduler: Scheduler = scheduler or LoopScheduler()
        self._clock = clock
        self._rng = rng or random.Random()
        self._on_message = on_message
        self._on_state_change = on_state_change
        self._on_error = on_error

        self._state = EngineState()
        self._history: List[ConversationTurn] = []
        self._timer: Optional[TimerHandle] = None
        self._inflight: Optional[asyncio.Task] = None
        self._session = 0
        self._courtesy_owed = False

    # -- callbacks / config -------------------------------------------------

    def set_message_callback(self, callback: Optional[MessageCallback]) -> None:
        self._on_message = callback

    def set_state_change_callback(self, callback: Optional[StateCallback]) -> None:
        self._on_state_change = callback

    def set_error_callback(self, callback: Optional[ErrorCallback]) -> None:
        self._on_error = callback

    def update_config(self, **changes: Any) -> None:
        unknown = set(changes) - EngineConfig.field_names()
        if unknown:
            raise TypeError(f"Unknown config fields: {', '.join(sorted(unknown))}")
        self.config = replace(self.config, **changes)

    def set_speaking_interval(self, interval_ms: int) -> None:
        # Only affects timers created from now on.
        self.update_config(speaking_interval_ms=int(interval_ms))

    # -- control surface ----------------------------------------------------

    def start_conversation(self, topic: str, seed_history: Iterable[ConversationTurn] = ()) -> None:
        self._session += 1
        self._cancel_timer()
        self._courtesy_owed = False
        self._history = list(seed_history)
        self._state = EngineState(topic=topic, active=True, last_turn_at=self._clock())
        logger.info(
            f"auto_chat_start | session={self._session} interval_ms={self.config.speaking_interval_ms} "
            f"seed={len(self._history)} | topic='{_one_line(topic, 120)}'"
        )
        self._notify_state()
        self._schedule(self.config.speaking_interval)

    def pause_conversation(self) -> None:
        if not self._state.active and not self._state.pause_requested:
            logger.debug("auto_chat_pause_ignored | no running session")
            return
        self._cancel_timer()
        if self._transition(pause_requested=True, active=False):
            logger.info(f"auto_chat_paused | round={self._state.round}")

    def resume_conversation(self) -> None:
        if not self._state.pause_requested:
            logger.debug(f"auto_chat_resume_ignored | active={self._state.active}")
            return
        self._courtesy_owed = False
        self._transition(pause_requested=False, active=True)
        logger.info(f"auto_chat_resumed | round={self._state.round}")
        self._schedule(self.config.speaking_interval)

    def stop_conversation(self) -> None:
        self._cancel_timer()
        self._courtesy_owed = False
        if self._transition(active=False, pause_requested=False, current_speaker=None):
            logger.info(f"auto_chat_stopped | round={self._state.round}")

    def interrupt_with_user_message(self, message: ConversationTurn) -> None:
        """Record a user message; a running loop gets exactly one reply to it."""
        was_running = self._state.running
        self._history.append(message)
        logger.info(f"auto_chat_interrupt | running={was_running} | msg='{_one_line(message.content, 120)}'")
        if self.config.pause_on_user_interrupt:
            self.pause_conversation()
        if was_running:
            self._schedule(self.config.interrupt_reply_delay, courtesy=True)

    def add_message(self, message: ConversationTurn) -> None:
        self._history.append(message)

    def get_state(self) -> EngineState:
        return self._state.copy()

    def get_history(self) -> Tuple[ConversationTurn, ...]:
        return tuple(self._history)

    @property
    def generating(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    async def idle(self) -> None:
        """Wait for the in-flight generation, if any, to resolve."""
        task = self._inflight
        if task is not None and not task.done():
            await task

    # -- turn selection / context -------------------------------------------

    def select_next_speaker(self) -> Persona:
        if self._state.round == 0:
            return Persona.MODERATOR
        last = self._history[-1].speaker if self._history else None
        if last is not None and not last.is_user:
            return _FLOW_SPEAKERS.get(len(self._history) % 4, Persona.MODERATOR)
        return self.roster[self._state.round % len(self.roster)]

    def build_context(self) -> str:
        window = self.config.context_window
        recent = self._history[-window:] if window > 0 else []
        limit = self.config.context_chars
        return "\n".join(f"{t.speaker.value}: {t.content[:limit]}" for t in recent)

    def build_request(self, speaker: Persona) -> UtteranceRequest:
        topic = self._state.topic
        return UtteranceRequest(
            history=tuple(self._history),
            persona=speaker,
            topic=topic,
            auto_mode=True,
            context=self.build_context(),
            verify=should_verify(speaker, topic, self._history),
        )

    # -- scheduling ---------------------------------------------------------

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _schedule(self, delay: float, courtesy: bool = False) -> None:
        self._cancel_timer()
        self._timer = self._scheduler.call_later(delay, self._on_timer, self._session, courtesy)

    def _on_timer(self, session: int, courtesy: bool) -> None:
        self._timer = None
        if session != self._session:
            return
        if self.generating:
            # The running turn continues the loop when it resolves.
            self._courtesy_owed = self._courtesy_owed or courtesy
            logger.debug("auto_chat_turn_deferred | generation in flight")
            return
        self._inflight = asyncio.get_running_loop().create_task(self._generate_response(session, courtesy))

    def _continue(self) -> None:
        if self._timer is not None:
            return
        if self._courtesy_owed and (self._state.running or self._state.pause_requested):
            self._courtesy_owed = False
            self._schedule(self.config.interrupt_reply_delay, courtesy=True)
        elif self._state.running:
            self._schedule(self.config.speaking_interval)

    # -- generation ---------------------------------------------------------

    async def _generate_response(self, session: int, courtesy: bool = False) -> None:
        if session != self._session:
            # Restarted between the timer firing and this task running.
            self._continue()
            return
        state = self._state
        if not state.running and not (courtesy and state.pause_requested):
            return

        speaker = self.select_next_speaker()
        self._transition(current_speaker=speaker, last_turn_at=self._clock())
        request = self.build_request(speaker)
        logger.debug(
            f"auto_chat_generate | spk={speaker.value} round={state.round} "
            f"verify={request.verify} courtesy={courtesy}"
        )

        try:
            utterance = await self._generate(request)
        except Exception as e:
            self._handle_failure(session, speaker, e)
            return

        if session != self._session:
            logger.warning(f"auto_chat_stale_result | spk={speaker.value} session={session}; dropped")
            self._continue()
            return

        if not (utterance.text or "").strip():
            logger.warning(f"auto_chat_empty | spk={speaker.value}; no message produced")
            self._transition(current_speaker=None)
        else:
            turn = ConversationTurn.create(utterance.text, speaker, verified=utterance.verified)
            self._history.append(turn)
            self._emit_message(turn)
            self._transition(round=self._state.round + 1, current_speaker=None)
            self._log_turn(turn)
            if self._should_evolve():
                self._evolve_topic()

        self._continue()

    def _handle_failure(self, session: int, speaker: Persona, exc: Exception) -> None:
        if session != self._session:
            logger.warning(f"auto_chat_stale_error | spk={speaker.value} session={session}; dropped | {exc}")
            self._continue()
            return
        logger.error(f"auto_chat_error | spk={speaker.value} round={self._state.round} | {exc}")
        self._emit_error(exc)
        self._transition(current_speaker=None)
        if self._state.running:
            self.pause_conversation()

    def _should_evolve(self) -> bool:
        rounds = self._state.round
        return (
            self.config.topic_evolution_enabled
            and rounds > 0
            and rounds % self.config.max_rounds_per_topic == 0
        )

    def _evolve_topic(self) -> None:
        prompt = self._rng.choice(TOPIC_EVOLUTIONS)
        turn = ConversationTurn.create(f"{TOPIC_EVOLUTION_PREFIX}{prompt}", Persona.MODERATOR)
        self._history.append(turn)
        logger.info(f"auto_chat_topic_evolution | round={self._state.round} | prompt='{prompt}'")
        self._emit_message(turn)

    # -- state / events -----------------------------------------------------

    def _transition(self, **changes: Any) -> bool:
        changed = {k: v for k, v in changes.items() if getattr(self._state, k) != v}
        if not changed:
            return False
        for key, value in changed.items():
            setattr(self._state, key, value)
        self._notify_state()
        return True

    def _notify_state(self) -> None:
        if self._on_state_change is None:
            return
        try:
            self._on_state_change(self._state.copy())
        except Exception as e:
            logger.error(f"auto_chat_callback_failed | on_state_change | {e}")

    def _emit_message(self, turn: ConversationTurn) -> None:
        if self._on_message is None:
            return
        try:
            self._on_message(turn)
        except Exception as e:
            logger.error(f"auto_chat_callback_failed | on_message | {e}")

    def _emit_error(self, exc: BaseException) -> None:
        if self._on_error is None:
            return
        try:
            self._on_error(exc)
        except Exception as e:
            logger.error(f"auto_chat_callback_failed | on_error | {e}")

    def _log_turn(self, turn: ConversationTurn) -> None:
        logger.info(
            f"auto_chat_turn | spk={turn.speaker.value} round={self._state.round} "
            f"verified={turn.verified} | msg='{_one_line(turn.content, 400)}'"
        )


def _one_line(text: str, limit: int) -> str:
    raw = text or ""
    snippet = raw if len(raw) <= limit else raw[:limit] + '...'
    return ' '.join(snippet.split())
