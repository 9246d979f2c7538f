from __future__ import annotations

import re
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence

from loguru import logger
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from .llm import get_chat_model
from .personas import system_prompt_for
from .states import ConversationTurn, Persona


class GenerationError(RuntimeError):
    """Raised when a persona utterance cannot be produced."""

    def __init__(self, message: str, persona: Optional[Persona] = None) -> None:
        super().__init__(message)
        self.persona = persona


@dataclass(frozen=True)
class UtteranceRequest:
    history: Sequence[ConversationTurn]
    persona: Persona
    topic: str
    auto_mode: bool = True
    context: str = ""
    verify: bool = False


@dataclass(frozen=True)
class Utterance:
    text: str
    verified: bool = False


_BULLETS = ("•", "-")

_FACT_CHECK_BLOCK = (
    "FACT-CHECKING MODE ACTIVATED:\n"
    "- You have access to current internet data\n"
    "- Verify any statistics or factual claims made in the conversation\n"
    "- Use phrases like \"Let me fact-check that...\" or \"Current data shows...\"\n"
    "- Provide accurate, up-to-date information"
)

_FORMAT_RULES = (
    "STRICT FORMATTING RULES:\n"
    "- ALWAYS use bullet points (•) for your response\n"
    "- Keep responses SHORT and FOCUSED (2-4 bullet points max)\n"
    "- Each bullet point should be 1-2 sentences only\n"
    "- NO long paragraphs or walls of text"
)

_AUTO_GUIDELINES = (
    "GUIDELINES:\n"
    "- Build on previous points made by other personas\n"
    "- Reference specific insights from earlier in the conversation\n"
    "- Maintain your unique perspective while advancing the discussion\n"
    "- If the conversation is getting repetitive, suggest a new angle\n"
    "- Address other personas by name when referencing their points\n"
    "- Agree, disagree, or build upon previous statements naturally"
)

_REMINDER = "Remember: Use bullet points only, keep it concise!"


def format_bullets(text: str, max_points: int = 4) -> str:
    """Coerce a completion into at most ``max_points`` bullet lines."""
    out = (text or "").strip()
    if not out:
        return out
    if not out.startswith(_BULLETS):
        sentences = [s.strip() for s in re.split(r"[.!?]+", out) if s.strip()]
        if len(sentences) > 1:
            out = "\n".join(f"• {s}" for s in sentences[:max_points])
        else:
            out = f"• {out}"
    bullets = [ln for ln in out.splitlines() if ln.strip().startswith(_BULLETS)]
    if len(bullets) > max_points:
        out = "\n".join(bullets[:max_points])
    return out


class PersonaResponder:
    """Produces one persona utterance per request via the chat model.

    Instances are awaitable callables, so they can be handed straight to
    AutoConversationEngine as its generator.
    """

    def __init__(
        self,
        llm: Optional[BaseChatModel] = None,
        history_window: int = 8,
        max_points: int = 4,
    ) -> None:
        self.llm = llm if llm is not None else get_chat_model()
        if self.llm is None:
            raise RuntimeError(
                "chat model not initialized; set PERPLEXITY_API_KEY (and optionally PERPLEXITY_MODEL)"
            )
        self.history_window = history_window
        self.max_points = max_points

    def build_system(self, request: UtteranceRequest) -> SystemMessage:
        blocks: List[str] = [system_prompt_for(request.persona)]
        if request.auto_mode:
            blocks.append(
                "IMPORTANT: You are in AUTO-CONVERSATION mode. The AIs are discussing among "
                "themselves while the user observes."
            )
            blocks.append(f"CONVERSATION CONTEXT:\n{request.context or 'No previous context'}")
            blocks.append(_FORMAT_RULES + "\n- Be conversational but concise")
            if request.verify:
                blocks.append(_FACT_CHECK_BLOCK)
            blocks.append(_AUTO_GUIDELINES)
            blocks.append(f"CURRENT PROBLEM/DECISION: {request.topic}")
            blocks.append(
                "Respond as if you're in a live boardroom discussion with the other AI personas. "
                "Remember: BULLET POINTS ONLY, KEEP IT CONCISE!"
            )
        else:
            blocks.append(_FORMAT_RULES)
            if request.verify:
                blocks.append(_FACT_CHECK_BLOCK)
            blocks.append(f"CURRENT PROBLEM/DECISION: {request.topic}")
        return SystemMessage(content="\n\n".join(blocks))

    def build_prompt(self, request: UtteranceRequest) -> HumanMessage:
        persona = request.persona.value
        recent = list(request.history)[-self.history_window:] if self.history_window > 0 else []
        if not recent:
            return HumanMessage(
                content=(
                    f"As {persona}, provide your initial perspective on this problem: {request.topic}"
                    f"\n\n{_REMINDER}"
                )
            )
        transcript = "\n".join(f"{t.speaker.value}: {t.content}" for t in recent)
        if request.auto_mode:
            ask = f"Now respond as {persona} to continue this discussion about: {request.topic}"
        else:
            ask = f"As {persona}, provide your perspective on: {request.topic}"
        return HumanMessage(content=f"Previous conversation context:\n{transcript}\n\n{ask}\n\n{_REMINDER}")

    async def respond(self, request: UtteranceRequest) -> Utterance:
        if request.persona.is_user:
            raise ValueError("Cannot generate an utterance for the user")
        messages = [self.build_system(request), self.build_prompt(request)]
        t0 = time.perf_counter()
        try:
            result = await self.llm.ainvoke(messages)
        except Exception as e:
            logger.error(f"llm_call_failed | persona={request.persona.value} | {e}")
            raise GenerationError(f"chat completion failed: {e}", persona=request.persona) from e
        dt = time.perf_counter() - t0
        text = result.content if isinstance(result.content, str) else ""
        text = text.strip()
        logger.info(
            f"llm_call | persona={request.persona.value} verify={request.verify} "
            f"auto={request.auto_mode} dt={dt:.2f}s"
        )
        if not text:
            raise GenerationError("chat completion returned no content", persona=request.persona)
        return Utterance(text=format_bullets(text, self.max_points), verified=request.verify)

    __call__ = respond
