from __future__ import annotations

from typing import Iterable, Sequence

from .states import ConversationTurn, Persona


FACT_CHECK_TRIGGERS = (
    "statistic", "data shows", "research indicates", "studies show",
    "according to", "reports suggest", "survey found", "analysis reveals",
    "market share", "growth rate", "percentage", "billion", "million",
    "recent study", "latest data", "current trends", "industry report",
)


def needs_fact_checking(text: str) -> bool:
    low = (text or "").lower()
    return any(trigger in low for trigger in FACT_CHECK_TRIGGERS)


def contains_factual_claims(turns: Sequence[ConversationTurn], window: int = 3) -> bool:
    if not turns or window <= 0:
        return False
    return any(needs_fact_checking(t.content) for t in turns[-window:])


def should_verify(persona: Persona | str, topic: str, history: Iterable[ConversationTurn] = ()) -> bool:
    """Only the moderator fact-checks, and only when a statistical claim is in play."""
    if Persona.parse(persona) is not Persona.MODERATOR:
        return False
    return needs_fact_checking(topic) or contains_factual_claims(list(history))
