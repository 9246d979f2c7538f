from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class Persona(Enum):
    SYSTEM1 = "system1"
    SYSTEM2 = "system2"
    MODERATOR = "moderator"
    DEVILS_ADVOCATE = "devilsAdvocate"
    USER = "user"

    @classmethod
    def parse(cls, value: "Persona | str") -> "Persona":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unknown persona: {value!r}") from None

    @property
    def is_user(self) -> bool:
        return self is Persona.USER


DEFAULT_ROSTER = (
    Persona.SYSTEM1,
    Persona.SYSTEM2,
    Persona.MODERATOR,
    Persona.DEVILS_ADVOCATE,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ConversationTurn:
    """One message in the boardroom, produced by a persona or typed by the user."""

    content: str
    speaker: Persona
    verified: bool = False
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = field(default_factory=_utcnow)

    @classmethod
    def create(cls, content: str, speaker: "Persona | str", verified: bool = False) -> "ConversationTurn":
        return cls(content=content or "", speaker=Persona.parse(speaker), verified=bool(verified))

    @classmethod
    def from_user(cls, content: str) -> "ConversationTurn":
        return cls.create(content, Persona.USER)

    def with_content(self, content: str) -> "ConversationTurn":
        # Backfill for placeholder turns; id and timestamp are kept.
        return replace(self, content=content)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'speaker': self.speaker.value,
            'message': self.content,
            'verified': self.verified,
            'timestamp': self.created_at.astimezone(timezone.utc).replace(tzinfo=None).isoformat() + 'Z',
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConversationTurn":
        kwargs: Dict[str, Any] = {
            'content': data.get('message', data.get('content', '')) or '',
            'speaker': Persona.parse(data.get('speaker', data.get('persona', 'user'))),
            'verified': bool(data.get('verified', data.get('factChecked', False))),
        }
        if data.get('id'):
            kwargs['id'] = str(data['id'])
        ts = data.get('timestamp')
        if ts:
            created = datetime.fromisoformat(str(ts).replace('Z', '+00:00'))
            if created.tzinfo is None:
                created = created.replace(tzinfo=timezone.utc)
            kwargs['created_at'] = created
        return cls(**kwargs)


@dataclass
class EngineState:
    current_speaker: Optional[Persona] = None
    round: int = 0
    topic: str = ""
    active: bool = False
    pause_requested: bool = False
    last_turn_at: float = 0.0

    @property
    def paused(self) -> bool:
        return self.pause_requested

    @property
    def running(self) -> bool:
        return self.active and not self.pause_requested

    def copy(self) -> "EngineState":
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'current_speaker': self.current_speaker.value if self.current_speaker else None,
            'round': self.round,
            'topic': self.topic,
            'active': self.active,
            'pause_requested': self.pause_requested,
            'last_turn_at': self.last_turn_at,
        }
