"""
Runtime configuration for the boardroom engine and its LLM client.
Values come from environment variables (a local .env is loaded first) with
defaults that match the web app's behaviour.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Callable, Optional, TypeVar

from dotenv import load_dotenv
from loguru import logger


PERPLEXITY_BASE_URL = "https://api.perplexity.ai"

_T = TypeVar("_T")
_TRUTHY = ("1", "true", "yes", "on")


def load_env() -> None:
    """Load a .env from the project root, falling back to the CWD."""
    here = Path(__file__).resolve().parents[1]
    for env_path in (here / ".env", Path.cwd() / ".env"):
        if env_path.is_file():
            load_dotenv(dotenv_path=str(env_path), override=False)
            return
    load_dotenv()


def _env(name: str, default: _T, cast: Callable[[str], _T]) -> _T:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw.strip())
    except ValueError:
        logger.warning(f"config | invalid {name}={raw!r}; using default {default!r}")
        return default


def _flag(raw: str) -> bool:
    return raw.lower() in _TRUTHY


@dataclass
class EngineConfig:
    """Knobs for AutoConversationEngine; all optional."""

    speaking_interval_ms: int = 3000
    max_rounds_per_topic: int = 8
    topic_evolution_enabled: bool = True
    pause_on_user_interrupt: bool = True
    interrupt_reply_delay_ms: int = 1000
    context_window: int = 6
    context_chars: int = 100

    def __post_init__(self) -> None:
        if self.speaking_interval_ms < 0:
            raise ValueError("speaking_interval_ms must be >= 0")
        if self.interrupt_reply_delay_ms < 0:
            raise ValueError("interrupt_reply_delay_ms must be >= 0")
        if self.max_rounds_per_topic < 1:
            raise ValueError("max_rounds_per_topic must be >= 1")
        if self.context_window < 0 or self.context_chars < 0:
            raise ValueError("context_window and context_chars must be >= 0")

    @property
    def speaking_interval(self) -> float:
        return self.speaking_interval_ms / 1000.0

    @property
    def interrupt_reply_delay(self) -> float:
        return self.interrupt_reply_delay_ms / 1000.0

    @classmethod
    def field_names(cls) -> set[str]:
        return {f.name for f in fields(cls)}

    @classmethod
    def from_env(cls) -> "EngineConfig":
        load_env()
        base = cls()
        return cls(
            speaking_interval_ms=_env("AUTO_SPEAKING_INTERVAL_MS", base.speaking_interval_ms, int),
            max_rounds_per_topic=_env("AUTO_MAX_ROUNDS_PER_TOPIC", base.max_rounds_per_topic, int),
            topic_evolution_enabled=_env("AUTO_TOPIC_EVOLUTION", base.topic_evolution_enabled, _flag),
            pause_on_user_interrupt=_env("AUTO_PAUSE_ON_INTERRUPT", base.pause_on_user_interrupt, _flag),
        )


@dataclass
class LLMSettings:
    """Perplexity chat-completions settings (OpenAI-compatible endpoint)."""

    api_key: Optional[str] = None
    base_url: str = PERPLEXITY_BASE_URL
    model: str = "sonar"
    temperature: float = 0.7
    max_tokens: int = 1000
    timeout: float = 30.0

    @classmethod
    def from_env(cls) -> "LLMSettings":
        load_env()
        base = cls()
        return cls(
            api_key=os.getenv("PERPLEXITY_API_KEY") or None,
            base_url=os.getenv("PERPLEXITY_BASE_URL", base.base_url),
            model=os.getenv("PERPLEXITY_MODEL", base.model),
            temperature=_env("PERPLEXITY_TEMPERATURE", base.temperature, float),
            max_tokens=_env("PERPLEXITY_MAX_TOKENS", base.max_tokens, int),
            timeout=_env("PERPLEXITY_TIMEOUT", base.timeout, float),
        )
